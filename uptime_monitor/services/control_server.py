"""控制与查询 HTTP 服务

- GET  /health          监控进程自身的存活检查，无需认证
- POST /check-service   立即执行一次检查周期（与定时检查共用同一个状态锁）
- GET  /status-history  最新在前的检查历史
- GET  /status          告警状态和调度器统计

除 /health 外都需要 x-api-key 请求头与配置的密钥一致。
"""

import hmac
from typing import Any, Dict, Optional

from aiohttp import web

from .history_log import HistoryLog
from .monitor_scheduler import MonitorScheduler
from ..alerts.escalation import EscalationEngine
from ..utils.log_manager import get_logger

API_KEY_HEADER = 'x-api-key'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'Referrer-Policy': 'no-referrer',
    'X-DNS-Prefetch-Control': 'off',
}


@web.middleware
async def security_headers_middleware(request: web.Request, handler):
    response = await handler(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


class ControlServer:
    """控制与查询 HTTP 服务"""

    def __init__(self, scheduler: MonitorScheduler, history: HistoryLog,
                 engine: Optional[EscalationEngine] = None,
                 api_key: Optional[str] = None,
                 host: str = '0.0.0.0', port: int = 3001):
        """
        Args:
            scheduler: 监控调度器，用于手动触发检查
            history: 检查历史记录
            engine: 告警升级引擎，用于 /status
            api_key: 共享密钥，为空时所有需要认证的请求都会被拒绝
            host: 监听地址
            port: 监听端口
        """
        self.scheduler = scheduler
        self.history = history
        self.engine = engine
        self.api_key = api_key or ''
        self.host = host
        self.port = port
        self.logger = get_logger('control_server')
        self._runner: Optional[web.AppRunner] = None

    def _is_authorized(self, request: web.Request) -> bool:
        provided = request.headers.get(API_KEY_HEADER, '')
        if not self.api_key or not provided:
            return False
        return hmac.compare_digest(provided.encode('utf-8'), self.api_key.encode('utf-8'))

    @staticmethod
    def _unauthorized() -> web.Response:
        return web.json_response({'error': 'Unauthorized: Invalid API key'}, status=401)

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({'status': 'ok'})

    async def check_service(self, request: web.Request) -> web.Response:
        if not self._is_authorized(request):
            return self._unauthorized()

        try:
            result, outcome = await self.scheduler.run_check_cycle()
        except Exception as e:
            self.logger.error(f"手动检查执行失败: {e}", exc_info=True)
            return web.json_response({
                'error': 'Failed to check main service',
                'details': str(e)
            }, status=500)

        if not result.is_healthy:
            body: Dict[str, Any] = {
                'error': 'Failed to check main service',
                'details': result.error_message,
                'result': result.to_dict()
            }
            if outcome is not None:
                body['escalation'] = outcome.to_dict()
            return web.json_response(body, status=500)

        return web.json_response(result.to_dict())

    async def status_history(self, request: web.Request) -> web.Response:
        if not self._is_authorized(request):
            return self._unauthorized()

        return web.json_response([entry.to_dict() for entry in self.history.snapshot()])

    async def status(self, request: web.Request) -> web.Response:
        if not self._is_authorized(request):
            return self._unauthorized()

        body = {'scheduler': self.scheduler.get_scheduler_stats()}
        if self.engine is not None:
            body.update(self.engine.get_status())
        return web.json_response(body)

    def create_app(self) -> web.Application:
        """创建 aiohttp 应用"""
        app = web.Application(middlewares=[security_headers_middleware])
        app.router.add_get('/health', self.health)
        app.router.add_post('/check-service', self.check_service)
        app.router.add_get('/status-history', self.status_history)
        app.router.add_get('/status', self.status)
        return app

    async def start(self):
        """开始监听"""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self.logger.info(f"控制服务已启动，监听端口 {self.port}")

    async def stop(self):
        """停止监听"""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self.logger.info("控制服务已停止")
