"""监控调度器模块

按固定间隔串行执行检查周期：探测 -> 写入历史 -> 交给结果回调（告警升级引擎）。
同一目标的探测不会重叠。
"""

import asyncio
from datetime import datetime
from typing import Dict, Any, Optional, Callable, Awaitable, Tuple

from .history_log import HistoryLog
from ..checkers.base import BaseHealthChecker
from ..models.health_check import CheckResult, EscalationOutcome
from ..utils.log_manager import get_logger

ResultCallback = Callable[[CheckResult], Awaitable[Optional[EscalationOutcome]]]


class MonitorScheduler:
    """监控调度器"""

    def __init__(self, checker: BaseHealthChecker, history: HistoryLog,
                 check_interval: float = 60):
        """初始化监控调度器

        Args:
            checker: 健康检查器
            history: 检查历史记录
            check_interval: 检查间隔（秒）
        """
        if check_interval <= 0:
            raise ValueError("检查间隔必须是正数")

        self.checker = checker
        self.history = history
        self.check_interval = check_interval
        self.is_running = False
        self.logger = get_logger('scheduler')

        self.on_check_result: Optional[ResultCallback] = None
        self._stop_event: Optional[asyncio.Event] = None

        # 统计信息
        self.total_checks = 0
        self.unhealthy_checks = 0
        self.last_check_time: Optional[datetime] = None
        self.last_status: Optional[str] = None

    def set_check_result_callback(self, callback: ResultCallback):
        """设置检查结果回调函数

        Args:
            callback: 检查结果回调函数
        """
        self.on_check_result = callback

    async def run_check_cycle(self) -> Tuple[CheckResult, Optional[EscalationOutcome]]:
        """执行一次完整的检查周期

        Returns:
            tuple: (检查结果, 结果回调的处理结果)
        """
        result = await self.checker.check_health()
        self.history.append(result)

        self.total_checks += 1
        if not result.is_healthy:
            self.unhealthy_checks += 1
        self.last_check_time = result.timestamp
        self.last_status = result.status

        if result.is_healthy:
            self.logger.info(
                f"服务 {result.service_name} 检查完成: 健康, "
                f"响应时间: {result.response_time:.0f}ms"
            )
        else:
            self.logger.error(
                f"服务 {result.service_name} 检查完成: 不健康 - {result.error_message}")

        outcome = None
        if self.on_check_result:
            outcome = await self.on_check_result(result)

        return result, outcome

    async def start(self):
        """启动调度循环，直到 stop() 被调用"""
        if self.is_running:
            self.logger.warning("监控调度器已经在运行")
            return

        self.is_running = True
        self._stop_event = asyncio.Event()
        self.logger.info(
            f"启动监控调度器: 目标={self.checker.config.get('url')}, "
            f"间隔={self.check_interval}秒"
        )

        try:
            while self.is_running:
                try:
                    await self.run_check_cycle()
                except Exception as e:
                    self.logger.error(f"检查周期执行异常: {e}", exc_info=True)

                try:
                    await asyncio.wait_for(self._stop_event.wait(),
                                           timeout=self.check_interval)
                except asyncio.TimeoutError:
                    pass

        except asyncio.CancelledError:
            self.logger.info("监控调度器被取消")
        finally:
            self.is_running = False
            self.logger.info("监控调度器已停止")

    async def stop(self):
        """停止调度循环"""
        if not self.is_running:
            return

        self.logger.info("正在停止监控调度器...")
        self.is_running = False
        if self._stop_event:
            self._stop_event.set()

    def get_scheduler_stats(self) -> Dict[str, Any]:
        """获取调度器统计信息"""
        return {
            'is_running': self.is_running,
            'target_url': self.checker.config.get('url'),
            'check_interval': self.check_interval,
            'total_checks': self.total_checks,
            'unhealthy_checks': self.unhealthy_checks,
            'last_check_time': (
                self.last_check_time.isoformat() if self.last_check_time else None
            ),
            'last_status': self.last_status,
            'history_size': len(self.history)
        }
