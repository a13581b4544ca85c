"""Ping 接口健康检查器

对被监控服务的 ping 端点发起一次 GET 请求，健康的条件是：
HTTP 200，且若响应体非空（JSON null 视为空），则必须是 status 字段为 "success" 的 JSON 对象。
"""

import asyncio
import json
import time
from typing import Dict, Any, Optional, Tuple

import aiohttp

from .base import BaseHealthChecker
from ..models.health_check import CheckResult, HEALTHY, UNHEALTHY

API_KEY_HEADER = 'x-api-key'
SUCCESS_STATUS = 'success'


class PingHealthChecker(BaseHealthChecker):
    """Ping 接口健康检查器"""

    def validate_config(self) -> bool:
        """
        验证探测配置

        Returns:
            bool: 配置是否有效
        """
        url = self.config.get('url')
        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            return False

        timeout = self.config.get('timeout', 10)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            return False

        return True

    @staticmethod
    def _parse_body(content: str) -> Tuple[Optional[str], Any]:
        """
        校验响应体

        Args:
            content: 响应文本

        Returns:
            tuple: (错误描述，健康时为None; 解析后的响应数据)
        """
        if not content.strip():
            return None, None

        try:
            payload = json.loads(content)
        except json.JSONDecodeError:
            return "响应体不是有效的JSON", content[:200]

        if payload is None:
            return None, None

        if not isinstance(payload, dict):
            return "响应体不是JSON对象", payload

        status = payload.get('status')
        if status != SUCCESS_STATUS:
            return f"服务返回的状态不健康: {status!r}", payload

        return None, payload

    async def check_health(self) -> CheckResult:
        """
        执行一次 ping 探测

        Returns:
            CheckResult: 探测结果
        """
        url = self.config.get('url')
        headers = {}
        if self.config.get('api_key'):
            headers[API_KEY_HEADER] = self.config['api_key']

        response_time = None
        status_code = None
        data = None
        error_message = None

        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        start_time = time.time()

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    status_code = response.status
                    content = await response.text()
                    response_time = (time.time() - start_time) * 1000

                    if response.status != 200:
                        error_message = f"HTTP状态码不符合期望: {response.status}"
                        data = content[:200] if content else None
                    else:
                        error_message, data = self._parse_body(content)

        except asyncio.TimeoutError:
            error_message = f"请求超时 ({self.get_timeout()}秒)"
        except aiohttp.ClientError as e:
            error_message = f"HTTP客户端错误: {e}"
        except Exception as e:
            error_message = f"健康检查异常: {e}"

        status = UNHEALTHY if error_message else HEALTHY
        if error_message:
            self.logger.warning(f"服务 {self.name} 不健康: {error_message}")
        else:
            self.logger.debug(f"服务 {self.name} 健康 ({response_time:.0f}ms)")

        return CheckResult(
            service_name=self.name,
            url=url,
            status=status,
            response_time=response_time,
            status_code=status_code,
            data=data,
            error_message=error_message
        )
