"""Telegram 告警器实现"""

import asyncio
import json
from typing import Dict, Any

import aiohttp

from .base import BaseAlerter
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger

DEFAULT_API_BASE = 'https://api.telegram.org'


class TelegramAlerter(BaseAlerter):
    """Telegram 告警器，通过 Bot API 的 sendMessage 发送 HTML 消息

    缺少 bot_token 或 chat_id 时告警器处于禁用状态，不发送任何请求。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化 Telegram 告警器

        Args:
            name: 告警器名称
            config: 告警器配置

        Raises:
            AlertConfigError: 重试或超时配置无效
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.telegram.{self.name}')

        self.bot_token = config.get('bot_token') or ''
        self.chat_id = config.get('chat_id') or ''
        self.api_base = (config.get('api_base') or DEFAULT_API_BASE).rstrip('/')

        # 重试配置：第 k 次重试前等待 retry_delay * retry_backoff ** (k - 1) 秒
        self.max_retries = config.get('max_retries', 3)
        self.retry_delay = config.get('retry_delay', 1.0)
        self.retry_backoff = config.get('retry_backoff', 2.0)

        if not self.validate_config():
            raise AlertConfigError(f"Telegram告警器配置无效: {name}", alert_name=name)

        if not self.is_enabled():
            self.logger.warning(
                f"Telegram告警器 {self.name} 未配置 bot_token 或 chat_id，通知已禁用")

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            self.logger.error(f"Telegram告警器 {self.name} 最大重试次数不能为负数")
            return False

        if not isinstance(self.retry_delay, (int, float)) or self.retry_delay < 0:
            self.logger.error(f"Telegram告警器 {self.name} 重试延迟不能为负数")
            return False

        if not isinstance(self.retry_backoff, (int, float)) or self.retry_backoff <= 0:
            self.logger.error(f"Telegram告警器 {self.name} 退避倍数必须为正数")
            return False

        if self.get_timeout() <= 0:
            self.logger.error(f"Telegram告警器 {self.name} 超时时间必须为正数")
            return False

        return True

    def is_enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    @property
    def send_url(self) -> str:
        return f"{self.api_base}/bot{self.bot_token}/sendMessage"

    def _redact(self, text: str) -> str:
        if self.bot_token:
            return text.replace(self.bot_token, '<redacted>')
        return text

    async def send_alert(self, text: str) -> bool:
        """
        发送告警消息，失败时按指数退避重试

        Args:
            text: HTML 格式的告警文本

        Returns:
            bool: 是否确认送达；禁用状态或所有尝试都失败时返回 False
        """
        if not self.is_enabled():
            self.logger.info(f"Telegram告警器 {self.name} 已禁用，跳过发送")
            return False

        attempts = self.max_retries + 1
        last_error = None

        for attempt in range(attempts):
            try:
                self.logger.debug(f"尝试发送告警 (第 {attempt + 1} 次)")
                if await self._send_request(text):
                    if attempt > 0:
                        self.logger.info(
                            f"Telegram告警器 {self.name} 重试第 {attempt} 次后发送成功")
                    else:
                        self.logger.info(f"Telegram告警器 {self.name} 首次尝试发送成功")
                    return True
                last_error = "Telegram API 拒绝了消息"

            except Exception as e:
                last_error = self._redact(str(e))

            self.logger.warning(
                f"Telegram告警器 {self.name} 发送失败 "
                f"(尝试 {attempt + 1}/{attempts}): {last_error}"
            )

            if attempt < self.max_retries:
                delay = self.retry_delay * (self.retry_backoff ** attempt)
                self.logger.debug(f"等待 {delay:.2f} 秒后重试")
                await asyncio.sleep(delay)

        self.logger.error(
            f"Telegram告警器 {self.name} 所有重试均失败，放弃发送告警: {last_error}")
        return False

    async def _send_request(self, text: str) -> bool:
        """
        发送一次 sendMessage 请求

        Args:
            text: 告警文本

        Returns:
            bool: Telegram 是否接受了消息

        Raises:
            AlertSendError: 网络错误或超时
        """
        payload = {
            'chat_id': self.chat_id,
            'text': text,
            'parse_mode': 'HTML'
        }
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.send_url, json=payload) as response:
                    if not 200 <= response.status < 300:
                        response_text = await response.text()
                        self.logger.warning(
                            f"Telegram告警器 {self.name} 收到错误响应 "
                            f"(状态码: {response.status}, 响应: {response_text[:200]})"
                        )
                        return False

                    try:
                        body = await response.json()
                    except (json.JSONDecodeError, aiohttp.ContentTypeError):
                        # 非JSON响应，只要状态码正确就认为成功
                        return True

                    if isinstance(body, dict) and body.get('ok') is False:
                        self.logger.error(
                            f"Telegram告警器 {self.name} API返回错误: "
                            f"error_code={body.get('error_code')}, "
                            f"description={body.get('description')}"
                        )
                        return False

                    return True

        except aiohttp.ClientError as e:
            raise AlertSendError(f"HTTP请求失败: {self._redact(str(e))}",
                                 alert_name=self.name)
        except asyncio.TimeoutError:
            raise AlertSendError("HTTP请求超时", alert_name=self.name)

    def get_config_summary(self) -> Dict[str, Any]:
        """
        获取配置摘要（不含凭据）

        Returns:
            Dict[str, Any]: 配置摘要
        """
        return {
            'name': self.name,
            'type': 'telegram',
            'enabled': self.is_enabled(),
            'timeout': self.get_timeout(),
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'retry_backoff': self.retry_backoff
        }
