"""告警消息格式化

把 AlertMessage 渲染成 Telegram HTML 文本。时区和时间格式只在这里处理，
升级引擎不关心文本内容。
"""

from datetime import datetime
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models.health_check import AlertMessage
from ..utils.exceptions import AlertConfigError

DEFAULT_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


class AlertFormatter:
    """告警文本格式化器"""

    def __init__(self, timezone: Optional[str] = None,
                 time_format: str = DEFAULT_TIME_FORMAT):
        """
        Args:
            timezone: IANA 时区名，例如 'Asia/Shanghai'；为空时使用本地时间
            time_format: strftime 时间格式

        Raises:
            AlertConfigError: 时区无效
        """
        self.time_format = time_format
        self.tzinfo = None
        if timezone:
            try:
                self.tzinfo = ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise AlertConfigError(f"无效的时区: {timezone}", cause=e)

    def format_time(self, timestamp: datetime) -> str:
        if self.tzinfo is not None:
            timestamp = timestamp.astimezone(self.tzinfo)
        return timestamp.strftime(self.time_format)

    def format_failure(self, message: AlertMessage) -> str:
        """渲染服务不可用告警"""
        lines = [
            f"⚠️ <b>{escape(message.service_name)} 不可用!</b> ⚠️",
            "",
            f"<b>服务:</b> {escape(message.service_name)}",
            f"<b>URL:</b> {escape(message.url)}",
            "",
            "<b>问题:</b> 服务未正常响应",
            f"<b>错误:</b> {escape(message.error_message or '未知错误')}",
            f"<b>时间:</b> {self.format_time(message.timestamp)}",
        ]
        if message.alert_number is not None:
            lines.append(f"<b>告警:</b> #{message.alert_number}")
        return "\n".join(lines)

    def format_recovery(self, message: AlertMessage) -> str:
        """渲染服务恢复通知"""
        lines = [
            f"✅ <b>{escape(message.service_name)} 已恢复!</b>",
            "",
            f"<b>服务:</b> {escape(message.service_name)}",
            f"<b>URL:</b> {escape(message.url)}",
            f"<b>恢复时间:</b> {self.format_time(message.timestamp)}",
        ]
        if message.response_time is not None:
            lines.append(f"<b>响应时间:</b> {message.response_time:.0f}ms")
        return "\n".join(lines)

    def format_test(self, message: AlertMessage) -> str:
        """渲染告警系统测试消息"""
        return "\n".join([
            f"🔔 <b>{escape(message.service_name)} 告警测试</b>",
            "",
            f"<b>URL:</b> {escape(message.url)}",
            f"<b>时间:</b> {self.format_time(message.timestamp)}",
        ])
