"""测试告警消息格式化"""

from datetime import datetime, timezone

import pytest

from uptime_monitor.alerts.formatter import AlertFormatter
from uptime_monitor.models.health_check import AlertMessage
from uptime_monitor.utils.exceptions import AlertConfigError


class TestAlertFormatter:
    """测试AlertFormatter类"""

    def setup_method(self):
        self.formatter = AlertFormatter()
        self.timestamp = datetime(2024, 3, 1, 8, 30, 0)

    def test_format_failure(self):
        message = AlertMessage(
            service_name="API 服务",
            url="http://localhost:5001/ping",
            status='DOWN',
            timestamp=self.timestamp,
            error_message="HTTP状态码不符合期望: 503",
            alert_number=3
        )

        text = self.formatter.format_failure(message)

        assert text.startswith("⚠️ <b>API 服务 不可用!</b> ⚠️")
        assert "<b>URL:</b> http://localhost:5001/ping" in text
        assert "<b>错误:</b> HTTP状态码不符合期望: 503" in text
        assert "<b>时间:</b> 2024-03-01 08:30:00" in text
        assert text.endswith("<b>告警:</b> #3")

    def test_format_failure_escapes_html(self):
        message = AlertMessage(
            service_name="<api>",
            url="http://x/ping?a=1&b=2",
            status='DOWN',
            timestamp=self.timestamp,
            error_message="<html>bad</html>"
        )

        text = self.formatter.format_failure(message)

        assert "&lt;api&gt;" in text
        assert "a=1&amp;b=2" in text
        assert "&lt;html&gt;bad&lt;/html&gt;" in text
        assert "#" not in text

    def test_format_failure_without_error(self):
        message = AlertMessage(service_name="svc", url="http://x", status='DOWN',
                               timestamp=self.timestamp)

        assert "未知错误" in self.formatter.format_failure(message)

    def test_format_recovery(self):
        message = AlertMessage(
            service_name="API 服务",
            url="http://localhost:5001/ping",
            status='UP',
            timestamp=self.timestamp,
            response_time=42.4
        )

        text = self.formatter.format_recovery(message)

        assert text.startswith("✅ <b>API 服务 已恢复!</b>")
        assert "<b>恢复时间:</b> 2024-03-01 08:30:00" in text
        assert "<b>响应时间:</b> 42ms" in text

    def test_format_test(self):
        message = AlertMessage(service_name="svc", url="http://x", status='TEST',
                               timestamp=self.timestamp)

        assert "告警测试" in self.formatter.format_test(message)

    def test_timezone_conversion(self):
        try:
            formatter = AlertFormatter(timezone='Asia/Shanghai')
        except AlertConfigError:
            pytest.skip("系统缺少时区数据库")
        utc_time = datetime(2024, 3, 1, 0, 0, 0, tzinfo=timezone.utc)

        assert formatter.format_time(utc_time) == '2024-03-01 08:00:00'

    def test_invalid_timezone(self):
        with pytest.raises(AlertConfigError):
            AlertFormatter(timezone='Mars/Olympus_Mons')
