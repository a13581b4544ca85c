"""配置验证工具"""

from typing import Dict, Any

from .exceptions import ConfigError

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        # 检查间隔单位为毫秒
        check_interval = global_config.get('check_interval')
        if check_interval is not None and not _is_positive_number(check_interval):
            raise ConfigError("check_interval 必须是正数（毫秒）")

        history_size = global_config.get('history_size')
        if history_size is not None:
            if not isinstance(history_size, int) or isinstance(history_size, bool) \
                    or history_size <= 0:
                raise ConfigError("history_size 必须是正整数")

        log_level = global_config.get('log_level')
        if log_level is not None and str(log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

    @staticmethod
    def validate_service_config(service_config: Dict[str, Any]) -> None:
        """
        验证被监控服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(service_config, dict):
            raise ConfigError("service 配置必须是字典类型")

        for field in ('url', 'main_url'):
            url = service_config.get(field)
            if url and not str(url).startswith(('http://', 'https://')):
                raise ConfigError(f"service.{field} 必须以 http:// 或 https:// 开头: {url}")

        if not service_config.get('url'):
            raise ConfigError("service 缺少必需的配置项: url")

        timeout = service_config.get('timeout')
        if timeout is not None and not _is_positive_number(timeout):
            raise ConfigError("service.timeout 必须是正数（秒）")

    @staticmethod
    def validate_alert_config(alert_config: Dict[str, Any]) -> None:
        """
        验证告警配置（升级阶梯和 Telegram 发送参数）

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(alert_config, dict):
            raise ConfigError("alerts 配置必须是字典类型")

        intervals = alert_config.get('intervals')
        if intervals is not None:
            if not isinstance(intervals, list) or not intervals:
                raise ConfigError("alerts.intervals 必须是非空列表")
            if not all(_is_positive_number(i) for i in intervals):
                raise ConfigError("alerts.intervals 的每一项必须是正数（秒）")
            if list(intervals) != sorted(intervals):
                raise ConfigError("alerts.intervals 必须按升序排列")

        telegram = alert_config.get('telegram', {})
        if not isinstance(telegram, dict):
            raise ConfigError("alerts.telegram 配置必须是字典类型")

        max_retries = telegram.get('max_retries')
        if max_retries is not None:
            if not isinstance(max_retries, int) or isinstance(max_retries, bool) \
                    or max_retries < 0:
                raise ConfigError("alerts.telegram.max_retries 不能为负数")

        retry_delay = telegram.get('retry_delay')
        if retry_delay is not None:
            if not isinstance(retry_delay, (int, float)) or retry_delay < 0:
                raise ConfigError("alerts.telegram.retry_delay 不能为负数")

        retry_backoff = telegram.get('retry_backoff')
        if retry_backoff is not None and not _is_positive_number(retry_backoff):
            raise ConfigError("alerts.telegram.retry_backoff 必须是正数")

        timeout = telegram.get('timeout')
        if timeout is not None and not _is_positive_number(timeout):
            raise ConfigError("alerts.telegram.timeout 必须是正数（秒）")

    @staticmethod
    def validate_server_config(server_config: Dict[str, Any]) -> None:
        """
        验证控制服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(server_config, dict):
            raise ConfigError("server 配置必须是字典类型")

        port = server_config.get('port')
        if port is not None:
            if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
                raise ConfigError(f"server.port 必须是 1-65535 之间的整数: {port}")
