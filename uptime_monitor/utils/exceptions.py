"""异常定义

启动阶段的配置问题抛出 ConfigError，由 main.py 打印 format_error() 后以状态码 1 退出；
告警发送的单次失败抛出 AlertSendError，在告警器内部转换为返回值。
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """错误代码"""
    UNKNOWN_ERROR = 1000

    # 配置 (2xxx)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 告警 (4xxx)
    ALERT_CONFIG_ERROR = 4000
    ALERT_SEND_ERROR = 4001


class UptimeMonitorError(Exception):
    """可用性监控异常基类"""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
                 details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def format_error(self) -> str:
        """形如 "[CONFIG_PARSE_ERROR] 消息 (详情: k=v) (原因: ...)" 的单行描述"""
        text = f"[{self.error_code.name}] {self.message}"
        if self.details:
            text += " (详情: " + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")"
        if self.cause:
            text += f" (原因: {self.cause})"
        return text


class ConfigError(UptimeMonitorError):
    """配置无效，进程无法启动"""

    def __init__(self, message: str,
                 error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
                 config_path: Optional[str] = None,
                 cause: Optional[Exception] = None):
        details = {'config_path': config_path} if config_path else None
        super().__init__(message, error_code, details, cause)


class AlertError(UptimeMonitorError):
    """告警渠道相关异常"""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.ALERT_SEND_ERROR,
                 alert_name: Optional[str] = None,
                 cause: Optional[Exception] = None):
        details = {'alert_name': alert_name} if alert_name else None
        super().__init__(message, error_code, details, cause)


class AlertConfigError(AlertError):
    """告警渠道配置无效"""

    def __init__(self, message: str, alert_name: Optional[str] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.ALERT_CONFIG_ERROR, alert_name, cause)


class AlertSendError(AlertError):
    """单次告警发送失败（网络错误或超时）"""

    def __init__(self, message: str, alert_name: Optional[str] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.ALERT_SEND_ERROR, alert_name, cause)
