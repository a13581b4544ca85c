"""工具模块"""

from .exceptions import (UptimeMonitorError, ConfigError, AlertError, AlertConfigError,
                         AlertSendError)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'UptimeMonitorError', 'ConfigError', 'AlertError', 'AlertConfigError', 'AlertSendError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
