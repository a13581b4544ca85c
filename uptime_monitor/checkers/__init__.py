"""健康检查器模块"""

from .base import BaseHealthChecker
from .ping_checker import PingHealthChecker

__all__ = ['BaseHealthChecker', 'PingHealthChecker']
