"""告警模块"""

from .base import BaseAlerter
from .escalation import EscalationEngine, DEFAULT_ALERT_INTERVALS
from .formatter import AlertFormatter
from .telegram_alerter import TelegramAlerter

__all__ = [
    'BaseAlerter',
    'TelegramAlerter',
    'AlertFormatter',
    'EscalationEngine',
    'DEFAULT_ALERT_INTERVALS'
]
