"""数据模型模块"""

from .health_check import (HEALTHY, UNHEALTHY, CheckResult, AlertState, AlertMessage,
                           EscalationAction, EscalationOutcome)

__all__ = ['HEALTHY', 'UNHEALTHY', 'CheckResult', 'AlertState', 'AlertMessage',
           'EscalationAction', 'EscalationOutcome']
