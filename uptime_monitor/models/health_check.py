"""健康检查与告警状态相关的数据模型"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

HEALTHY = 'healthy'
UNHEALTHY = 'unhealthy'


@dataclass
class CheckResult:
    """单次探测结果，只保存在内存中的历史记录里"""
    service_name: str
    url: str
    status: str  # "healthy" / "unhealthy"
    response_time: Optional[float] = None  # 毫秒，仅在完成一次往返时存在
    status_code: Optional[int] = None
    data: Any = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_healthy(self) -> bool:
        return self.status == HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'timestamp': self.timestamp.isoformat(),
            'service_name': self.service_name,
            'url': self.url,
            'status': self.status
        }
        if self.response_time is not None:
            result['response_time'] = round(self.response_time, 2)
        if self.status_code is not None:
            result['status_code'] = self.status_code
        if self.data is not None:
            result['data'] = self.data
        if self.error_message is not None:
            result['error'] = self.error_message
        return result


@dataclass
class AlertState:
    """告警状态，跨进程重启持久化

    last_alert_time 为毫秒时间戳；alert_count == 0 且 last_alert_time 为 None
    表示自上次恢复（或启动）以来尚未发送过告警。
    """
    last_alert_time: Optional[int] = None
    alert_count: int = 0
    is_service_down: bool = False

    @property
    def is_alerting(self) -> bool:
        return self.is_service_down or self.alert_count > 0

    def to_dict(self) -> Dict[str, Any]:
        """序列化为状态文件格式"""
        return {
            'lastAlertTime': self.last_alert_time,
            'alertCount': self.alert_count,
            'isServiceDown': self.is_service_down
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AlertState':
        """从状态文件格式解析

        Raises:
            ValueError: 字段缺失或类型不正确
        """
        if not isinstance(data, dict):
            raise ValueError("状态数据必须是JSON对象")

        last_alert_time = data.get('lastAlertTime')
        alert_count = data.get('alertCount', 0)
        is_service_down = data.get('isServiceDown', False)

        if last_alert_time is not None:
            if isinstance(last_alert_time, bool) or not isinstance(last_alert_time,
                                                                   (int, float)):
                raise ValueError(f"lastAlertTime 类型无效: {last_alert_time!r}")
            if not math.isfinite(last_alert_time):
                raise ValueError(f"lastAlertTime 不是有限数值: {last_alert_time!r}")
            last_alert_time = int(last_alert_time)

        if isinstance(alert_count, bool) or not isinstance(alert_count, int) \
                or alert_count < 0:
            raise ValueError(f"alertCount 必须是非负整数: {alert_count!r}")

        if not isinstance(is_service_down, bool):
            raise ValueError(f"isServiceDown 必须是布尔值: {is_service_down!r}")

        return cls(
            last_alert_time=last_alert_time,
            alert_count=alert_count,
            is_service_down=is_service_down
        )


@dataclass
class AlertMessage:
    """告警消息模型"""
    service_name: str
    url: str
    status: str  # "DOWN", "UP"
    timestamp: datetime = field(default_factory=datetime.now)
    error_message: Optional[str] = None
    alert_number: Optional[int] = None
    response_time: Optional[float] = None


class EscalationAction(Enum):
    """升级引擎单步处理的动作"""
    NONE = 'none'
    SUPPRESSED = 'suppressed'
    ALERT_SENT = 'alert_sent'
    ALERT_FAILED = 'alert_failed'
    NOTIFICATIONS_DISABLED = 'notifications_disabled'
    RECOVERED = 'recovered'


@dataclass
class EscalationOutcome:
    """升级引擎单步处理结果"""
    action: EscalationAction
    state: AlertState
    delivered: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action.value,
            'delivered': self.delivered,
            'state': self.state.to_dict()
        }
