"""告警升级引擎

根据每次检查结果驱动 {健康, 告警中(连续次数)} 状态机：

- 持续故障时按递增的间隔阶梯发送告警，第一次故障立即告警；
- 只有告警确认送达后才推进 alert_count / last_alert_time，
  发送失败时下一次检查会在同一阶梯位置重试；
- 告警中收到健康结果时发送恢复通知并重置状态。

读取状态、判断、等待发送、持久化在同一个锁内完成，定时检查和手动
触发的检查按顺序执行。
"""

import asyncio
import time
from datetime import datetime
from typing import Callable, List, Optional, Dict, Any

from .base import BaseAlerter
from .formatter import AlertFormatter
from ..models.health_check import (AlertMessage, AlertState, CheckResult,
                                   EscalationAction, EscalationOutcome)
from ..services.alert_state_store import AlertStateStore
from ..utils.log_manager import get_logger

# 告警间隔阶梯（秒）：2分钟、10分钟、30分钟、1小时，之后每小时一次
DEFAULT_ALERT_INTERVALS = [2 * 60, 10 * 60, 30 * 60, 60 * 60, 60 * 60]


def _current_time_ms() -> int:
    return int(time.time() * 1000)


class EscalationEngine:
    """告警升级引擎"""

    def __init__(self, state_store: AlertStateStore, alerter: BaseAlerter,
                 formatter: Optional[AlertFormatter] = None,
                 intervals: Optional[List[float]] = None,
                 clock: Optional[Callable[[], int]] = None):
        """初始化告警升级引擎

        Args:
            state_store: 告警状态存储
            alerter: 通知发送器
            formatter: 告警文本格式化器
            intervals: 告警间隔阶梯（秒），按升序排列，最后一项重复使用
            clock: 返回当前毫秒时间戳的函数
        """
        self.state_store = state_store
        self.alerter = alerter
        self.formatter = formatter or AlertFormatter()
        self.intervals = list(intervals or DEFAULT_ALERT_INTERVALS)
        self._clock = clock or _current_time_ms
        self._lock = asyncio.Lock()
        self.logger = get_logger('escalation')

    def required_interval(self, alert_count: int) -> float:
        """第 alert_count 次告警之后需要等待的最短间隔（秒）"""
        index = min(alert_count, len(self.intervals) - 1)
        return self.intervals[index]

    def should_alert(self, state: AlertState, now: int) -> bool:
        """判断当前是否允许发送故障告警

        Args:
            state: 当前告警状态
            now: 当前毫秒时间戳
        """
        if state.last_alert_time is None:
            return True

        elapsed = (now - state.last_alert_time) / 1000
        return elapsed >= self.required_interval(state.alert_count)

    def get_next_alert_time(self, state: AlertState) -> Optional[int]:
        """下一次允许发送告警的毫秒时间戳，None 表示随时可以告警"""
        if state.last_alert_time is None:
            return None
        return state.last_alert_time + int(self.required_interval(state.alert_count) * 1000)

    async def process_result(self, result: CheckResult) -> EscalationOutcome:
        """处理一次检查结果

        Args:
            result: 检查结果

        Returns:
            EscalationOutcome: 本次处理的动作和处理后的状态
        """
        async with self._lock:
            state = self.state_store.load()

            if result.is_healthy:
                return await self._handle_healthy(result, state)

            return await self._handle_unhealthy(result, state)

    async def _handle_healthy(self, result: CheckResult,
                              state: AlertState) -> EscalationOutcome:
        if not state.is_alerting:
            return EscalationOutcome(EscalationAction.NONE, state)

        self.logger.info(
            f"服务 {result.service_name} 已恢复，此前发送了 {state.alert_count} 次告警")

        delivered = False
        if self.alerter.is_enabled():
            message = AlertMessage(
                service_name=result.service_name,
                url=result.url,
                status='UP',
                timestamp=result.timestamp,
                response_time=result.response_time
            )
            delivered = await self.alerter.send_alert(self.formatter.format_recovery(message))
            if not delivered:
                self.logger.warning(f"服务 {result.service_name} 恢复通知发送失败")

        # 恢复通知是否送达都要重置状态
        new_state = AlertState()
        self.state_store.save(new_state)

        return EscalationOutcome(EscalationAction.RECOVERED, new_state, delivered)

    async def _handle_unhealthy(self, result: CheckResult,
                                state: AlertState) -> EscalationOutcome:
        now = self._clock()

        if not self.should_alert(state, now):
            remaining = (self.get_next_alert_time(state) - now) / 1000
            self.logger.info(
                f"告警已抑制（距上次告警过近）：{result.service_name} "
                f"已告警 {state.alert_count} 次，{remaining:.0f} 秒后可再次告警"
            )
            return EscalationOutcome(EscalationAction.SUPPRESSED, state)

        if not self.alerter.is_enabled():
            # 通知被禁用时不推进状态，避免重新启用后告警计数失真
            self.logger.warning(f"服务 {result.service_name} 不健康，但通知渠道未启用")
            return EscalationOutcome(EscalationAction.NOTIFICATIONS_DISABLED, state)

        alert_number = state.alert_count + 1
        message = AlertMessage(
            service_name=result.service_name,
            url=result.url,
            status='DOWN',
            timestamp=datetime.fromtimestamp(now / 1000),
            error_message=result.error_message,
            alert_number=alert_number
        )

        delivered = await self.alerter.send_alert(self.formatter.format_failure(message))
        if not delivered:
            self.logger.error(
                f"服务 {result.service_name} 第 {alert_number} 次告警发送失败，"
                f"下次检查时重试"
            )
            return EscalationOutcome(EscalationAction.ALERT_FAILED, state)

        new_state = AlertState(
            last_alert_time=now,
            alert_count=alert_number,
            is_service_down=True
        )
        self.state_store.save(new_state)
        self.logger.warning(f"服务 {result.service_name} 第 {alert_number} 次告警已发送")

        return EscalationOutcome(EscalationAction.ALERT_SENT, new_state, True)

    def get_status(self) -> Dict[str, Any]:
        """获取告警状态摘要"""
        state = self.state_store.load()
        next_alert_time = self.get_next_alert_time(state)
        return {
            'alert_state': state.to_dict(),
            'next_alert_time': (
                datetime.fromtimestamp(next_alert_time / 1000).isoformat()
                if next_alert_time is not None else None
            ),
            'notifications_enabled': self.alerter.is_enabled(),
            'alert_intervals': self.intervals
        }
