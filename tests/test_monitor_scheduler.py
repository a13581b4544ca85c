"""测试监控调度器"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from uptime_monitor.checkers.base import BaseHealthChecker
from uptime_monitor.models.health_check import (AlertState, CheckResult, EscalationAction,
                                                EscalationOutcome, HEALTHY, UNHEALTHY)
from uptime_monitor.services.history_log import HistoryLog
from uptime_monitor.services.monitor_scheduler import MonitorScheduler


class SequenceChecker(BaseHealthChecker):
    """按顺序返回预设状态的检查器"""

    def __init__(self, statuses):
        super().__init__('API 服务', {'url': 'http://localhost:5001/ping'})
        self.statuses = list(statuses)
        self.calls = 0

    async def check_health(self) -> CheckResult:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        return CheckResult(
            service_name=self.name,
            url=self.config['url'],
            status=status,
            response_time=5.0 if status == HEALTHY else None,
            error_message=None if status == HEALTHY else "Connection refused"
        )

    def validate_config(self) -> bool:
        return True


class TestMonitorScheduler:
    """测试MonitorScheduler类"""

    def setup_method(self):
        self.history = HistoryLog(10)
        self.checker = SequenceChecker([HEALTHY, UNHEALTHY, HEALTHY])
        self.scheduler = MonitorScheduler(self.checker, self.history, check_interval=0.01)

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            MonitorScheduler(self.checker, self.history, check_interval=0)

    @pytest.mark.asyncio
    async def test_run_check_cycle_records_history(self):
        result, outcome = await self.scheduler.run_check_cycle()

        assert result.status == HEALTHY
        assert outcome is None
        assert self.history.latest() is result
        assert self.scheduler.total_checks == 1
        assert self.scheduler.unhealthy_checks == 0
        assert self.scheduler.last_status == HEALTHY

    @pytest.mark.asyncio
    async def test_run_check_cycle_invokes_callback(self):
        expected = EscalationOutcome(EscalationAction.ALERT_SENT, AlertState(1, 1, True), True)
        callback = AsyncMock(return_value=expected)
        self.scheduler.set_check_result_callback(callback)

        await self.scheduler.run_check_cycle()
        result, outcome = await self.scheduler.run_check_cycle()

        assert result.status == UNHEALTHY
        assert outcome is expected
        assert callback.call_count == 2
        callback.assert_called_with(result)
        assert self.scheduler.unhealthy_checks == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        task = asyncio.create_task(self.scheduler.start())

        for _ in range(100):
            if self.checker.calls >= 3:
                break
            await asyncio.sleep(0.01)

        await self.scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert self.checker.calls >= 3
        assert self.scheduler.is_running is False
        statuses = [entry.status for entry in self.history.snapshot()]
        assert statuses[-3:] == [HEALTHY, UNHEALTHY, HEALTHY]

    @pytest.mark.asyncio
    async def test_cycle_error_does_not_stop_loop(self):
        callback = AsyncMock(side_effect=[RuntimeError("boom"), None, None, None, None])
        self.scheduler.set_check_result_callback(callback)

        task = asyncio.create_task(self.scheduler.start())
        for _ in range(100):
            if callback.call_count >= 2:
                break
            await asyncio.sleep(0.01)

        await self.scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert callback.call_count >= 2

    @pytest.mark.asyncio
    async def test_get_scheduler_stats(self):
        await self.scheduler.run_check_cycle()

        stats = self.scheduler.get_scheduler_stats()

        assert stats['is_running'] is False
        assert stats['target_url'] == 'http://localhost:5001/ping'
        assert stats['total_checks'] == 1
        assert stats['history_size'] == 1
        assert stats['last_status'] == HEALTHY
        assert stats['last_check_time'] is not None
