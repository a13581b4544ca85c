"""检查历史记录

固定容量、最新在前的检查结果列表，只保存在内存中。
"""

import threading
from collections import deque
from typing import Deque, List, Optional

from ..models.health_check import CheckResult

DEFAULT_HISTORY_SIZE = 100


class HistoryLog:
    """有界检查历史

    单写多读：锁只在插入和复制的瞬间持有。
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE):
        if capacity <= 0:
            raise ValueError("历史记录容量必须是正整数")
        self.capacity = capacity
        self._entries: Deque[CheckResult] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, result: CheckResult):
        """在头部插入结果，超出容量时淘汰最旧的记录"""
        with self._lock:
            self._entries.appendleft(result)

    def snapshot(self, limit: Optional[int] = None) -> List[CheckResult]:
        """获取最新在前的历史副本

        Args:
            limit: 限制返回记录数量
        """
        with self._lock:
            entries = list(self._entries)
        if limit is not None:
            entries = entries[:limit]
        return entries

    def latest(self) -> Optional[CheckResult]:
        with self._lock:
            return self._entries[0] if self._entries else None

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
