"""告警状态存储模块

负责告警状态的读取和持久化。状态文件缺失、不可读或格式错误时
回退到默认状态，读写失败只记录日志，不会中断检查流程。
"""

import json
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..models.health_check import AlertState
from ..utils.log_manager import get_logger


class AlertStateStore:
    """告警状态存储

    state_file 为 None 时只保存在内存中（测试和单次运行场景）。
    写入使用临时文件加 os.replace，保证文件内容始终完整。
    """

    def __init__(self, state_file: Optional[str] = None):
        """初始化状态存储

        Args:
            state_file: 状态文件路径，如果为None则不持久化
        """
        self.state_file = state_file
        self._memory_state = AlertState()
        self.logger = get_logger('state_store')

    def load(self) -> AlertState:
        """读取当前告警状态

        Returns:
            AlertState: 持久化的状态；无法读取时返回默认状态
        """
        if not self.state_file:
            return replace(self._memory_state)

        if not os.path.exists(self.state_file):
            self.logger.debug(f"状态文件不存在，使用默认状态: {self.state_file}")
            return AlertState()

        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return AlertState.from_dict(data)

        except (OSError, ValueError) as e:
            # json.JSONDecodeError 是 ValueError 的子类
            self.logger.error(f"读取告警状态失败，使用默认状态: {e}")
            return AlertState()

    def save(self, state: AlertState) -> bool:
        """保存告警状态

        Args:
            state: 新的告警状态

        Returns:
            bool: 是否写入成功
        """
        if not self.state_file:
            self._memory_state = replace(state)
            return True

        tmp_path = None
        try:
            directory = Path(self.state_file).parent
            directory.mkdir(parents=True, exist_ok=True)

            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{Path(self.state_file).name}.", suffix='.tmp', dir=directory)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_path, self.state_file)
            tmp_path = None

            self.logger.debug(f"告警状态已保存: {state.to_dict()}")
            return True

        except OSError as e:
            self.logger.error(f"保存告警状态失败: {e}")
            return False

        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def reset(self) -> bool:
        """恢复为默认状态"""
        return self.save(AlertState())
