"""告警器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any


class BaseAlerter(ABC):
    """告警器抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化告警器

        Args:
            name: 告警器名称
            config: 告警器配置参数
        """
        self.name = name
        self.config = config
        self.alerter_type = self.__class__.__name__.replace('Alerter', '').lower()

    @abstractmethod
    async def send_alert(self, text: str) -> bool:
        """
        发送已格式化的告警文本，任何失败都转换为返回值而不抛出

        Args:
            text: 告警文本

        Returns:
            bool: 是否确认送达
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def is_enabled(self) -> bool:
        """告警渠道是否已启用（凭据齐全）"""
        return True

    def get_timeout(self) -> float:
        """
        获取单次发送的超时时间

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 5)
