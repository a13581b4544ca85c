"""健康检查器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from ..models.health_check import CheckResult
from ..utils.log_manager import get_logger


class BaseHealthChecker(ABC):
    """健康检查器抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化健康检查器

        Args:
            name: 服务名称
            config: 探测配置参数
        """
        self.name = name
        self.config = config
        self.checker_type = self.__class__.__name__.replace('HealthChecker', '').lower()
        self.logger = get_logger(f'checker.{self.checker_type}')

    @abstractmethod
    async def check_health(self) -> CheckResult:
        """
        执行一次健康检查并返回结果，不抛出异常

        Returns:
            CheckResult: 探测结果
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

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 10)
