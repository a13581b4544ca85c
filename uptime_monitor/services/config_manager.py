"""配置管理器

配置来源按优先级从低到高：内置默认值 -> 可选的 YAML 配置文件 -> 环境变量。
"""

import copy
import os
from typing import Dict, Any, Optional, Mapping

import yaml

from ..alerts.escalation import DEFAULT_ALERT_INTERVALS
from ..services.history_log import DEFAULT_HISTORY_SIZE
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

ROLE_MONITOR = 'monitor'
ROLE_SERVER = 'server'

DEFAULT_CONFIG: Dict[str, Any] = {
    'global': {
        'check_interval': 60000,  # 毫秒
        'log_level': 'INFO',
        'log_file': None,
        'state_file': '.alert-state.json',
        'history_size': DEFAULT_HISTORY_SIZE,
        'timezone': None,
        'github_actions': False
    },
    'service': {
        'name': 'API 服务',
        'url': 'http://localhost:5001',
        'ping_path': '/ping',
        'api_key': 'your-local-api-key',
        'timeout': 10,
        'main_url': None,
        'main_ping_endpoint': '/ping'
    },
    'alerts': {
        'intervals': list(DEFAULT_ALERT_INTERVALS),
        'telegram': {
            'bot_token': None,
            'chat_id': None,
            'max_retries': 3,
            'retry_delay': 1.0,
            'retry_backoff': 2.0,
            'timeout': 5
        }
    },
    'server': {
        'host': '0.0.0.0',
        'port': 3001,
        'api_key': None
    }
}

# 环境变量 -> (配置段, 配置项, 类型)
ENV_MAPPING = {
    'SERVICE_URL': ('service', 'url', str),
    'SERVICE_NAME': ('service', 'name', str),
    'PROBE_TIMEOUT': ('service', 'timeout', float),
    'MAIN_SERVICE_URL': ('service', 'main_url', str),
    'PING_ENDPOINT': ('service', 'main_ping_endpoint', str),
    'TELEGRAM_BOT_TOKEN': ('alerts.telegram', 'bot_token', str),
    'TELEGRAM_CHAT_ID': ('alerts.telegram', 'chat_id', str),
    'PORT': ('server', 'port', int),
    'CHECK_INTERVAL': ('global', 'check_interval', int),
    'STATE_FILE': ('global', 'state_file', str),
    'LOG_LEVEL': ('global', 'log_level', str),
    'LOG_FILE': ('global', 'log_file', str),
    'HISTORY_SIZE': ('global', 'history_size', int),
    'ALERT_TIMEZONE': ('global', 'timezone', str),
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _join_url(base: str, path: str) -> str:
    if not path:
        return base
    if not path.startswith('/'):
        path = '/' + path
    return base.rstrip('/') + path


class ConfigManager:
    """配置管理器，负责加载、合并和验证配置"""

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: YAML 配置文件路径，可选
            environ: 环境变量映射，默认使用 os.environ
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载配置

        Returns:
            Dict[str, Any]: 合并后的配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            _deep_merge(config, self._load_file())

        self._apply_environment(config)
        self._validate_config(config)

        self.config = config
        self.logger.debug(
            f"配置加载完成: 目标={self.get_target(ROLE_MONITOR)['url']}, "
            f"检查间隔={config['global']['check_interval']}ms"
        )
        return self.config

    def _load_file(self) -> Dict[str, Any]:
        self.logger.info(f"加载配置文件: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                file_config = yaml.safe_load(file)
        except FileNotFoundError:
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)
        except PermissionError as e:
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              config_path=self.config_path, cause=e)
        except yaml.YAMLError as e:
            raise ConfigError("YAML格式错误", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)

        if file_config is None:
            return {}

        if not isinstance(file_config, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=self.config_path)

        return file_config

    def _apply_environment(self, config: Dict[str, Any]):
        for env_name, (section_path, key, value_type) in ENV_MAPPING.items():
            raw = self.environ.get(env_name)
            if raw is None or raw == '':
                continue

            try:
                value = value_type(raw)
            except ValueError as e:
                raise ConfigError(f"环境变量 {env_name} 的值无效: {raw!r}", cause=e)

            section = config
            for part in section_path.split('.'):
                section = section.setdefault(part, {})
            section[key] = value

        # 同一个共享密钥既用于探测上游，也用于保护控制接口
        api_key = self.environ.get('API_KEY')
        if api_key:
            config['service']['api_key'] = api_key
            config['server']['api_key'] = api_key

        if self.environ.get('GITHUB_ACTIONS'):
            config['global']['github_actions'] = True

    def _validate_config(self, config: Dict[str, Any]):
        for section in ('global', 'service', 'alerts', 'server'):
            if not isinstance(config.get(section), dict):
                raise ConfigError(f"{section} 配置必须是字典类型")

        ConfigValidator.validate_global_config(config['global'])
        ConfigValidator.validate_service_config(config['service'])
        ConfigValidator.validate_alert_config(config['alerts'])
        ConfigValidator.validate_server_config(config['server'])

    def get_global_config(self) -> Dict[str, Any]:
        return self.config.get('global', {})

    def get_service_config(self) -> Dict[str, Any]:
        return self.config.get('service', {})

    def get_alerts_config(self) -> Dict[str, Any]:
        return self.config.get('alerts', {})

    def get_server_config(self) -> Dict[str, Any]:
        """获取控制服务配置

        api_key 只来自 API_KEY 环境变量或配置文件中的 server.api_key，
        不会沿用探测用的 service.api_key 默认值；为空时控制接口拒绝所有请求。
        """
        return dict(self.config.get('server', {}))

    def get_check_interval_seconds(self) -> float:
        return self.get_global_config().get('check_interval', 60000) / 1000

    def get_target(self, role: str = ROLE_MONITOR) -> Dict[str, Any]:
        """
        获取探测目标

        Args:
            role: 'monitor' 探测 {service.url}{service.ping_path}；
                  'server' 优先探测 {main_url}{main_ping_endpoint}

        Returns:
            Dict[str, Any]: 包含 name、url、api_key、timeout 的探测配置
        """
        service = self.get_service_config()
        url = _join_url(service['url'], service.get('ping_path', '/ping'))

        if role == ROLE_SERVER and service.get('main_url'):
            url = _join_url(service['main_url'], service.get('main_ping_endpoint') or '/ping')

        return {
            'name': service.get('name'),
            'url': url,
            'api_key': service.get('api_key'),
            'timeout': service.get('timeout', 10)
        }
