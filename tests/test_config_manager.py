"""测试配置管理器"""

import os
import tempfile

import pytest
import yaml

from uptime_monitor.services.config_manager import (ConfigManager, DEFAULT_CONFIG,
                                                    ROLE_MONITOR, ROLE_SERVER)
from uptime_monitor.utils.exceptions import ConfigError, ErrorCode


class TestConfigManager:
    """测试ConfigManager类"""

    def setup_method(self):
        """设置测试环境"""
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = os.path.join(self.temp_dir, 'config.yaml')

    def teardown_method(self):
        """清理测试环境"""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config):
        with open(self.config_file, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, allow_unicode=True)

    def test_defaults_without_file_or_env(self):
        """测试没有配置文件和环境变量时使用默认值"""
        manager = ConfigManager(environ={})
        config = manager.load_config()

        assert config['global']['check_interval'] == 60000
        assert config['alerts']['intervals'] == [120, 600, 1800, 3600, 3600]
        assert config['server']['port'] == 3001
        assert manager.get_check_interval_seconds() == 60
        assert manager.get_target(ROLE_MONITOR) == {
            'name': 'API 服务',
            'url': 'http://localhost:5001/ping',
            'api_key': 'your-local-api-key',
            'timeout': 10
        }

    def test_defaults_not_mutated(self):
        manager = ConfigManager(environ={'SERVICE_URL': 'https://changed.example.com'})
        manager.load_config()

        assert DEFAULT_CONFIG['service']['url'] == 'http://localhost:5001'

    def test_environment_overrides(self):
        """测试环境变量覆盖"""
        environ = {
            'SERVICE_URL': 'https://api.example.com/',
            'API_KEY': 'shared-secret',
            'TELEGRAM_BOT_TOKEN': 'bot-token',
            'TELEGRAM_CHAT_ID': '-100123',
            'PORT': '8080',
            'CHECK_INTERVAL': '30000',
            'PROBE_TIMEOUT': '2.5',
            'HISTORY_SIZE': '20',
        }
        manager = ConfigManager(environ=environ)
        config = manager.load_config()

        assert manager.get_target(ROLE_MONITOR)['url'] == 'https://api.example.com/ping'
        assert manager.get_target(ROLE_MONITOR)['api_key'] == 'shared-secret'
        assert manager.get_target(ROLE_MONITOR)['timeout'] == 2.5
        assert manager.get_server_config()['api_key'] == 'shared-secret'
        assert config['alerts']['telegram']['bot_token'] == 'bot-token'
        assert config['alerts']['telegram']['chat_id'] == '-100123'
        assert config['server']['port'] == 8080
        assert manager.get_check_interval_seconds() == 30
        assert config['global']['history_size'] == 20
        assert config['global']['github_actions'] is False

    def test_empty_environment_values_ignored(self):
        manager = ConfigManager(environ={'SERVICE_URL': '', 'PORT': ''})
        config = manager.load_config()

        assert config['service']['url'] == 'http://localhost:5001'
        assert config['server']['port'] == 3001

    def test_github_actions_flag(self):
        manager = ConfigManager(environ={'GITHUB_ACTIONS': 'true'})

        assert manager.load_config()['global']['github_actions'] is True

    @pytest.mark.parametrize('environ', [
        {'PORT': 'abc'},
        {'CHECK_INTERVAL': '1m'},
        {'CHECK_INTERVAL': '0'},
        {'PORT': '70000'},
        {'SERVICE_URL': 'localhost:5001'},
        {'LOG_LEVEL': 'VERBOSE'},
    ])
    def test_invalid_environment(self, environ):
        with pytest.raises(ConfigError):
            ConfigManager(environ=environ).load_config()

    def test_server_role_target(self):
        """测试控制服务优先探测主服务"""
        environ = {
            'SERVICE_URL': 'http://monitor-target:5001',
            'MAIN_SERVICE_URL': 'https://main.example.com',
            'PING_ENDPOINT': 'healthz',
        }
        manager = ConfigManager(environ=environ)
        manager.load_config()

        assert manager.get_target(ROLE_MONITOR)['url'] == 'http://monitor-target:5001/ping'
        assert manager.get_target(ROLE_SERVER)['url'] == 'https://main.example.com/healthz'

    def test_server_role_falls_back_to_service_url(self):
        manager = ConfigManager(environ={'SERVICE_URL': 'http://monitor-target:5001'})
        manager.load_config()

        assert manager.get_target(ROLE_SERVER)['url'] == 'http://monitor-target:5001/ping'

    def test_load_yaml_file_with_env_precedence(self):
        """测试配置文件与环境变量合并，环境变量优先"""
        self._write_config({
            'global': {'check_interval': 15000, 'timezone': 'UTC'},
            'service': {'name': '订单服务', 'url': 'https://orders.example.com'},
            'alerts': {'intervals': [60, 300]},
            'server': {'port': 9000}
        })

        manager = ConfigManager(self.config_file, environ={'PORT': '9100'})
        config = manager.load_config()

        assert config['global']['check_interval'] == 15000
        assert config['global']['log_level'] == 'INFO'
        assert config['service']['name'] == '订单服务'
        assert config['service']['api_key'] == 'your-local-api-key'
        assert config['alerts']['intervals'] == [60, 300]
        assert config['alerts']['telegram']['max_retries'] == 3
        assert config['server']['port'] == 9100

    def test_empty_yaml_file(self):
        self._write_config(None)

        config = ConfigManager(self.config_file, environ={}).load_config()

        assert config['server']['port'] == 3001

    def test_missing_file(self):
        with pytest.raises(ConfigError) as exc_info:
            ConfigManager('/nonexistent/config.yaml', environ={}).load_config()

        assert exc_info.value.error_code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_invalid_yaml(self):
        with open(self.config_file, 'w', encoding='utf-8') as f:
            f.write('global: [unclosed')

        with pytest.raises(ConfigError) as exc_info:
            ConfigManager(self.config_file, environ={}).load_config()

        assert exc_info.value.error_code == ErrorCode.CONFIG_PARSE_ERROR

    def test_non_dict_root(self):
        self._write_config(['not', 'a', 'dict'])

        with pytest.raises(ConfigError):
            ConfigManager(self.config_file, environ={}).load_config()

    def test_invalid_intervals_in_file(self):
        self._write_config({'alerts': {'intervals': [600, 120]}})

        with pytest.raises(ConfigError):
            ConfigManager(self.config_file, environ={}).load_config()

    def test_server_key_empty_without_api_key(self):
        """测试未配置 API_KEY 时控制接口密钥为空，不沿用探测默认密钥"""
        manager = ConfigManager(environ={})
        manager.load_config()

        assert manager.get_target(ROLE_MONITOR)['api_key'] == 'your-local-api-key'
        assert not manager.get_server_config()['api_key']

    def test_server_key_from_file(self):
        self._write_config({
            'service': {'api_key': 'probe-only-key'},
            'server': {'api_key': 'control-key'}
        })

        manager = ConfigManager(self.config_file, environ={})
        manager.load_config()

        assert manager.get_target(ROLE_MONITOR)['api_key'] == 'probe-only-key'
        assert manager.get_server_config()['api_key'] == 'control-key'

    def test_service_key_in_file_does_not_open_control_server(self):
        self._write_config({'service': {'api_key': 'probe-only-key'}})

        manager = ConfigManager(self.config_file, environ={})
        manager.load_config()

        assert not manager.get_server_config()['api_key']

    def test_invalid_yaml_keeps_cause(self):
        with open(self.config_file, 'w', encoding='utf-8') as f:
            f.write('global: [unclosed')

        with pytest.raises(ConfigError) as exc_info:
            ConfigManager(self.config_file, environ={}).load_config()

        assert isinstance(exc_info.value.cause, yaml.YAMLError)
        assert "(原因: " in exc_info.value.format_error()
