#!/usr/bin/env python3
"""
可用性监控主应用程序入口

- 默认（serve）模式：定时检查被监控服务，同时提供控制与查询 HTTP 接口
- --check-once：执行一次检查周期后退出，供 CI 定时任务调用
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from uptime_monitor.alerts.escalation import EscalationEngine
from uptime_monitor.alerts.formatter import AlertFormatter
from uptime_monitor.alerts.telegram_alerter import TelegramAlerter
from uptime_monitor.checkers.ping_checker import PingHealthChecker
from uptime_monitor.models.health_check import AlertMessage
from uptime_monitor.services.alert_state_store import AlertStateStore
from uptime_monitor.services.config_manager import ConfigManager, ROLE_MONITOR, ROLE_SERVER
from uptime_monitor.services.control_server import ControlServer
from uptime_monitor.services.history_log import HistoryLog
from uptime_monitor.services.monitor_scheduler import MonitorScheduler
from uptime_monitor.utils.exceptions import UptimeMonitorError, ConfigError
from uptime_monitor.utils.log_manager import log_manager, get_logger

# 版本信息
__version__ = "1.0.0"


class UptimeMonitorApp:
    """可用性监控主应用程序类"""

    def __init__(self, config_path: Optional[str] = None, role: str = ROLE_SERVER,
                 overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: YAML 配置文件路径，可选
            role: 'server' 长期运行并提供 HTTP 接口；'monitor' 单次检查
            overrides: 命令行覆盖的全局配置（log_level、log_file）
        """
        self.config_path = config_path
        self.role = role
        self.overrides = overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        # 核心组件
        self.config_manager: Optional[ConfigManager] = None
        self.state_store: Optional[AlertStateStore] = None
        self.history: Optional[HistoryLog] = None
        self.alerter: Optional[TelegramAlerter] = None
        self.formatter: Optional[AlertFormatter] = None
        self.engine: Optional[EscalationEngine] = None
        self.monitor_scheduler: Optional[MonitorScheduler] = None
        self.control_server: Optional[ControlServer] = None

        self.background_tasks = set()

    async def initialize(self):
        """初始化应用程序组件"""
        try:
            self.config_manager = ConfigManager(self.config_path)
            config = self.config_manager.load_config()
            global_config = config['global']
            global_config.update({k: v for k, v in self.overrides.items() if v})

            self._configure_logging(global_config)
            self.logger = get_logger('main')
            self.logger.info(f"开始初始化可用性监控 (模式: {self.role})")

            self.state_store = AlertStateStore(global_config.get('state_file'))
            self.history = HistoryLog(global_config.get('history_size', 100))

            alerts_config = self.config_manager.get_alerts_config()
            self.alerter = TelegramAlerter('telegram', alerts_config.get('telegram', {}))
            self.formatter = AlertFormatter(global_config.get('timezone'))
            self.engine = EscalationEngine(
                self.state_store,
                self.alerter,
                formatter=self.formatter,
                intervals=alerts_config.get('intervals')
            )

            target = self.config_manager.get_target(self.role)
            checker = PingHealthChecker(target['name'], target)
            if not checker.validate_config():
                raise ConfigError(f"探测配置无效: {target['url']}")

            self.monitor_scheduler = MonitorScheduler(
                checker,
                self.history,
                self.config_manager.get_check_interval_seconds()
            )
            self.monitor_scheduler.set_check_result_callback(self.engine.process_result)

            if self.role == ROLE_SERVER:
                server_config = self.config_manager.get_server_config()
                self.control_server = ControlServer(
                    self.monitor_scheduler,
                    self.history,
                    engine=self.engine,
                    api_key=server_config.get('api_key'),
                    host=server_config.get('host', '0.0.0.0'),
                    port=server_config.get('port', 3001)
                )

            self.logger.info("应用程序组件初始化完成")

        except Exception as e:
            if self.logger:
                self.logger.error(f"应用程序初始化失败: {e}", exc_info=True)
            else:
                print(f"应用程序初始化失败: {e}", file=sys.stderr)
            raise

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_manager.configure({
            'log_level': global_config.get('log_level', 'INFO'),
            'log_file': global_config.get('log_file'),
            'enable_console': True
        })

    async def start(self):
        """启动应用程序并阻塞到收到关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            self.logger.info("启动可用性监控")

            if self.control_server:
                await self.control_server.start()

            scheduler_task = asyncio.create_task(self.monitor_scheduler.start())
            self.background_tasks.add(scheduler_task)
            scheduler_task.add_done_callback(self.background_tasks.discard)

            self.logger.info("可用性监控启动完成")

            await self.shutdown_event.wait()

        except Exception as e:
            self.logger.error(f"应用程序运行异常: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止可用性监控...")
        self.is_running = False

        try:
            if self.monitor_scheduler:
                await self.monitor_scheduler.stop()

            if self.control_server:
                await self.control_server.stop()

            # 进行中的告警重试可以被放弃，下次启动时会根据持久化状态重新判断
            for task in self.background_tasks:
                if not task.done():
                    task.cancel()

            if self.background_tasks:
                await asyncio.gather(*self.background_tasks, return_exceptions=True)

            self.background_tasks.clear()

            self.logger.info("可用性监控已停止")
            log_manager.cleanup()

        except Exception as e:
            print(f"停止应用程序时发生异常: {e}", file=sys.stderr)

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status = {
            'is_running': self.is_running,
            'role': self.role,
            'background_tasks_count': len(self.background_tasks)
        }

        if self.monitor_scheduler:
            status['scheduler_stats'] = self.monitor_scheduler.get_scheduler_stats()

        if self.engine:
            status.update(self.engine.get_status())

        if self.alerter:
            status['alerter'] = self.alerter.get_config_summary()

        return status


# 全局应用程序实例
app: Optional[UptimeMonitorApp] = None


def signal_handler(signum, frame):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='uptime-monitor',
        description='可用性监控 - 定时探测上游服务并通过 Telegram 发送分级告警',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s                               # 使用环境变量启动监控和控制接口
  %(prog)s config.yaml                   # 使用配置文件（环境变量优先）
  %(prog)s --check-once                  # 执行一次检查后退出（CI 模式）
  %(prog)s --test-alerts                 # 发送一条测试告警
  %(prog)s --validate config.yaml        # 验证配置并退出
  %(prog)s --version                     # 显示版本信息

环境变量:
  SERVICE_URL, API_KEY, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID,
  MAIN_SERVICE_URL, PING_ENDPOINT, PORT, CHECK_INTERVAL (毫秒),
  GITHUB_ACTIONS (存在时单次检查不健康以状态码 1 退出)
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径（可选）'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置并退出'
    )

    parser.add_argument(
        '--test-alerts',
        action='store_true',
        help='发送一条测试告警并退出'
    )

    parser.add_argument(
        '--check-once',
        action='store_true',
        help='执行一次检查周期后退出'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置）'
    )

    return parser


def validate_config_file(config_path: Optional[str]) -> bool:
    """验证配置

    Args:
        config_path: 配置文件路径，可选

    Returns:
        验证是否成功
    """
    try:
        print(f"正在验证配置: {config_path or '环境变量'}")

        config_manager = ConfigManager(config_path)
        config = config_manager.load_config()

        telegram = config['alerts'].get('telegram', {})
        notifications = '已启用' if telegram.get('bot_token') and telegram.get('chat_id') \
            else '未启用'

        print("✅ 配置验证成功!")
        print(f"   - 监控目标: {config_manager.get_target(ROLE_MONITOR)['url']}")
        print(f"   - 控制接口目标: {config_manager.get_target(ROLE_SERVER)['url']}")
        print(f"   - 检查间隔: {config['global']['check_interval']}ms")
        print(f"   - 告警间隔阶梯: {config['alerts']['intervals']} 秒")
        print(f"   - Telegram 通知: {notifications}")
        print(f"   - 状态文件: {config['global']['state_file']}")

        return True

    except UptimeMonitorError as e:
        print(f"❌ 配置验证失败: {e.format_error()}")
        return False
    except Exception as e:
        print(f"❌ 配置验证失败: {e}")
        return False


async def run_alert_test(config_path: Optional[str]) -> bool:
    """发送一条测试告警

    Args:
        config_path: 配置文件路径，可选

    Returns:
        测试是否成功
    """
    try:
        print("正在测试告警系统")

        test_app = UptimeMonitorApp(config_path, role=ROLE_MONITOR)
        await test_app.initialize()

        if not test_app.alerter.is_enabled():
            print("❌ 未配置 TELEGRAM_BOT_TOKEN 或 TELEGRAM_CHAT_ID")
            return False

        target = test_app.config_manager.get_target(ROLE_MONITOR)
        message = AlertMessage(service_name=target['name'], url=target['url'], status='TEST')
        success = await test_app.alerter.send_alert(test_app.formatter.format_test(message))

        if success:
            print("✅ 告警系统测试成功!")
        else:
            print("❌ 告警系统测试失败!")

        return success

    except Exception as e:
        print(f"❌ 告警系统测试失败: {e}")
        return False


async def check_once(config_path: Optional[str],
                     overrides: Optional[Dict[str, Any]] = None) -> int:
    """执行一次检查周期（探测、告警判断、状态持久化）

    Args:
        config_path: 配置文件路径，可选
        overrides: 命令行覆盖的全局配置

    Returns:
        进程退出码：在 GITHUB_ACTIONS 下检查不健康时返回 1，否则返回 0；
        初始化失败返回 1
    """
    try:
        once_app = UptimeMonitorApp(config_path, role=ROLE_MONITOR, overrides=overrides)
        await once_app.initialize()
    except Exception as e:
        print(f"❌ 初始化失败: {e}", file=sys.stderr)
        return 1

    result, outcome = await once_app.monitor_scheduler.run_check_cycle()

    if result.is_healthy:
        print(f"✅ 服务健康 ({result.response_time:.0f}ms)")
        return 0

    print(f"❌ 健康检查失败: {result.error_message}")
    if outcome is not None:
        print(f"   告警处理: {outcome.action.value}")

    # 状态已在检查周期内持久化，此时可以安全退出
    if once_app.config_manager.get_global_config().get('github_actions'):
        return 1
    return 0


async def main():
    """主函数"""
    global app

    load_dotenv()

    parser = create_argument_parser()
    args = parser.parse_args()

    config_path = args.config_file
    overrides = {'log_level': args.log_level, 'log_file': args.log_file}

    if args.validate:
        success = validate_config_file(config_path)
        sys.exit(0 if success else 1)

    if args.test_alerts:
        success = await run_alert_test(config_path)
        sys.exit(0 if success else 1)

    if args.check_once:
        sys.exit(await check_once(config_path, overrides))

    try:
        app = UptimeMonitorApp(config_path, role=ROLE_SERVER, overrides=overrides)

        signal.signal(signal.SIGINT, signal_handler)  # Ctrl+C
        signal.signal(signal.SIGTERM, signal_handler)  # 终止信号

        await app.initialize()

        print(f"可用性监控 v{__version__} 已启动")
        print("按 Ctrl+C 停止程序")

        await app.start()

    except KeyboardInterrupt:
        print("\n用户中断程序")
    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        sys.exit(1)
    except UptimeMonitorError as e:
        print(f"监控系统错误: {e.format_error()}", file=sys.stderr)
        sys.exit(1)
    finally:
        if app:
            await app.stop()


def run():
    """命令行入口"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
