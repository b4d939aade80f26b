"""Application entry point: wires configuration, storage, the history engine and schedulers"""

import argparse
import sys
import signal
import threading
from typing import Optional, List
from loguru import logger

from .core.clipboard.pasteboard import MemoryPasteboard, PyperclipPasteboard
from .core.manager import ClipboardManager
from .core.storage import DatabaseManager, SettingsRepository
from .services import MaintenanceService, PollService
from .utils import ConfigManager, get_data_dir

DATE_FORMAT = '%d/%m/%y, %H:%M:%S'
LABEL_WIDTH = 60


def setup_logging(level: str = "INFO", file_logging: bool = True, retention: str = "7 days"):
    """Configure loguru sinks"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
    )

    if file_logging:
        log_dir = get_data_dir() / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "clipstash_{time:YYYY-MM-DD}.log",
            rotation="1 day",
            retention=retention,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
        )


class ClipboardHistoryApp:
    """Main application class"""

    def __init__(self, config_path: Optional[str] = None, backend: Optional[str] = None):
        """
        Initialize application

        Args:
            config_path: Optional path to the user configuration file
            backend: Optional pasteboard backend overriding the configuration
        """
        self.config_manager = ConfigManager(config_path)
        if backend:
            self.config_manager.set('clipboard.backend', backend)

        self.database_manager = None
        self.repository = None
        self.clipboard_manager = None
        self.maintenance_service = None
        self.poll_service = None
        self.qt_app = None

        self._shutdown_event = threading.Event()

        setup_logging(
            self.config_manager.get('logging.level', 'INFO'),
            self.config_manager.get('logging.file_logging', True),
            self.config_manager.get('logging.retention', '7 days')
        )

        logger.info("=" * 60)
        logger.info("Clipstash Starting")
        logger.info("=" * 60)

    @property
    def backend(self) -> str:
        return self.config_manager.get('clipboard.backend', 'qt')

    def initialize(self, with_pasteboard: bool = True) -> bool:
        """
        Initialize all components

        Args:
            with_pasteboard: False to attach an in-memory pasteboard, for
                inspecting stored history without touching the system clipboard
        """
        try:
            if not self.config_manager.validate():
                logger.error("Invalid configuration")
                return False

            logger.info("Initializing database...")
            self.database_manager = DatabaseManager(self.config_manager.get('storage.database_path'))
            self.repository = SettingsRepository(self.database_manager)

            pasteboard = self._create_pasteboard() if with_pasteboard else MemoryPasteboard()

            logger.info("Initializing history engine...")
            self.clipboard_manager = ClipboardManager(self.repository, pasteboard, self.config_manager)

            if self.config_manager.get('cleanup.enabled', True):
                vacuum = self.config_manager.get('cleanup.vacuum', True)
                self.maintenance_service = MaintenanceService(
                    self.clipboard_manager,
                    self.database_manager if vacuum else None,
                    self.config_manager.get('cleanup.cleanup_interval', 3600)
                )

            logger.info("Application initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            return False

    def _create_pasteboard(self):
        backend = self.backend
        logger.info(f"Using {backend} pasteboard backend")

        if backend == 'qt':
            from PyQt6.QtWidgets import QApplication
            from .core.clipboard.qt_pasteboard import QtPasteboard

            self.qt_app = QApplication.instance() or QApplication(sys.argv)
            self.qt_app.setQuitOnLastWindowClosed(False)
            return QtPasteboard()

        if backend == 'pyperclip':
            return PyperclipPasteboard()

        return MemoryPasteboard()

    def _create_poll_service(self):
        interval = self.clipboard_manager.poll_interval_ms
        if self.qt_app is not None:
            from .services.qt_poll_service import QtPollService
            return QtPollService(self.clipboard_manager.tick, interval)
        return PollService(self.clipboard_manager.tick, interval)

    def start(self) -> int:
        """Start monitoring and block until shutdown"""
        try:
            self.poll_service = self._create_poll_service()
            self.clipboard_manager.start_monitoring(self.poll_service)

            if self.maintenance_service:
                self.maintenance_service.start()

            logger.info("Application started successfully")

            if self.qt_app is not None:
                try:
                    return self.qt_app.exec()
                finally:
                    self.shutdown()

            self._shutdown_event.wait()
            return 0

        except Exception as e:
            logger.exception(f"Failed to start application: {e}")
            self.shutdown()
            return 1

    def shutdown(self):
        """Shutdown the application"""
        if self._shutdown_event.is_set():
            return

        logger.info("Shutting down application...")

        try:
            if self.clipboard_manager:
                self.clipboard_manager.shutdown()

            if self.maintenance_service and self.maintenance_service.is_running:
                self.maintenance_service.stop()

            if self.database_manager:
                self.database_manager.close()

            if self.qt_app:
                self.qt_app.quit()

            logger.info("Application shutdown complete")

        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

        finally:
            self._shutdown_event.set()

    # Inspection commands

    def print_history(self, query: str = "") -> None:
        """Print stored entries, pinned first then most recent first"""
        for entry in self.clipboard_manager.filtered_view(query):
            marker = '*' if entry.pinned else ' '
            label = entry.display_text.replace('\n', ' ')
            if len(label) > LABEL_WIDTH:
                label = label[:LABEL_WIDTH - 3] + '...'
            print(f"{marker} {entry.timestamp.strftime(DATE_FORMAT)}  {label}")

    def clear_history(self) -> None:
        self.clipboard_manager.clear_all()
        print("Clipboard history cleared")

    def backup_database(self, backup_path: str) -> bool:
        """Copy the database file, history and settings included, to backup_path"""
        try:
            self.database_manager.backup(backup_path)
        except (RuntimeError, OSError) as e:
            print(f"Backup failed: {e}", file=sys.stderr)
            return False
        print(f"Database backed up to {backup_path}")
        return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='clipstash', description='Clipboard history manager')
    parser.add_argument('--config', help='path to a settings.yaml override file')
    parser.add_argument('--backend', choices=['qt', 'pyperclip', 'memory'],
                        help='pasteboard backend (overrides configuration)')

    commands = parser.add_mutually_exclusive_group()
    commands.add_argument('--list', action='store_true', help='print stored history and exit')
    commands.add_argument('--search', metavar='QUERY', help='print entries matching QUERY and exit')
    commands.add_argument('--clear', action='store_true', help='delete all stored history and exit')
    commands.add_argument('--backup', metavar='PATH', help='copy the history database to PATH and exit')
    commands.add_argument('--show-config', action='store_true', help='print effective configuration and exit')
    return parser.parse_args(argv)


def signal_handler(signum, frame):
    """Handle system signals"""
    logger.info(f"Received signal {signum}")
    if hasattr(signal_handler, 'app'):
        signal_handler.app.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    app = ClipboardHistoryApp(args.config, args.backend)

    if args.show_config:
        import yaml
        print(yaml.safe_dump(app.config_manager.get_all(), default_flow_style=False))
        return 0

    inspecting = args.list or args.clear or args.search is not None or args.backup is not None
    if not app.initialize(with_pasteboard=not inspecting):
        logger.error("Failed to initialize application")
        return 1

    if inspecting:
        code = 0
        if args.clear:
            app.clear_history()
        elif args.backup is not None:
            code = 0 if app.backup_database(args.backup) else 1
        else:
            app.print_history(args.search or "")
        app.shutdown()
        return code

    signal_handler.app = app
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return app.start()
