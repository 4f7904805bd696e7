import logging
import os
import signal
import sys
import threading
from typing import Any, Dict, Optional

from .config import Config
from .db import dispose_db
from .task_manager import TaskManager


class SalatApp:
    """Composition root: wires config, storage, scraper, refresh task, alerts and the API."""

    def __init__(self, config_path: Optional[str] = None, watch_config: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._stop_event = threading.Event()

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()

        from salat.prayer.alerts import PrayerAlertScheduler
        from salat.prayer.audio_manager import AdhanManager
        from salat.prayer.notifier import DesktopNotifier
        from salat.prayer.scraper import PrayerTimeScraper
        from salat.prayer.service import PrayerTimesService
        from salat.prayer.storage import create_storage
        from salat.prayer.task import DailyRefreshTask

        self.task_manager = TaskManager()
        self.storage = create_storage(self.config.data)
        self.scraper = PrayerTimeScraper(self.config.get_section("scraper"))
        self.notifier = DesktopNotifier(self.config.get_section("notifications"))
        self.adhan_manager = AdhanManager(self.config.get_section("adhan"))
        self.alert_scheduler = PrayerAlertScheduler(
            self.task_manager,
            self.notifier,
            self.adhan_manager,
            icon=self.notifier.icon or None,
        )
        self.service = PrayerTimesService(self.storage, self.scraper, self.alert_scheduler)
        self.refresh_task = DailyRefreshTask(self.service, self.config.get_section("refresh"))

    def _setup_logging(self) -> None:
        """Configure logging to write to both file and stdout"""
        log_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        log_file = log_config.get("file")
        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Salat application starting...")

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Apply reloaded scraper / notification / adhan settings and re-arm alerts."""
        self.logger.info("Applying configuration changes")
        self.scraper.configure(new_config.get("scraper") or {})
        self.notifier.configure(new_config.get("notifications") or {})
        self.adhan_manager.configure(new_config.get("adhan") or {})
        self.alert_scheduler.icon = self.notifier.icon or None
        try:
            self.service.reschedule_alerts()
        except Exception as e:
            self.logger.exception(f"Error rescheduling alerts after config change: {e}")

    def start(self) -> None:
        """Arm today's alerts, the daily refresh and the API server."""
        try:
            self.service.reschedule_alerts()
        except Exception as e:
            # Storage unavailable; the daily refresh or an API call will re-arm later
            self.logger.exception(f"Could not schedule prayer alerts at startup: {e}")
        self.refresh_task.start(self.task_manager)

        from salat.api.server import run_api_server
        run_api_server(self)

    def run(self) -> None:
        """Start everything and block until interrupted."""
        signal.signal(signal.SIGTERM, lambda *_: self._stop_event.set())
        self.start()
        try:
            while not self._stop_event.wait(1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted")
        finally:
            self.stop()

    def stop(self) -> None:
        self.logger.info("Salat application stopping...")
        self._stop_event.set()
        self.alert_scheduler.cancel()
        self.task_manager.stop()
        self.adhan_manager.stop_adhan()
        self.config.cleanup()
        dispose_db()
