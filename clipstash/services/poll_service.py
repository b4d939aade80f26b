"""Fixed-cadence pasteboard polling"""

import threading
from typing import Callable
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

POLL_JOB_ID = 'clipboard_poll'


class PollService:
    """Calls a tick function every ``interval_ms`` on a background scheduler"""

    def __init__(self, callback: Callable[[], object], interval_ms: int = 500):
        """
        Initialize poll service

        Args:
            callback: Function to call on every tick
            interval_ms: Poll interval in milliseconds
        """
        self.callback = callback
        self.interval_ms = interval_ms
        self.scheduler = None
        self._running = False
        self._lock = threading.RLock()

        logger.debug(f"PollService initialized with {interval_ms}ms interval")

    def start(self) -> None:
        """Start polling"""
        with self._lock:
            if self._running:
                logger.warning("Poll service already running")
                return

            # a shut down scheduler cannot be restarted
            self.scheduler = BackgroundScheduler()
            self.scheduler.add_job(
                func=self._run_tick,
                trigger=IntervalTrigger(seconds=self.interval_ms / 1000.0),
                id=POLL_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True
            )
            self.scheduler.start()
            self._running = True

            logger.info(f"Polling every {self.interval_ms}ms")

    def stop(self) -> None:
        """Stop polling, waiting for an in-flight tick to finish"""
        with self._lock:
            if not self._running:
                logger.warning("Poll service not running")
                return

            self.scheduler.shutdown(wait=True)
            self._running = False

            logger.info("Polling stopped")

    def _run_tick(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.error(f"Poll tick failed: {e}")

    @property
    def is_running(self) -> bool:
        return self._running
