"""Pasteboard polling on the Qt event loop"""

from typing import Callable
from PyQt6.QtCore import QTimer
from loguru import logger


class QtPollService:
    """
    Same interface as PollService, driven by a QTimer.

    QClipboard may only be touched from the GUI thread, so the Qt backend
    polls here instead of on a scheduler thread.
    """

    def __init__(self, callback: Callable[[], object], interval_ms: int = 500):
        self.callback = callback
        self.interval_ms = interval_ms
        self._timer = QTimer()
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._run_tick)

    def start(self) -> None:
        if self._timer.isActive():
            logger.warning("Poll service already running")
            return
        self._timer.start()
        logger.info(f"Polling every {self.interval_ms}ms on the Qt event loop")

    def stop(self) -> None:
        if not self._timer.isActive():
            logger.warning("Poll service not running")
            return
        self._timer.stop()
        logger.info("Polling stopped")

    def _run_tick(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.error(f"Poll tick failed: {e}")

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()
