"""History engine: ties the store, retention, change detection and persistence together"""

import threading
from typing import Optional, Callable, List, Dict, Any
from datetime import datetime
from loguru import logger

from .clipboard.history import ClipboardContent, ClipboardEntry, ClipboardHistory
from .clipboard.retention import RetentionPolicy
from .clipboard.filtering import filter_entries
from .clipboard.monitor import ClipboardMonitor
from .clipboard.pasteboard import PasteboardSource
from .exceptions import PasteboardError
from .storage.repository import (
    SettingsRepository, MAX_HISTORY_LENGTH_KEY, AUTO_DELETE_DAYS_KEY, AUTO_DELETE_COUNT_KEY
)
from ..services.poll_service import PollService

MIN_HISTORY_LENGTH = 10
DEFAULT_HISTORY_LENGTH = 50
DEFAULT_POLL_INTERVAL_MS = 500
DEFAULT_COPIED_SIGNAL_SECONDS = 1.0

HISTORY_CHANGED = 'history'
SETTINGS_CHANGED = 'settings'
COPIED_CHANGED = 'copied'

# setting key -> (floor, fallback default)
SETTING_LIMITS = {
    MAX_HISTORY_LENGTH_KEY: (MIN_HISTORY_LENGTH, DEFAULT_HISTORY_LENGTH),
    AUTO_DELETE_DAYS_KEY: (0, 0),
    AUTO_DELETE_COUNT_KEY: (0, 0),
}


def _is_valid(value, floor: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= floor


class ClipboardManager:
    """
    Clipboard history engine.

    Every mutating operation runs under one reentrant lock, so the poll
    scheduler thread and user actions never interleave. Observers are
    called with the name of what changed once the mutation is complete.
    """

    def __init__(self, repository: SettingsRepository, pasteboard: PasteboardSource,
                 config=None, timer_factory: Callable = threading.Timer,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the engine and restore persisted state

        Args:
            repository: Persistent key/value store
            pasteboard: Pasteboard to observe and write back to
            config: Optional ConfigManager supplying first-run defaults and intervals
            timer_factory: Factory for the delayed "just copied" reset,
                called as ``timer_factory(seconds, callback)``
            clock: Source of the current time
        """
        self.repository = repository
        self.pasteboard = pasteboard
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._observers: List[Callable[[str], None]] = []
        self._copied_timer = None
        self._just_copied = False
        self._scheduler = None

        self.poll_interval_ms = DEFAULT_POLL_INTERVAL_MS
        self.copied_signal_seconds = DEFAULT_COPIED_SIGNAL_SECONDS
        defaults = {
            MAX_HISTORY_LENGTH_KEY: DEFAULT_HISTORY_LENGTH,
            AUTO_DELETE_DAYS_KEY: 0,
            AUTO_DELETE_COUNT_KEY: 0,
        }
        if config is not None:
            self.poll_interval_ms = config.get('clipboard.check_interval', DEFAULT_POLL_INTERVAL_MS)
            self.copied_signal_seconds = config.get('clipboard.copied_signal_seconds',
                                                    DEFAULT_COPIED_SIGNAL_SECONDS)
            defaults[MAX_HISTORY_LENGTH_KEY] = config.get('history.max_history_length',
                                                          DEFAULT_HISTORY_LENGTH)
            defaults[AUTO_DELETE_DAYS_KEY] = config.get('history.auto_delete_days', 0)
            defaults[AUTO_DELETE_COUNT_KEY] = config.get('history.auto_delete_count', 0)

        settings = self._restore_settings(defaults)
        self.history = ClipboardHistory(settings[MAX_HISTORY_LENGTH_KEY])
        self.retention = RetentionPolicy(settings[AUTO_DELETE_DAYS_KEY],
                                         settings[AUTO_DELETE_COUNT_KEY])
        self.history.load_entries(self.repository.load_history())

        self.monitor = ClipboardMonitor(pasteboard)
        self.monitor.add_callback(self.insert)

        # entries may have aged out while the process was not running
        self.prune_expired_entries()

        logger.info(f"ClipboardManager ready with {self.history.size} entries "
                    f"(max={self.max_history_length}, days={self.auto_delete_days}, "
                    f"count={self.auto_delete_count})")

    def _restore_settings(self, defaults: Dict[str, int]) -> Dict[str, int]:
        """Stored settings win over defaults, out-of-range values fall back"""
        stored = self.repository.load_settings()

        settings = {}
        for key, (floor, fallback) in SETTING_LIMITS.items():
            default = defaults[key] if _is_valid(defaults[key], floor) else fallback
            value = stored.get(key, default)
            if not _is_valid(value, floor):
                logger.warning(f"Ignoring stored {key}={value!r}, using {default}")
                value = default
            settings[key] = value
        return settings

    # Observers

    def subscribe(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with 'history', 'settings' or 'copied' after changes"""
        with self._lock:
            if callback not in self._observers:
                self._observers.append(callback)

    def unsubscribe(self, callback: Callable[[str], None]) -> None:
        with self._lock:
            if callback in self._observers:
                self._observers.remove(callback)

    def _notify(self, event: str) -> None:
        with self._lock:
            observers = list(self._observers)

        for callback in observers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in observer {getattr(callback, '__name__', callback)}: {e}")

    # History operations

    def insert(self, content: ClipboardContent) -> bool:
        """
        Record content captured from the pasteboard

        Returns:
            False when the content repeated the head entry and nothing changed
        """
        with self._lock:
            if not self.history.insert(content, self._clock()):
                return False
            self._persist()
            self._prune()

        self._notify(HISTORY_CHANGED)
        return True

    def copy(self, entry: ClipboardEntry) -> bool:
        """
        Write an entry back to the pasteboard without recording it again

        Returns:
            True if the pasteboard was written
        """
        with self._lock:
            self.monitor.ignore_next()
            try:
                if entry.content.is_image:
                    self.pasteboard.write_image(entry.content.value)
                else:
                    self.pasteboard.write_text(entry.content.value)
            except PasteboardError as e:
                self.monitor.cancel_ignore()
                logger.error(f"Failed to copy entry to clipboard: {e}")
                return False

            self._set_just_copied()

        logger.debug(f"Copied entry to clipboard: {entry.content!r}")
        self._notify(COPIED_CHANGED)
        return True

    def toggle_pin(self, entry: ClipboardEntry) -> bool:
        """Flip the pin state of an entry, no-op if it is no longer present"""
        with self._lock:
            if not self.history.toggle_pin(entry):
                return False
            self._persist()

        self._notify(HISTORY_CHANGED)
        return True

    def delete(self, entry: ClipboardEntry) -> bool:
        """Remove one entry, no-op if it is no longer present"""
        with self._lock:
            removed = self.history.remove(entry)
            self._persist()

        if removed:
            logger.debug(f"Deleted entry: {entry.content!r}")
            self._notify(HISTORY_CHANGED)
        return removed

    def clear_all(self) -> None:
        """Remove every entry, pinned ones included"""
        with self._lock:
            self.history.clear()
            self._persist()

        self._notify(HISTORY_CHANGED)

    def filtered_view(self, query: str = "") -> List[ClipboardEntry]:
        """Entries matching query, pinned first then most recent first"""
        with self._lock:
            entries = self.history.get_entries()
        return filter_entries(entries, query)

    def prune_expired_entries(self, now: Optional[datetime] = None) -> int:
        """
        Apply the retention policy and persist

        Returns:
            Number of entries removed
        """
        with self._lock:
            removed = self._prune(now)

        if removed:
            self._notify(HISTORY_CHANGED)
        return removed

    def _prune(self, now: Optional[datetime] = None) -> int:
        removed = self.retention.apply(self.history, now or self._clock())
        self._persist()
        return removed

    def _persist(self) -> None:
        history_saved = self.repository.save_history(self.history.get_entries())
        settings_saved = self.repository.save_settings(self.settings)
        if not (history_saved and settings_saved):
            logger.warning("Clipboard state not persisted, keeping in-memory state for this session")

    # Settings

    @property
    def settings(self) -> Dict[str, int]:
        return {
            MAX_HISTORY_LENGTH_KEY: self.history.max_length,
            AUTO_DELETE_DAYS_KEY: self.retention.auto_delete_days,
            AUTO_DELETE_COUNT_KEY: self.retention.auto_delete_count,
        }

    @property
    def max_history_length(self) -> int:
        return self.history.max_length

    @max_history_length.setter
    def max_history_length(self, value: int) -> None:
        with self._lock:
            self.history.max_length = self._at_least(
                value, MIN_HISTORY_LENGTH, 'max_history_length', self.history.max_length)
            self._prune()

        self._notify(SETTINGS_CHANGED)

    @property
    def auto_delete_days(self) -> int:
        return self.retention.auto_delete_days

    @auto_delete_days.setter
    def auto_delete_days(self, value: int) -> None:
        with self._lock:
            self.retention.auto_delete_days = self._at_least(
                value, 0, 'auto_delete_days', self.retention.auto_delete_days)
            removed = self._prune()

        self._notify(SETTINGS_CHANGED)
        if removed:
            self._notify(HISTORY_CHANGED)

    @property
    def auto_delete_count(self) -> int:
        return self.retention.auto_delete_count

    @auto_delete_count.setter
    def auto_delete_count(self, value: int) -> None:
        with self._lock:
            self.retention.auto_delete_count = self._at_least(
                value, 0, 'auto_delete_count', self.retention.auto_delete_count)
            removed = self._prune()

        self._notify(SETTINGS_CHANGED)
        if removed:
            self._notify(HISTORY_CHANGED)

    @staticmethod
    def _at_least(value: int, floor: int, name: str, current: int) -> int:
        try:
            value = int(value)
        except (TypeError, ValueError):
            logger.warning(f"{name}={value!r} is not a number, keeping {current}")
            return current
        if value < floor:
            logger.warning(f"{name}={value} is below the minimum, using {floor}")
            return floor
        return value

    # Copy signal

    @property
    def just_copied(self) -> bool:
        """True for copied_signal_seconds after a successful copy"""
        return self._just_copied

    def _set_just_copied(self) -> None:
        if self._copied_timer is not None:
            self._copied_timer.cancel()

        self._just_copied = True
        timer = self._timer_factory(self.copied_signal_seconds,
                                    lambda: self._reset_just_copied(timer))
        timer.daemon = True
        self._copied_timer = timer
        timer.start()

    def _reset_just_copied(self, timer) -> None:
        with self._lock:
            if timer is not self._copied_timer:
                # superseded by a later copy
                return
            self._just_copied = False
            self._copied_timer = None

        self._notify(COPIED_CHANGED)

    # Monitoring

    def tick(self) -> Optional[ClipboardContent]:
        """Poll the pasteboard once; captured content is inserted through the monitor callback"""
        with self._lock:
            return self.monitor.tick()

    def start_monitoring(self, scheduler=None) -> None:
        """
        Start polling the pasteboard

        Args:
            scheduler: Object with ``start()``/``stop()`` that calls :meth:`tick`
                periodically (defaults to a PollService at poll_interval_ms)
        """
        with self._lock:
            if self._scheduler is not None and self._scheduler.is_running:
                logger.warning("Monitoring already running")
                return

            if scheduler is None:
                scheduler = PollService(self.tick, self.poll_interval_ms)

            self._scheduler = scheduler
            self._scheduler.start()
            logger.info("Clipboard monitoring started")

    def stop_monitoring(self) -> None:
        """Stop polling the pasteboard"""
        with self._lock:
            scheduler = self._scheduler
            self._scheduler = None

        if scheduler is None:
            logger.warning("Monitoring not running")
            return

        scheduler.stop()
        logger.info("Clipboard monitoring stopped")

    @property
    def is_monitoring(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_running

    def shutdown(self) -> None:
        """Stop monitoring and drop any pending copy signal timer"""
        if self._scheduler is not None:
            self.stop_monitoring()

        with self._lock:
            if self._copied_timer is not None:
                self._copied_timer.cancel()
                self._copied_timer = None

    # Read helpers

    @property
    def entries(self) -> List[ClipboardEntry]:
        """Snapshot of the history in store order"""
        with self._lock:
            return self.history.get_entries()

    def stats(self) -> Dict[str, Any]:
        """Summary counts for status displays"""
        with self._lock:
            entries = self.history.get_entries()

        timestamps = [e.timestamp for e in entries]
        pinned = sum(1 for e in entries if e.pinned)
        return {
            'total': len(entries),
            'pinned': pinned,
            'unpinned': len(entries) - pinned,
            'oldest': min(timestamps) if timestamps else None,
            'newest': max(timestamps) if timestamps else None,
        }
