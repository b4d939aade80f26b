"""Clipboard change detection with self-copy suppression"""

import threading
from typing import Optional, Callable, Set
from loguru import logger

from .history import ClipboardContent
from .pasteboard import PasteboardSource, to_png_bytes
from ..exceptions import PasteboardError


class ClipboardMonitor:
    """
    Detects external pasteboard changes.

    The monitor does not schedule itself: a poll service (or a test) calls
    :meth:`tick` at a fixed cadence.
    """

    def __init__(self, pasteboard: PasteboardSource):
        """
        Initialize clipboard monitor

        Args:
            pasteboard: Pasteboard to observe
        """
        self.pasteboard = pasteboard
        self._ignore_next = False
        self._callbacks: Set[Callable] = set()
        self._lock = threading.RLock()
        self._last_change_count = self._read_change_count(default=0)

        logger.info(f"ClipboardMonitor initialized at change count {self._last_change_count}")

    def add_callback(self, callback: Callable[[ClipboardContent], None]) -> None:
        """
        Add a callback for clipboard changes

        Args:
            callback: Function called with the new content
        """
        with self._lock:
            self._callbacks.add(callback)
            logger.debug(f"Added callback: {getattr(callback, '__name__', callback)}")

    def remove_callback(self, callback: Callable) -> None:
        """Remove a callback"""
        with self._lock:
            self._callbacks.discard(callback)
            logger.debug(f"Removed callback: {getattr(callback, '__name__', callback)}")

    def ignore_next(self) -> None:
        """Skip the next observed change (set before the engine writes the pasteboard)"""
        with self._lock:
            self._ignore_next = True

    def cancel_ignore(self) -> None:
        with self._lock:
            self._ignore_next = False

    def tick(self) -> Optional[ClipboardContent]:
        """
        Poll the pasteboard once

        Returns:
            The newly captured content, or None if nothing was captured
        """
        with self._lock:
            count = self._read_change_count(default=self._last_change_count)
            if count == self._last_change_count:
                return None

            self._last_change_count = count

            if self._ignore_next:
                self._ignore_next = False
                logger.debug("Ignored self-initiated clipboard change")
                return None

            content = self._read_content()
            if content is None:
                return None

            callbacks = self._callbacks.copy()

        self._notify_callbacks(callbacks, content)
        return content

    def _read_change_count(self, default: int) -> int:
        try:
            return self.pasteboard.change_count()
        except PasteboardError as e:
            logger.error(f"Failed to read clipboard change count: {e}")
            return default

    def _read_content(self) -> Optional[ClipboardContent]:
        """Prefer text, fall back to an image re-encoded as PNG"""
        try:
            text = self.pasteboard.read_text()
            if text:
                return ClipboardContent.text(text)

            data = self.pasteboard.read_image_bytes()
        except PasteboardError as e:
            logger.error(f"Failed to read clipboard content: {e}")
            return None

        if not data:
            return None

        png = to_png_bytes(data)
        if png is None:
            return None
        return ClipboardContent.image(png)

    def _notify_callbacks(self, callbacks: Set[Callable], content: ClipboardContent) -> None:
        """
        Notify all callbacks of clipboard change

        Args:
            callbacks: Snapshot of registered callbacks
            content: New clipboard content
        """
        for callback in callbacks:
            try:
                callback(content)
            except Exception as e:
                logger.error(f"Error in callback {getattr(callback, '__name__', callback)}: {e}")

    @property
    def is_ignoring(self) -> bool:
        return self._ignore_next

    @property
    def last_change_count(self) -> int:
        return self._last_change_count
