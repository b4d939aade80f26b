"""Clipboard history store with pin-aware ordering and duplicate promotion"""

import base64
import json
from typing import List, Optional, Dict, Any
from datetime import datetime
from dataclasses import dataclass
from loguru import logger

from ..exceptions import ContentDecodeError


TEXT = "text"
IMAGE = "image"
IMAGE_LABEL = "[Image]"


@dataclass(frozen=True)
class ClipboardContent:
    """Clipboard payload: either plain text or raster image bytes"""
    kind: str
    value: Any

    @classmethod
    def text(cls, value: str) -> 'ClipboardContent':
        return cls(TEXT, value)

    @classmethod
    def image(cls, data: bytes) -> 'ClipboardContent':
        return cls(IMAGE, bytes(data))

    @property
    def is_text(self) -> bool:
        return self.kind == TEXT

    @property
    def is_image(self) -> bool:
        return self.kind == IMAGE

    @property
    def display_text(self) -> str:
        """Human readable label used for listing and searching"""
        if self.kind == IMAGE:
            return IMAGE_LABEL
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a tagged dictionary for serialization"""
        if self.kind == IMAGE:
            return {'type': IMAGE, 'value': base64.b64encode(self.value).decode('ascii')}
        return {'type': TEXT, 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClipboardContent':
        """
        Create from a tagged dictionary

        Raises:
            ContentDecodeError: tag is unknown or payload has the wrong shape
        """
        try:
            kind = data['type']
            value = data['value']
        except (KeyError, TypeError) as e:
            raise ContentDecodeError(f"Malformed content record: {e}") from e

        if kind == TEXT:
            if not isinstance(value, str):
                raise ContentDecodeError("Text content must be a string")
            return cls.text(value)

        if kind == IMAGE:
            try:
                return cls.image(base64.b64decode(value, validate=True))
            except (ValueError, TypeError) as e:
                raise ContentDecodeError(f"Invalid image payload: {e}") from e

        raise ContentDecodeError(f"Unrecognized content type: {kind!r}")

    def __repr__(self) -> str:
        if self.kind == IMAGE:
            return f"ClipboardContent(image, {len(self.value)} bytes)"
        preview = self.value if len(self.value) <= 40 else self.value[:37] + '...'
        return f"ClipboardContent(text, {preview!r})"


@dataclass
class ClipboardEntry:
    """Single clipboard history entry. Only ``pinned`` changes after creation."""
    content: ClipboardContent
    timestamp: datetime
    pinned: bool = False

    @property
    def display_text(self) -> str:
        return self.content.display_text

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'content': self.content.to_dict(),
            'timestamp': self.timestamp.isoformat(),
            'pinned': self.pinned,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClipboardEntry':
        """Create from dictionary"""
        try:
            content = ClipboardContent.from_dict(data['content'])
            timestamp = datetime.fromisoformat(data['timestamp'])
        except (KeyError, TypeError, ValueError) as e:
            raise ContentDecodeError(f"Malformed entry record: {e}") from e
        if timestamp.tzinfo is not None:
            # History timestamps are naive local time
            timestamp = timestamp.astimezone().replace(tzinfo=None)
        return cls(content=content, timestamp=timestamp, pinned=bool(data.get('pinned', False)))


class ClipboardHistory:
    """
    Ordered clipboard history.

    The sequence has two segments: pinned entries first, in the order they
    were pinned, then unpinned entries most recent first. The boundary index
    always equals the number of pinned entries.
    """

    def __init__(self, max_length: int = 50):
        """
        Initialize clipboard history

        Args:
            max_length: Capacity enforced on insert (pinned entries are never evicted)
        """
        self.max_length = max_length
        self._entries: List[ClipboardEntry] = []

        logger.debug(f"ClipboardHistory initialized (max_length={max_length})")

    def insert(self, content: ClipboardContent, timestamp: Optional[datetime] = None) -> bool:
        """
        Record a newly observed clipboard content

        Args:
            content: Clipboard content
            timestamp: Optional timestamp (defaults to now)

        Returns:
            False if the content repeats the head entry and nothing changed
        """
        if self._entries and not self._entries[0].pinned and self._entries[0].content == content:
            logger.debug("Skipped consecutive duplicate")
            return False

        if timestamp is None:
            timestamp = datetime.now()

        existing = self._find_unpinned(content)
        if existing is not None:
            self._entries.remove(existing)
            logger.debug(f"Promoted previously seen entry: {content!r}")
        else:
            logger.debug(f"Added new entry: {content!r}")

        self._entries.insert(self.pinned_count, ClipboardEntry(content, timestamp, False))
        self.enforce_capacity()
        return True

    def enforce_capacity(self) -> List[ClipboardEntry]:
        """
        Evict least recent unpinned entries while over capacity

        Returns:
            Evicted entries
        """
        evicted = []
        while len(self._entries) > self.max_length:
            removed = self.remove_oldest_unpinned()
            if removed is None:
                # only pinned entries left
                break
            evicted.append(removed)

        if evicted:
            logger.debug(f"Evicted {len(evicted)} entries over capacity {self.max_length}")
        return evicted

    def remove_oldest_unpinned(self) -> Optional[ClipboardEntry]:
        """Scan from the tail, skip pinned entries, remove the first unpinned one"""
        for index in range(len(self._entries) - 1, -1, -1):
            if not self._entries[index].pinned:
                return self._entries.pop(index)
        return None

    def toggle_pin(self, entry: ClipboardEntry) -> bool:
        """
        Flip the pinned flag of a stored entry

        Args:
            entry: Entry equal to one in the history (content, timestamp and pin state)

        Returns:
            True if the entry was found
        """
        index = self._index_of(entry)
        if index is None:
            logger.debug("Pin toggle ignored for entry no longer in history")
            return False

        target = self._entries.pop(index)
        target.pinned = not target.pinned

        if target.pinned:
            self._entries.insert(self.pinned_count, target)
        else:
            self._entries.insert(self._recency_slot(target.timestamp), target)

        logger.debug(f"Toggled pin: {target.content!r} -> {target.pinned}")
        return True

    def remove(self, entry: ClipboardEntry) -> bool:
        """Remove one entry, returns False if it is not present"""
        index = self._index_of(entry)
        if index is None:
            return False
        del self._entries[index]
        return True

    def remove_where(self, predicate) -> int:
        """Remove every entry matching predicate, keeping relative order"""
        kept = [e for e in self._entries if not predicate(e)]
        removed = len(self._entries) - len(kept)
        self._entries = kept
        return removed

    def clear(self) -> None:
        """Clear all history"""
        self._entries.clear()
        logger.info("Clipboard history cleared")

    def get_entries(self, limit: Optional[int] = None) -> List[ClipboardEntry]:
        """
        Get history entries in store order

        Args:
            limit: Optional limit on number of entries
        """
        if limit:
            return self._entries[:limit]
        return self._entries.copy()

    def load_entries(self, entries: List[ClipboardEntry]) -> None:
        """Replace contents, partitioning pinned entries first"""
        pinned = [e for e in entries if e.pinned]
        unpinned = [e for e in entries if not e.pinned]
        self._entries = pinned + unpinned

    def _find_unpinned(self, content: ClipboardContent) -> Optional[ClipboardEntry]:
        for entry in self._entries:
            if not entry.pinned and entry.content == content:
                return entry
        return None

    def _index_of(self, entry: ClipboardEntry) -> Optional[int]:
        try:
            return self._entries.index(entry)
        except ValueError:
            return None

    def _recency_slot(self, timestamp: datetime) -> int:
        """Position in the unpinned segment that keeps it most recent first"""
        index = self.pinned_count
        while index < len(self._entries) and self._entries[index].timestamp >= timestamp:
            index += 1
        return index

    def to_json(self) -> str:
        """Export history to JSON"""
        return json.dumps([e.to_dict() for e in self._entries])

    @staticmethod
    def entries_from_json(json_str: str) -> List[ClipboardEntry]:
        """
        Decode a JSON history blob

        Records that fail to decode are skipped. An unparseable blob yields
        an empty list.
        """
        try:
            data = json.loads(json_str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable clipboard history: {e}")
            return []

        if not isinstance(data, list):
            logger.warning("Discarding clipboard history with unexpected layout")
            return []

        entries = []
        for record in data:
            try:
                entries.append(ClipboardEntry.from_dict(record))
            except ContentDecodeError as e:
                logger.warning(f"Skipping history record: {e}")
        return entries

    def from_json(self, json_str: str) -> None:
        """Import history from JSON"""
        self.load_entries(self.entries_from_json(json_str))
        logger.info(f"Imported {len(self._entries)} entries from JSON")

    @property
    def pinned_count(self) -> int:
        return sum(1 for e in self._entries if e.pinned)

    @property
    def unpinned_count(self) -> int:
        return len(self._entries) - self.pinned_count

    @property
    def size(self) -> int:
        """Get current number of entries"""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.copy())
