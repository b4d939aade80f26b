"""Age and count based retention for clipboard history"""

from typing import Optional
from datetime import datetime, timedelta
from loguru import logger

from .history import ClipboardHistory


class RetentionPolicy:
    """Prunes unpinned entries by age and by count. A threshold of 0 disables its rule."""

    def __init__(self, auto_delete_days: int = 0, auto_delete_count: int = 0):
        """
        Initialize retention policy

        Args:
            auto_delete_days: Remove unpinned entries older than this many days
            auto_delete_count: Keep at most this many unpinned entries
        """
        self.auto_delete_days = auto_delete_days
        self.auto_delete_count = auto_delete_count

    @property
    def enabled(self) -> bool:
        return self.auto_delete_days > 0 or self.auto_delete_count > 0

    def age_cutoff(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Timestamp before which unpinned entries expire, None when the age rule is off"""
        if self.auto_delete_days <= 0:
            return None
        if now is None:
            now = datetime.now()
        return now - timedelta(days=self.auto_delete_days)

    def apply(self, history: ClipboardHistory, now: Optional[datetime] = None) -> int:
        """
        Run the age rule then the count rule

        Args:
            history: History to prune in place
            now: Reference time (defaults to now)

        Returns:
            Number of entries removed
        """
        removed = self._apply_age_rule(history, now) + self._apply_count_rule(history)

        if removed > 0:
            logger.info(f"Retention removed {removed} entries "
                        f"(days={self.auto_delete_days}, count={self.auto_delete_count})")
        return removed

    def _apply_age_rule(self, history: ClipboardHistory, now: Optional[datetime]) -> int:
        cutoff = self.age_cutoff(now)
        if cutoff is None:
            return 0
        return history.remove_where(lambda e: not e.pinned and e.timestamp < cutoff)

    def _apply_count_rule(self, history: ClipboardHistory) -> int:
        if self.auto_delete_count <= 0:
            return 0

        excess = max(0, history.unpinned_count - self.auto_delete_count)
        removed = 0
        while removed < excess:
            if history.remove_oldest_unpinned() is None:
                break
            removed += 1
        return removed
