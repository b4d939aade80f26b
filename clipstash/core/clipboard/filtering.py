"""Search and ordering for presenting clipboard history"""

from typing import Iterable, List

from .history import ClipboardEntry


def matches(entry: ClipboardEntry, query: str) -> bool:
    """Case-insensitive substring match against the entry label"""
    if not query:
        return True
    return query.casefold() in entry.display_text.casefold()


def order_entries(entries: Iterable[ClipboardEntry]) -> List[ClipboardEntry]:
    """
    Order entries pinned first, then most recent first

    Both sorts are stable, so entries with equal timestamps keep their
    relative input order.
    """
    by_recency = sorted(entries, key=lambda e: e.timestamp, reverse=True)
    return sorted(by_recency, key=lambda e: not e.pinned)


def filter_entries(entries: Iterable[ClipboardEntry], query: str = "") -> List[ClipboardEntry]:
    """Entries whose label contains query, in presentation order"""
    return order_entries(e for e in entries if matches(e, query))
