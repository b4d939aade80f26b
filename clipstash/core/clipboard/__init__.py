"""Clipboard monitoring and history management"""

from .history import ClipboardContent, ClipboardEntry, ClipboardHistory
from .retention import RetentionPolicy
from .filtering import filter_entries
from .monitor import ClipboardMonitor
from .pasteboard import PasteboardSource, MemoryPasteboard, PyperclipPasteboard

__all__ = [
    'ClipboardContent', 'ClipboardEntry', 'ClipboardHistory', 'RetentionPolicy',
    'filter_entries', 'ClipboardMonitor', 'PasteboardSource', 'MemoryPasteboard',
    'PyperclipPasteboard',
]
