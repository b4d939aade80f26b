"""History engine core"""

from .exceptions import ClipstashError, ContentDecodeError, PasteboardError

__all__ = ['ClipstashError', 'ContentDecodeError', 'PasteboardError']
