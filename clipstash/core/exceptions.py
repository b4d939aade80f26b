"""Exceptions raised by the history engine"""


class ClipstashError(Exception):
    """Base class for clipstash errors"""


class ContentDecodeError(ClipstashError):
    """A persisted clipboard record could not be decoded"""


class PasteboardError(ClipstashError):
    """The system pasteboard could not be read or written"""
