"""Pasteboard backed by the Qt clipboard"""

from typing import Optional
from PyQt6.QtCore import QBuffer, QIODevice
from PyQt6.QtGui import QGuiApplication, QImage
from loguru import logger

from .pasteboard import PasteboardSource
from ..exceptions import PasteboardError


class QtPasteboard(PasteboardSource):
    """
    QClipboard adapter.

    The change counter advances on every ``dataChanged`` signal, so a Qt
    event loop must be running on the thread that owns the application.
    """

    def __init__(self, clipboard=None):
        if clipboard is None:
            if QGuiApplication.instance() is None:
                raise PasteboardError("QtPasteboard requires a running QApplication")
            clipboard = QGuiApplication.clipboard()

        self._clipboard = clipboard
        self._change_count = 0
        self._clipboard.dataChanged.connect(self._on_data_changed)

        logger.debug("QtPasteboard attached to system clipboard")

    def _on_data_changed(self) -> None:
        self._change_count += 1

    def change_count(self) -> int:
        return self._change_count

    def read_text(self) -> Optional[str]:
        mime = self._clipboard.mimeData()
        if mime is None or not mime.hasText():
            return None
        return mime.text() or None

    def read_image_bytes(self) -> Optional[bytes]:
        mime = self._clipboard.mimeData()
        if mime is None or not mime.hasImage():
            return None

        image = self._clipboard.image()
        if image.isNull():
            return None

        buffer = QBuffer()
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        if not image.save(buffer, "PNG"):
            raise PasteboardError("Failed to encode clipboard image as PNG")
        return bytes(buffer.data())

    def write_text(self, text: str) -> None:
        self._clipboard.setText(text)

    def write_image(self, data: bytes) -> None:
        image = QImage.fromData(data)
        if image.isNull():
            raise PasteboardError("Image bytes could not be decoded")
        self._clipboard.setImage(image)

    def clear(self) -> None:
        self._clipboard.clear()
