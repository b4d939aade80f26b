"""System pasteboard access behind a small change-counter interface"""

import hashlib
import io
from abc import ABC, abstractmethod
from typing import Optional
import pyperclip
from PIL import Image, ImageGrab, UnidentifiedImageError
from loguru import logger

from ..exceptions import PasteboardError


def to_png_bytes(data: bytes) -> Optional[bytes]:
    """
    Re-encode raster image bytes as PNG

    Returns:
        PNG bytes, or None if the data is not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            buffer = io.BytesIO()
            image.save(buffer, format='PNG')
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Could not decode clipboard image: {e}")
        return None


class PasteboardSource(ABC):
    """Pasteboard the engine observes and writes back to"""

    @abstractmethod
    def change_count(self) -> int:
        """Opaque counter that changes whenever the pasteboard content changes"""

    @abstractmethod
    def read_text(self) -> Optional[str]:
        """Current text content, None if the pasteboard holds no text"""

    @abstractmethod
    def read_image_bytes(self) -> Optional[bytes]:
        """Current image content as encoded bytes, None if there is no image"""

    @abstractmethod
    def write_text(self, text: str) -> None:
        pass

    @abstractmethod
    def write_image(self, data: bytes) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryPasteboard(PasteboardSource):
    """In-process pasteboard for headless runs and tests"""

    def __init__(self):
        self._change_count = 0
        self._text: Optional[str] = None
        self._image: Optional[bytes] = None

    def change_count(self) -> int:
        return self._change_count

    def read_text(self) -> Optional[str]:
        return self._text or None

    def read_image_bytes(self) -> Optional[bytes]:
        return self._image

    def write_text(self, text: str) -> None:
        self._text = text
        self._image = None
        self._change_count += 1

    def write_image(self, data: bytes) -> None:
        self._text = None
        self._image = bytes(data)
        self._change_count += 1

    def clear(self) -> None:
        self._text = None
        self._image = None
        self._change_count += 1


class PyperclipPasteboard(PasteboardSource):
    """
    Pasteboard backed by pyperclip for text and Pillow for image reads.

    Neither library exposes a change counter, so one is derived: it
    advances whenever the hash of the observed content changes and on
    every write made through this object.
    """

    def __init__(self):
        self._change_count = 0
        self._last_hash = ""

    def change_count(self) -> int:
        current_hash = self._content_hash()
        if current_hash != self._last_hash:
            self._last_hash = current_hash
            self._change_count += 1
        return self._change_count

    def read_text(self) -> Optional[str]:
        try:
            return pyperclip.paste() or None
        except pyperclip.PyperclipException as e:
            raise PasteboardError(f"Failed to read clipboard text: {e}") from e

    def read_image_bytes(self) -> Optional[bytes]:
        try:
            grabbed = ImageGrab.grabclipboard()
        except (NotImplementedError, OSError) as e:
            logger.debug(f"Clipboard image grab unavailable: {e}")
            return None

        if not isinstance(grabbed, Image.Image):
            # file lists and empty clipboards
            return None

        buffer = io.BytesIO()
        grabbed.save(buffer, format='PNG')
        return buffer.getvalue()

    def write_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise PasteboardError(f"Failed to write clipboard text: {e}") from e
        self._mark_written(self._hash_text(text))

    def write_image(self, data: bytes) -> None:
        raise PasteboardError("Writing images is not supported by the pyperclip backend")

    def clear(self) -> None:
        self.write_text("")

    def _mark_written(self, content_hash: str) -> None:
        self._last_hash = content_hash
        self._change_count += 1

    def _content_hash(self) -> str:
        text = self.read_text()
        if text:
            return self._hash_text(text)

        image = self.read_image_bytes()
        if image:
            return hashlib.sha256(image).hexdigest()
        return ""

    @staticmethod
    def _hash_text(text: str) -> str:
        if not text:
            return ""
        return hashlib.sha256(text.encode()).hexdigest()
