import io

import pyperclip
import pytest
from PIL import Image, ImageGrab

from clipstash.core.clipboard.history import ClipboardContent
from clipstash.core.clipboard.pasteboard import MemoryPasteboard, PyperclipPasteboard, to_png_bytes
from clipstash.core.exceptions import PasteboardError


@pytest.fixture
def fake_clipboard(monkeypatch):
    """Route pyperclip and ImageGrab through a dict."""
    state = {"text": "", "image": None}

    monkeypatch.setattr(pyperclip, "paste", lambda: state["text"])
    monkeypatch.setattr(pyperclip, "copy", lambda text: state.update(text=text))
    monkeypatch.setattr(ImageGrab, "grabclipboard", lambda: state["image"])
    return state


def test_memory_pasteboard_counts_every_write(png_bytes):
    board = MemoryPasteboard()

    board.write_text("a")
    board.write_text("a")
    assert board.change_count() == 2

    board.write_image(png_bytes)
    assert board.read_text() is None
    assert board.read_image_bytes() == png_bytes

    board.clear()
    assert board.read_image_bytes() is None
    assert board.change_count() == 4


def test_pyperclip_counter_follows_content(fake_clipboard):
    board = PyperclipPasteboard()
    start = board.change_count()

    assert board.change_count() == start

    fake_clipboard["text"] = "external"
    assert board.change_count() == start + 1
    assert board.change_count() == start + 1
    assert board.read_text() == "external"


def test_pyperclip_write_advances_counter_once(fake_clipboard):
    board = PyperclipPasteboard()
    start = board.change_count()

    board.write_text("ours")

    assert fake_clipboard["text"] == "ours"
    assert board.change_count() == start + 1


def test_pyperclip_rewrite_of_same_text_still_counts(fake_clipboard):
    fake_clipboard["text"] = "same"
    board = PyperclipPasteboard()
    start = board.change_count()

    board.write_text("same")

    assert board.change_count() == start + 1


def test_pyperclip_image_read_is_png(fake_clipboard):
    fake_clipboard["image"] = Image.new("RGB", (3, 2))
    board = PyperclipPasteboard()

    data = board.read_image_bytes()

    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "PNG"
        assert image.size == (3, 2)


def test_pyperclip_file_lists_are_not_images(fake_clipboard):
    fake_clipboard["image"] = ["/tmp/a.txt"]

    assert PyperclipPasteboard().read_image_bytes() is None


def test_pyperclip_image_grab_unavailable(monkeypatch, fake_clipboard):
    def unavailable():
        raise NotImplementedError("no wl-paste or xclip")

    monkeypatch.setattr(ImageGrab, "grabclipboard", unavailable)

    assert PyperclipPasteboard().read_image_bytes() is None


def test_pyperclip_errors_become_pasteboard_errors(monkeypatch, fake_clipboard):
    def broken():
        raise pyperclip.PyperclipException("no copy/paste mechanism")

    monkeypatch.setattr(pyperclip, "paste", broken)

    with pytest.raises(PasteboardError):
        PyperclipPasteboard().read_text()


def test_pyperclip_cannot_write_images(fake_clipboard, png_bytes):
    with pytest.raises(PasteboardError):
        PyperclipPasteboard().write_image(png_bytes)


def test_to_png_bytes(bmp_bytes):
    png = to_png_bytes(bmp_bytes)

    assert png.startswith(b"\x89PNG")
    assert to_png_bytes(b"garbage") is None


def test_failed_image_copy_leaves_clipboard_untouched(fake_clipboard, make_manager, png_bytes):
    fake_clipboard["text"] = "user text"
    manager = make_manager(pasteboard=PyperclipPasteboard())
    manager.insert(ClipboardContent.image(png_bytes))

    assert not manager.copy(manager.entries[0])
    assert fake_clipboard["text"] == "user text"

    manager.tick()
    assert len(manager.entries) == 1
