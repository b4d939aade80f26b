import io
from datetime import datetime, timedelta

import pytest
from PIL import Image

from clipstash.core.clipboard.pasteboard import MemoryPasteboard
from clipstash.core.manager import ClipboardManager
from clipstash.core.storage import DatabaseManager, SettingsRepository


class FakeClock:
    """Manually advanced replacement for datetime.now"""

    def __init__(self, start: datetime = datetime(2025, 6, 28, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class ManualTimer:
    """threading.Timer stand-in that only fires when told to"""

    created = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.daemon = False
        ManualTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FakeScheduler:
    def __init__(self):
        self.is_running = False

    def start(self):
        self.is_running = True

    def stop(self):
        self.is_running = False


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep databases, settings and logs out of the real home directory."""
    monkeypatch.setenv("CLIPSTASH_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("APPDATA", raising=False)
    return tmp_path / "home"


@pytest.fixture
def database():
    """Provide an in-memory SQLite database."""
    manager = DatabaseManager(":memory:")
    yield manager
    manager.close()


@pytest.fixture
def repository(database) -> SettingsRepository:
    return SettingsRepository(database)


@pytest.fixture
def pasteboard() -> MemoryPasteboard:
    return MemoryPasteboard()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manual_timers():
    ManualTimer.created = []
    return ManualTimer.created


@pytest.fixture
def make_manager(repository, pasteboard, clock, manual_timers):
    """Build a ClipboardManager over the shared repository and pasteboard."""

    def factory(**kwargs):
        target = kwargs.pop("pasteboard", pasteboard)
        kwargs.setdefault("timer_factory", ManualTimer)
        kwargs.setdefault("clock", clock)
        return ClipboardManager(repository, target, **kwargs)

    return factory


@pytest.fixture
def manager(make_manager) -> ClipboardManager:
    return make_manager()


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(70, 130, 180)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def bmp_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(192, 192, 192)).save(buffer, format="BMP")
    return buffer.getvalue()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()
