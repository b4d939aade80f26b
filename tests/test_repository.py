from datetime import datetime

from clipstash.core.clipboard.history import ClipboardContent, ClipboardEntry
from clipstash.core.storage import DatabaseManager, SettingsRepository
from clipstash.core.storage.database import KeyValueDB
from clipstash.core.storage.repository import HISTORY_KEY, MAX_HISTORY_LENGTH_KEY


def test_values_round_trip(repository):
    assert repository.save_value("answer", {"value": 42})
    assert repository.get_value("answer") == {"value": 42}


def test_missing_value_returns_default(repository):
    assert repository.get_value("nope") is None
    assert repository.get_value("nope", 7) == 7


def test_save_value_overwrites(repository):
    repository.save_value(MAX_HISTORY_LENGTH_KEY, 20)
    repository.save_value(MAX_HISTORY_LENGTH_KEY, 30)

    assert repository.get_value(MAX_HISTORY_LENGTH_KEY) == 30
    assert repository.get_all() == {MAX_HISTORY_LENGTH_KEY: 30}


def test_unreadable_value_returns_default(repository, database):
    session = database.get_session()
    session.add(KeyValueDB(key="broken", value="{oops", updated_at=datetime.now()))
    session.commit()
    session.close()

    assert repository.get_value("broken", "fallback") == "fallback"
    assert repository.get_all() == {}


def test_delete_value(repository):
    repository.save_value("gone", 1)

    assert repository.delete_value("gone")
    assert not repository.delete_value("gone")
    assert repository.get_value("gone") is None


def test_history_round_trip(repository, png_bytes):
    entries = [
        ClipboardEntry(ClipboardContent.text("pinned"), datetime(2025, 1, 2, 3, 4, 5), pinned=True),
        ClipboardEntry(ClipboardContent.image(png_bytes), datetime(2025, 1, 3)),
        ClipboardEntry(ClipboardContent.text("plain"), datetime(2025, 1, 1, 0, 0, 0, 123456)),
    ]

    assert repository.save_history(entries)

    assert repository.load_history() == entries


def test_load_history_missing_is_empty(repository):
    assert repository.load_history() == []


def test_history_blob_is_plain_json_under_its_key(repository):
    repository.save_history([ClipboardEntry(ClipboardContent.text("a"), datetime(2025, 1, 1))])

    stored = repository.get_value(HISTORY_KEY)

    assert stored == [{
        "content": {"type": "text", "value": "a"},
        "timestamp": "2025-01-01T00:00:00",
        "pinned": False,
    }]


def test_settings_round_trip(repository):
    repository.save_settings({"maxHistoryLength": 60, "autoDeleteDays": 2, "unrelated": 1})

    assert repository.load_settings() == {"maxHistoryLength": 60, "autoDeleteDays": 2}


def test_write_failure_reports_false(repository, monkeypatch):
    def broken_session():
        raise RuntimeError("disk full")

    monkeypatch.setattr(repository.db_manager, "get_session", broken_session)

    assert not repository.save_value("k", 1)
    assert not repository.save_history([])
    assert repository.get_value("k", "default") == "default"


def test_file_database_persists_between_managers(tmp_path):
    path = str(tmp_path / "data" / "clipstash.db")

    first = DatabaseManager(path)
    SettingsRepository(first).save_value("kept", True)
    first.close()

    second = DatabaseManager(path)
    assert SettingsRepository(second).get_value("kept") is True
    assert second.get_size() > 0
    second.close()


def test_default_database_lives_in_data_dir(isolated_data_dir):
    manager = DatabaseManager()

    assert manager.db_path == str(isolated_data_dir / "clipstash.db")
    manager.close()
