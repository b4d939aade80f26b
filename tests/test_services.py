import threading

from clipstash.core.clipboard.history import ClipboardContent
from clipstash.services import MaintenanceService, PollService


def test_poll_service_ticks_until_stopped():
    ticked = threading.Event()
    service = PollService(ticked.set, interval_ms=20)

    service.start()
    try:
        assert service.is_running
        assert ticked.wait(timeout=5)
    finally:
        service.stop()

    assert not service.is_running


def test_poll_service_survives_failing_ticks():
    calls = []
    second_call = threading.Event()

    def flaky():
        calls.append(1)
        if len(calls) >= 2:
            second_call.set()
        raise RuntimeError("pasteboard exploded")

    service = PollService(flaky, interval_ms=20)
    service.start()
    try:
        assert second_call.wait(timeout=5)
    finally:
        service.stop()


def test_poll_service_can_restart():
    ticked = threading.Event()
    service = PollService(ticked.set, interval_ms=20)

    service.start()
    service.stop()
    ticked.clear()
    service.start()
    try:
        assert ticked.wait(timeout=5)
    finally:
        service.stop()


def test_maintenance_prunes_expired_entries_and_compacts(manager, clock, database):
    manager.auto_delete_days = 2
    manager.insert(ClipboardContent.text("old"))
    clock.advance(days=1)
    manager.insert(ClipboardContent.text("new"))
    clock.advance(hours=36)

    report = MaintenanceService(manager, database).run_now()

    assert report["pruned"] == 1
    assert report["vacuumed"]
    assert [e.content.value for e in manager.entries] == ["new"]


def test_maintenance_without_database_only_prunes(manager):
    service = MaintenanceService(manager)

    report = service.run_now()

    assert report == service.last_report
    assert report["pruned"] == 0
    assert not report["vacuumed"]


def test_failed_compaction_is_reported(manager, database, monkeypatch):
    def locked():
        raise RuntimeError("database is locked")

    monkeypatch.setattr(database, "vacuum", locked)

    report = MaintenanceService(manager, database).run_now()

    assert not report["vacuumed"]
    assert report["finished_at"] is not None


def test_maintenance_schedule_reports_next_run(manager):
    service = MaintenanceService(manager, interval_seconds=3600)
    assert service.get_next_run() is None

    service.start()
    try:
        assert service.is_running
        assert service.get_next_run() is not None
    finally:
        service.stop()

    assert not service.is_running
    assert service.get_next_run() is None
