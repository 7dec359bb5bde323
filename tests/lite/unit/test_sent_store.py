"""Tests for the delivered-reminder store.

Run with:
    pytest tests/lite/unit/test_sent_store.py -q
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from reminderbot_lite import notifications
from reminderbot_lite.notifications import NotificationScheduler
from reminderbot_lite.notifications.sent_store import SentStore, is_key_sent

pytestmark = pytest.mark.unit

KEY = "evt-1@20250106T1400"


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc))


def test_mark_sent_returns_expiry_two_days_out(tmp_path, clock):
    store = SentStore(tmp_path / "sent.json", clock=clock)

    iso = store.mark_sent(KEY)

    assert datetime.fromisoformat(iso) == clock.now + timedelta(days=2)
    assert store.is_sent(KEY) is True
    assert store.is_sent("other") is False
    assert KEY in store.active_list()


def test_marks_survive_reload(tmp_path, clock):
    path = tmp_path / "sent.json"
    SentStore(path, clock=clock).mark_sent(KEY)

    reopened = SentStore(path, clock=clock)

    assert reopened.is_sent(KEY) is True
    assert json.loads(path.read_text())[KEY].startswith("2025-01-08T12:00:00")


def test_entries_expire_after_ttl(tmp_path, clock):
    store = SentStore(tmp_path / "sent.json", ttl=timedelta(hours=1), clock=clock)
    store.mark_sent(KEY)

    clock.now += timedelta(hours=2)

    assert store.is_sent(KEY) is False
    assert store.active_list() == {}


def test_expired_and_malformed_entries_purged_on_load(tmp_path, clock):
    path = tmp_path / "sent.json"
    data = {
        "old": (clock.now - timedelta(days=1)).isoformat(),
        "good": (clock.now + timedelta(hours=2)).isoformat(),
        "zulu": "2099-01-01T00:00:00Z",
        "bad": "not-a-date",
        "num": 5,
    }
    path.write_text(json.dumps(data))

    store = SentStore(path, clock=clock)

    assert set(store.active_list()) == {"good", "zulu"}


def test_corrupt_file_starts_empty(tmp_path, clock, caplog):
    path = tmp_path / "sent.json"
    path.write_text("{corrupt")

    store = SentStore(path, clock=clock)

    assert store.active_list() == {}
    assert "Failed to read sent store" in caplog.text


def test_clear_all_returns_count_and_persists(tmp_path, clock):
    path = tmp_path / "sent.json"
    store = SentStore(path, clock=clock)
    store.mark_sent("a")
    store.mark_sent("b")

    assert store.clear_all() == 2
    assert json.loads(path.read_text()) == {}


def test_mark_sent_rejects_empty_key(tmp_path, clock):
    store = SentStore(tmp_path / "sent.json", clock=clock)
    with pytest.raises(ValueError):
        store.mark_sent("")


def test_mark_sent_rolls_back_when_persist_fails(tmp_path, clock, monkeypatch):
    store = SentStore(tmp_path / "sent.json", clock=clock)

    def fail() -> None:
        raise OSError("disk full")

    monkeypatch.setattr(store, "_persist", fail)

    with pytest.raises(OSError):
        store.mark_sent(KEY)
    assert store.is_sent(KEY) is False


@pytest.mark.asyncio
async def test_is_key_sent_handles_missing_sync_async_and_failing_stores():
    assert await is_key_sent(KEY, None) is False

    sync_store = Mock()
    sync_store.is_sent.return_value = True
    assert await is_key_sent(KEY, sync_store) is True

    async_store = Mock()
    async_store.is_sent = AsyncMock(return_value=True)
    assert await is_key_sent(KEY, async_store) is True

    failing = Mock()
    failing.is_sent.side_effect = RuntimeError("store offline")
    assert await is_key_sent(KEY, failing) is False


def test_package_export_when_imported_then_names_the_file_backed_store():
    assert notifications.SentStore is SentStore
    assert notifications.SentStoreProtocol is not SentStore


@pytest.mark.asyncio
async def test_file_store_when_shared_by_restarted_scheduler_then_no_resend(
    tmp_path, mock_sink, make_event
):
    path = tmp_path / "sent.json"
    first = NotificationScheduler(mock_sink, SentStore(path))
    first.set_events([make_event()])
    await first.check_pass(datetime(2025, 1, 6, 13, 45))

    restarted = NotificationScheduler(mock_sink, SentStore(path))
    restarted.set_events([make_event()])
    await restarted.check_pass(datetime(2025, 1, 6, 13, 50))

    assert mock_sink.send.await_count == 1
    assert KEY in json.loads(path.read_text())
