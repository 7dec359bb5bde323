import datetime
from collections.abc import Generator
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from reminderbot_lite.calendar import CalendarEvent, NotificationSettings, RecurrenceRule
from reminderbot_lite.notifications import NotificationPermission

REMINDERBOT_ENV_VARS = (
    "REMINDERBOT_TEST_TIME",
    "REMINDERBOT_DEBUG",
    "REMINDERBOT_LOG_LEVEL",
    "REMINDERBOT_EVENTS_FILE",
    "REMINDERBOT_SENT_STORE",
    "REMINDERBOT_CHECK_INTERVAL",
    "REMINDERBOT_WEBHOOK_URL",
)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Ensure REMINDERBOT_* variables never leak between tests.

    Some tests set REMINDERBOT_TEST_TIME to freeze the clock; a .env file
    loaded by ConfigManager would otherwise also survive the test.
    """
    for var in REMINDERBOT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield
    for var in REMINDERBOT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for base events with reminders enabled.

    Defaults: "Standup" on Monday 2025-01-06 at 14:00, 15 minute lead,
    non-repeating.
    """

    def _make(
        event_id: str = "evt-1",
        title: str = "Standup",
        day: datetime.date = datetime.date(2025, 1, 6),
        time: Optional[str] = "14:00",
        rule: Optional[RecurrenceRule] = None,
        enabled: bool = True,
        lead: int = 15,
        sent: bool = False,
        description: Optional[str] = None,
    ) -> CalendarEvent:
        return CalendarEvent(
            id=event_id,
            title=title,
            description=description,
            date=day,
            time=time,
            recurrence=rule or RecurrenceRule(),
            is_recurring=rule is not None and rule.is_repeating,
            notification=NotificationSettings(enabled=enabled, lead_minutes=lead, sent=sent),
        )

    return _make


@pytest.fixture
def mock_sink() -> MagicMock:
    """Supported sink double with permission already granted."""
    sink = MagicMock()
    sink.is_supported.return_value = True
    sink.current_permission.return_value = NotificationPermission.GRANTED
    sink.request_permission = AsyncMock(return_value=True)
    sink.send = AsyncMock(return_value=None)
    return sink


class MemorySentStore:
    """In-memory sent store double that records every mark."""

    def __init__(self) -> None:
        self.keys: set[str] = set()
        self.marks: list[str] = []

    def is_sent(self, key: str) -> bool:
        return key in self.keys

    def mark_sent(self, key: str, expires_at: Optional[datetime.datetime] = None) -> str:
        self.keys.add(key)
        self.marks.append(key)
        return "2099-01-01T00:00:00+00:00"


@pytest.fixture
def memory_store() -> MemorySentStore:
    return MemorySentStore()
