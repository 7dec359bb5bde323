"""Data models for events and recurrence rules - ReminderBot Lite version."""

from __future__ import annotations

import datetime
import logging
from enum import Enum
from typing import Any, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Weekday codes follow the persisted representation: 0=Sunday .. 6=Saturday
SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)

DEFAULT_LEAD_MINUTES = 15


def weekday_code(day: datetime.date) -> int:
    """Return the 0=Sunday based weekday code for a date."""
    return day.isoweekday() % 7


def _coerce_date(value: Any) -> Any:
    """Accept ISO date or date-time strings (e.g. '2025-03-01T00:00:00.000Z') for date fields."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str) and value.strip():
        return date_parser.isoparse(value.strip()).date()
    return value


class RecurrenceType(str, Enum):
    """Supported repeat frequencies."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceRule(BaseModel):
    """Compact repeat rule attached to a base event.

    All normalization happens here so expansion and scheduling can rely on:
    - ``interval`` is always >= 1
    - ``days_of_week`` is a sorted, de-duplicated list of codes in 0..6
    - ``day_of_month`` is None or in 1..31
    - ``week_of_month`` is None or in 1..5, ``day_of_week`` None or in 0..6
    - ``end_after`` is None or >= 1
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    type: RecurrenceType = RecurrenceType.NONE
    interval: int = Field(default=1, description="Every N days/weeks/months/years")
    end_date: Optional[datetime.date] = Field(default=None, description="Inclusive last date")
    end_after: Optional[int] = Field(default=None, description="Maximum number of occurrences")
    days_of_week: list[int] = Field(default_factory=list, description="Weekly: weekday codes")
    day_of_month: Optional[int] = Field(default=None, description="Monthly: day 1-31")
    week_of_month: Optional[int] = Field(default=None, description="Monthly: nth week 1-5")
    day_of_week: Optional[int] = Field(default=None, description="Monthly: weekday code")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> Any:
        if v is None:
            return RecurrenceType.NONE
        if isinstance(v, RecurrenceType):
            return v
        name = str(v).strip().lower()
        if name == "custom":
            # Custom rules repeat every day and accept every candidate
            return RecurrenceType.DAILY
        try:
            return RecurrenceType(name)
        except ValueError:
            logger.warning("Unknown recurrence type %r; treating as non-repeating", v)
            return RecurrenceType.NONE

    @field_validator("interval", mode="before")
    @classmethod
    def _normalize_interval(cls, v: Any) -> int:
        try:
            value = int(v)
        except (TypeError, ValueError):
            return 1
        return value if value > 0 else 1

    @field_validator("end_date", mode="before")
    @classmethod
    def _parse_end_date(cls, v: Any) -> Any:
        if v == "":
            return None
        return _coerce_date(v)

    @field_validator("end_after", mode="before")
    @classmethod
    def _normalize_end_after(cls, v: Any) -> Optional[int]:
        if v is None:
            return None
        try:
            value = int(v)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _normalize_days_of_week(cls, v: Any) -> list[int]:
        if not v:
            return []
        codes: set[int] = set()
        for raw in v:
            try:
                code = int(raw)
            except (TypeError, ValueError):
                continue
            if 0 <= code <= 6:
                codes.add(code)
        return sorted(codes)

    @field_validator("day_of_month", mode="before")
    @classmethod
    def _normalize_day_of_month(cls, v: Any) -> Optional[int]:
        return _int_in_range(v, 1, 31)

    @field_validator("week_of_month", mode="before")
    @classmethod
    def _normalize_week_of_month(cls, v: Any) -> Optional[int]:
        return _int_in_range(v, 1, 5)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _normalize_day_of_week(cls, v: Any) -> Optional[int]:
        return _int_in_range(v, 0, 6)

    @field_serializer("type")
    def serialize_type(self, value: RecurrenceType) -> str:
        return value.value

    @property
    def is_repeating(self) -> bool:
        return self.type != RecurrenceType.NONE

    @property
    def has_nth_weekday(self) -> bool:
        """True when the monthly "nth weekday of the month" pattern is configured."""
        return self.week_of_month is not None and self.day_of_week is not None

    def weekdays_for(self, anchor: datetime.date) -> frozenset[int]:
        """Weekday codes a weekly rule matches, defaulting to the anchor's weekday."""
        if self.days_of_week:
            return frozenset(self.days_of_week)
        return frozenset({weekday_code(anchor)})

    def target_day(self, anchor: datetime.date) -> int:
        """Day of month a monthly rule aims for, defaulting to the anchor's day."""
        return self.day_of_month if self.day_of_month is not None else anchor.day


def _int_in_range(v: Any, low: int, high: int) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        value = int(v)
    except (TypeError, ValueError):
        return None
    return value if low <= value <= high else None


class NotificationSettings(BaseModel):
    """Reminder settings for an event."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Reminder enabled flag")
    lead_minutes: int = Field(
        default=DEFAULT_LEAD_MINUTES, description="Minutes before the event to remind"
    )
    sent: bool = Field(default=False, description="Reminder already delivered")

    @field_validator("lead_minutes", mode="before")
    @classmethod
    def _normalize_lead_minutes(cls, v: Any) -> int:
        try:
            value = int(v)
        except (TypeError, ValueError):
            return DEFAULT_LEAD_MINUTES
        return value if value > 0 else DEFAULT_LEAD_MINUTES


class CalendarEvent(BaseModel):
    """Calendar event definition, or one concrete occurrence of it.

    Occurrences produced by expansion are copies of the base event with a
    synthetic ``id``, the concrete ``date``, ``is_recurring=True`` and
    ``original_event_id`` pointing back at the base event.
    """

    model_config = ConfigDict(frozen=True)

    # Core properties
    id: str = Field(..., description="Event ID")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    color: Optional[str] = Field(default=None, description="Display color")

    # Time information
    date: datetime.date = Field(..., description="Anchor date (or occurrence date)")
    time: Optional[datetime.time] = Field(default=None, description="Local time of day")

    # Recurrence
    recurrence: RecurrenceRule = Field(default_factory=RecurrenceRule)
    is_recurring: bool = Field(default=False, description="Recurring event flag")
    original_event_id: Optional[str] = Field(
        default=None, description="Base event ID for expanded occurrences"
    )

    notification: NotificationSettings = Field(default_factory=NotificationSettings)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("time", mode="before")
    @classmethod
    def _parse_time(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        if isinstance(v, str):
            hours, _, minutes = v.strip().partition(":")
            return datetime.time(int(hours), int(minutes or 0))
        return v

    @field_serializer("time", when_used="unless-none")
    def serialize_time(self, t: datetime.time) -> str:
        """Serialize time of day as HH:MM."""
        return t.strftime("%H:%M")

    @property
    def is_occurrence(self) -> bool:
        return self.original_event_id is not None

    @property
    def base_event_id(self) -> str:
        return self.original_event_id or self.id

    def occurrence_datetime(self, default_time: datetime.time = datetime.time(9, 0)) -> datetime.datetime:
        """Local date-time of this event; untimed events use ``default_time``."""
        return datetime.datetime.combine(self.date, self.time or default_time)
