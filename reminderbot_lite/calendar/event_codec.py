"""Conversion between event models and the external persistence record.

The persisted record is a flat mapping::

    {
        "id": "evt-1",
        "title": "Standup",
        "description": "Daily sync",
        "date": "2025-01-06",
        "time": "09:30",
        "color": "#3b82f6",
        "recurrence": "{\"type\":\"weekly\",\"interval\":1,\"daysOfWeek\":[1,3,5]}",
        "isRecurring": true,
        "notificationEnabled": true,
        "notificationTime": 15,
        "notificationSent": false
    }

``recurrence`` is stored as a serialized JSON string; a nested mapping is
accepted on read as well.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .models import DEFAULT_LEAD_MINUTES, CalendarEvent, NotificationSettings, RecurrenceRule

logger = logging.getLogger(__name__)


class EventRecordError(ValueError):
    """A persisted event record could not be converted into a model."""


def rule_to_json(rule: RecurrenceRule) -> str:
    """Serialize a recurrence rule to its persisted JSON string."""
    return rule.model_dump_json(by_alias=True, exclude_none=True)


def rule_from_json(payload: Optional[Any]) -> RecurrenceRule:
    """Parse a persisted recurrence rule (JSON string or mapping).

    Missing or empty payloads yield the non-repeating rule.

    Raises:
        EventRecordError: If the payload is not valid JSON or not an object
    """
    if payload is None or payload == "":
        return RecurrenceRule()

    data = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise EventRecordError(f"Invalid recurrence JSON: {exc}") from exc

    if data is None:
        return RecurrenceRule()
    if not isinstance(data, Mapping):
        raise EventRecordError("Recurrence rule must be a JSON object")

    try:
        return RecurrenceRule.model_validate(dict(data))
    except ValidationError as exc:
        raise EventRecordError(f"Invalid recurrence rule: {exc}") from exc


def event_to_record(event: CalendarEvent) -> dict[str, Any]:
    """Convert an event to the flat persisted record."""
    record: dict[str, Any] = {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "date": event.date.isoformat(),
        "time": event.time.strftime("%H:%M") if event.time else None,
        "color": event.color,
        "recurrence": rule_to_json(event.recurrence),
        "isRecurring": event.is_recurring,
        "notificationEnabled": event.notification.enabled,
        "notificationTime": event.notification.lead_minutes,
        "notificationSent": event.notification.sent,
    }
    if event.original_event_id is not None:
        record["originalEventId"] = event.original_event_id
    return record


def event_from_record(
    record: Mapping[str, Any], default_lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> CalendarEvent:
    """Build an event from a persisted record.

    A missing or zero ``notificationTime`` falls back to ``default_lead_minutes``.

    Raises:
        EventRecordError: If required fields are missing or malformed
    """
    if not isinstance(record, Mapping):
        raise EventRecordError("Event record must be a mapping")

    try:
        notification = NotificationSettings(
            enabled=bool(record.get("notificationEnabled", False)),
            lead_minutes=record.get("notificationTime") or default_lead_minutes,
            sent=bool(record.get("notificationSent", False)),
        )
        return CalendarEvent(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            description=record.get("description"),
            color=record.get("color"),
            date=record["date"],
            time=record.get("time"),
            recurrence=rule_from_json(record.get("recurrence")),
            is_recurring=bool(record.get("isRecurring", False)),
            original_event_id=record.get("originalEventId"),
            notification=notification,
        )
    except EventRecordError:
        raise
    except KeyError as exc:
        raise EventRecordError(f"Event record missing field {exc}") from exc
    except (ValidationError, ValueError, TypeError) as exc:
        raise EventRecordError(f"Invalid event record {record.get('id')!r}: {exc}") from exc


def load_events(
    path: str | Path, default_lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> list[CalendarEvent]:
    """Load base events from a JSON file holding a list of records.

    Malformed records are logged and skipped so one bad entry does not hide
    the rest of the calendar. A missing file yields an empty list.

    Raises:
        EventRecordError: If the file is not valid JSON or its root is not a list
    """
    p = Path(path)
    if not p.exists():
        logger.info("Events file %s not found; starting with no events", p)
        return []

    try:
        with p.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise EventRecordError(f"Events file {p} is not valid JSON: {exc}") from exc

    if isinstance(data, Mapping) and "events" in data:
        data = data["events"]
    if not isinstance(data, list):
        raise EventRecordError(f"Events file {p} must contain a list of events")

    events: list[CalendarEvent] = []
    for i, record in enumerate(data):
        try:
            events.append(event_from_record(record, default_lead_minutes))
        except EventRecordError as exc:
            logger.warning("Skipping malformed event record #%d in %s: %s", i, p, exc)
            continue

    logger.debug("Loaded %d events from %s", len(events), p)
    return events


def save_events(path: str | Path, events: Iterable[CalendarEvent]) -> None:
    """Write events to ``path`` atomically (temp file in the same directory, then replace)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    records = [event_to_record(ev) for ev in events]

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile("w", dir=p.parent, delete=False, encoding="utf-8") as tf:
            tmp_path = Path(tf.name)
            json.dump(records, tf, ensure_ascii=False, indent=2)
            tf.flush()
            with contextlib.suppress(OSError):
                os.fsync(tf.fileno())
        tmp_path.replace(p)
    except Exception:
        if tmp_path is not None and tmp_path.exists():
            with contextlib.suppress(OSError):
                tmp_path.unlink()
        raise

    logger.debug("Saved %d events to %s", len(records), p)
