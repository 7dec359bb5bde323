"""Unit tests for converting events to and from persisted records."""

import json
from datetime import date, time

import pytest

from reminderbot_lite.calendar import (
    EventRecordError,
    RecurrenceRule,
    event_from_record,
    event_to_record,
    load_events,
    rule_from_json,
    rule_to_json,
    save_events,
)
from reminderbot_lite.calendar.models import FRIDAY, MONDAY, RecurrenceType

pytestmark = pytest.mark.unit


def _record(**overrides):
    record = {
        "id": "evt-1",
        "title": "Standup",
        "description": "Daily sync",
        "date": "2025-01-06",
        "time": "14:00",
        "color": "#3b82f6",
        "recurrence": json.dumps({"type": "weekly", "interval": 1, "daysOfWeek": [1, 3, 5]}),
        "isRecurring": True,
        "notificationEnabled": True,
        "notificationTime": 10,
        "notificationSent": False,
    }
    record.update(overrides)
    return record


class TestRuleJson:
    def test_rule_to_json_when_serialized_then_camel_case_without_nulls(self) -> None:
        rule = RecurrenceRule(type="weekly", days_of_week=[MONDAY, FRIDAY], end_after=4)

        data = json.loads(rule_to_json(rule))

        assert data == {"type": "weekly", "interval": 1, "endAfter": 4, "daysOfWeek": [1, 5]}

    def test_rule_when_round_tripped_then_equal(self) -> None:
        rule = RecurrenceRule(
            type="monthly",
            interval=2,
            end_date=date(2025, 12, 31),
            week_of_month=2,
            day_of_week=3,
        )
        assert rule_from_json(rule_to_json(rule)) == rule

    def test_rule_from_json_when_empty_then_non_repeating(self) -> None:
        assert rule_from_json(None) == RecurrenceRule()
        assert rule_from_json("") == RecurrenceRule()
        assert rule_from_json("null") == RecurrenceRule()

    def test_rule_from_json_when_mapping_then_accepted(self) -> None:
        assert rule_from_json({"type": "yearly"}).type == RecurrenceType.YEARLY

    def test_rule_from_json_when_malformed_then_raises(self) -> None:
        with pytest.raises(EventRecordError):
            rule_from_json("{not json")
        with pytest.raises(EventRecordError):
            rule_from_json("[1, 2]")


class TestEventRecords:
    def test_event_from_record_when_valid_then_fields_mapped(self) -> None:
        event = event_from_record(_record())

        assert event.id == "evt-1"
        assert event.date == date(2025, 1, 6)
        assert event.time == time(14, 0)
        assert event.recurrence.days_of_week == [1, 3, 5]
        assert event.notification.enabled is True
        assert event.notification.lead_minutes == 10
        assert event.is_occurrence is False

    def test_event_from_record_when_iso_timestamp_date_then_date_part_used(self) -> None:
        event = event_from_record(_record(date="2025-03-01T00:00:00.000Z", time=None))
        assert event.date == date(2025, 3, 1)
        assert event.time is None

    def test_event_from_record_when_lead_missing_or_zero_then_default(self) -> None:
        assert event_from_record(_record(notificationTime=0)).notification.lead_minutes == 15
        record = _record()
        del record["notificationTime"]
        assert event_from_record(record, default_lead_minutes=20).notification.lead_minutes == 20

    def test_event_from_record_when_id_missing_then_raises(self) -> None:
        record = _record()
        del record["id"]
        with pytest.raises(EventRecordError, match="missing field"):
            event_from_record(record)

    def test_event_from_record_when_bad_values_then_raises(self) -> None:
        with pytest.raises(EventRecordError):
            event_from_record(_record(date="not-a-date"))
        with pytest.raises(EventRecordError):
            event_from_record(_record(recurrence="{broken"))
        with pytest.raises(EventRecordError):
            event_from_record(["not", "a", "mapping"])

    def test_event_when_round_tripped_through_record_then_equal(self) -> None:
        event = event_from_record(_record(originalEventId="base-1"))

        record = event_to_record(event)

        assert record["originalEventId"] == "base-1"
        assert record["time"] == "14:00"
        assert event_from_record(record) == event


class TestEventsFile:
    def test_load_events_when_file_missing_then_empty(self, tmp_path) -> None:
        assert load_events(tmp_path / "missing.json") == []

    def test_load_events_when_bad_record_then_skipped(self, tmp_path, caplog) -> None:
        path = tmp_path / "events.json"
        path.write_text(json.dumps({"events": [_record(), {"title": "no id"}]}))

        events = load_events(path)

        assert [ev.id for ev in events] == ["evt-1"]
        assert "Skipping malformed event record #1" in caplog.text

    def test_load_events_when_invalid_json_then_raises(self, tmp_path) -> None:
        path = tmp_path / "events.json"
        path.write_text("{oops")
        with pytest.raises(EventRecordError):
            load_events(path)

    def test_load_events_when_root_not_list_then_raises(self, tmp_path) -> None:
        path = tmp_path / "events.json"
        path.write_text(json.dumps({"something": "else"}))
        with pytest.raises(EventRecordError):
            load_events(path)

    def test_save_events_when_written_then_loadable(self, tmp_path) -> None:
        path = tmp_path / "nested" / "events.json"
        events = [event_from_record(_record()), event_from_record(_record(id="evt-2", time=None))]

        save_events(path, events)

        assert load_events(path) == events
        assert list(path.parent.iterdir()) == [path]
