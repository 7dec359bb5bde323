"""Event models, recurrence expansion and persistence conversion."""

from .describe import describe_end, describe_recurrence
from .event_codec import (
    EventRecordError,
    event_from_record,
    event_to_record,
    load_events,
    rule_from_json,
    rule_to_json,
    save_events,
)
from .expander import default_window, expand, expand_all
from .models import CalendarEvent, NotificationSettings, RecurrenceRule, RecurrenceType

__all__ = [
    "CalendarEvent",
    "EventRecordError",
    "NotificationSettings",
    "RecurrenceRule",
    "RecurrenceType",
    "default_window",
    "describe_end",
    "describe_recurrence",
    "event_from_record",
    "event_to_record",
    "expand",
    "expand_all",
    "load_events",
    "rule_from_json",
    "rule_to_json",
    "save_events",
]
