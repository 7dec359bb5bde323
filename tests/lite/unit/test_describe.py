"""Unit tests for recurrence descriptions."""

from datetime import date

import pytest

from reminderbot_lite.calendar import RecurrenceRule, describe_end, describe_recurrence
from reminderbot_lite.calendar.models import MONDAY, TUESDAY, WEDNESDAY

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("rule", "expected"),
    [
        (RecurrenceRule(), "No repeat"),
        (None, "No repeat"),
        (RecurrenceRule(type="daily"), "Daily"),
        (RecurrenceRule(type="daily", interval=3), "Daily every 3"),
        (RecurrenceRule(type="weekly", interval=2), "Weekly every 2"),
        (RecurrenceRule(type="weekly", days_of_week=[WEDNESDAY, MONDAY]), "Weekly on Mon, Wed"),
        (RecurrenceRule(type="monthly", day_of_month=15), "Monthly on day 15"),
        (
            RecurrenceRule(type="monthly", week_of_month=2, day_of_week=TUESDAY),
            "Monthly on 2nd Tuesday",
        ),
        (RecurrenceRule(type="monthly"), "Monthly"),
        (RecurrenceRule(type="yearly", interval=2), "Yearly every 2"),
    ],
)
def test_describe_recurrence(rule, expected):
    assert describe_recurrence(rule) == expected


def test_describe_end_when_end_date_then_until():
    rule = RecurrenceRule(type="daily", end_date=date(2025, 3, 1))
    assert describe_end(rule) == "until 3/1/2025"


def test_describe_end_when_count_then_after_n():
    assert describe_end(RecurrenceRule(type="daily", end_after=5)) == "after 5 occurrences"


def test_describe_end_when_unbounded_then_never():
    assert describe_end(RecurrenceRule(type="daily")) == "never"
