"""Human-readable summaries of recurrence rules."""

from __future__ import annotations

from .models import RecurrenceRule, RecurrenceType

SHORT_DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
ORDINALS = ("1st", "2nd", "3rd", "4th", "5th")


def describe_recurrence(rule: RecurrenceRule | None) -> str:
    """Summarize how often a rule repeats, e.g. "Weekly on Mon, Wed" or "Daily every 3"."""
    if rule is None or not rule.is_repeating:
        return "No repeat"

    interval_text = "" if rule.interval == 1 else f" every {rule.interval}"

    if rule.type == RecurrenceType.DAILY:
        return f"Daily{interval_text}"

    if rule.type == RecurrenceType.WEEKLY:
        if rule.days_of_week:
            days = ", ".join(SHORT_DAY_NAMES[code] for code in rule.days_of_week)
            return f"Weekly on {days}"
        return f"Weekly{interval_text}"

    if rule.type == RecurrenceType.MONTHLY:
        if rule.day_of_month is not None:
            return f"Monthly on day {rule.day_of_month}"
        if rule.has_nth_weekday:
            ordinal = ORDINALS[rule.week_of_month - 1]  # type: ignore[operator]
            return f"Monthly on {ordinal} {DAY_NAMES[rule.day_of_week]}"  # type: ignore[index]
        return f"Monthly{interval_text}"

    return f"Yearly{interval_text}"


def describe_end(rule: RecurrenceRule) -> str:
    """Summarize when a rule stops: "until 3/1/2025", "after 5 occurrences" or "never"."""
    if rule.end_date is not None:
        end = rule.end_date
        return f"until {end.month}/{end.day}/{end.year}"
    if rule.end_after is not None:
        return f"after {rule.end_after} occurrences"
    return "never"
