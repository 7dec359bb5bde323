"""Recurrence rule predicate and candidate stepping for ReminderBot Lite.

Both halves are pure functions of (date, rule, anchor): they never consult the
clock or any global state, which keeps expansion deterministic.
"""

from __future__ import annotations

import calendar
import datetime

from dateutil.relativedelta import relativedelta

from .models import RecurrenceRule, RecurrenceType, weekday_code


def rolled_date(year: int, month: int, day: int) -> datetime.date:
    """Build a date, letting an out-of-range day spill into the following month.

    ``rolled_date(2025, 2, 31)`` is 2025-03-03, the same result standard
    date construction gives for "February 31st". Nothing is clamped.
    """
    return datetime.date(year, month, 1) + datetime.timedelta(days=day - 1)


def week_of_month(day: datetime.date) -> int:
    """1-based index of ``day``'s weekday within its month (days 1-7 -> 1, 8-14 -> 2, ...)."""
    return (day.day - 1) // 7 + 1


def is_nth_weekday(day: datetime.date, nth: int, weekday: int) -> bool:
    """True when ``day`` is the ``nth`` occurrence of ``weekday`` (0=Sunday) in its month."""
    return weekday_code(day) == weekday and week_of_month(day) == nth


def matches_rule(candidate: datetime.date, rule: RecurrenceRule, anchor: datetime.date) -> bool:
    """Return True if ``candidate`` satisfies ``rule`` for a series anchored at ``anchor``.

    Args:
        candidate: Date under test
        rule: Normalized recurrence rule
        anchor: Base event's anchor date (supplies weekday/day/month defaults)

    Returns:
        Whether the candidate is an occurrence date of the rule
    """
    if rule.type == RecurrenceType.DAILY:
        return True

    if rule.type == RecurrenceType.WEEKLY:
        return weekday_code(candidate) in rule.weekdays_for(anchor)

    if rule.type == RecurrenceType.MONTHLY:
        if rule.day_of_month is None and not rule.has_nth_weekday:
            return candidate.day == anchor.day
        if rule.day_of_month is not None and candidate.day == rule.day_of_month:
            return True
        return rule.has_nth_weekday and is_nth_weekday(
            candidate,
            rule.week_of_month,  # type: ignore[arg-type]
            rule.day_of_week,  # type: ignore[arg-type]
        )

    if rule.type == RecurrenceType.YEARLY:
        return candidate.month == anchor.month and candidate.day == anchor.day

    return False


def advance(
    origin: datetime.date,
    rule: RecurrenceRule,
    steps: int = 1,
    *,
    day: int | None = None,
) -> datetime.date:
    """Step ``origin`` forward by ``steps`` rule intervals.

    Stepping is always computed from ``origin`` rather than chained from the
    previous result, so a month that rolls over (Jan 31 -> "Feb 31" -> Mar 3)
    does not drag later steps off their target day.

    Args:
        origin: Series origin
        rule: Normalized recurrence rule
        steps: Number of intervals to move forward (0 returns the origin period)
        day: Day of month to aim for on monthly/yearly steps (defaults to origin's day)

    Returns:
        The candidate date for that step
    """
    n = rule.interval * steps
    target = origin.day if day is None else day

    if rule.type == RecurrenceType.WEEKLY:
        return origin + datetime.timedelta(weeks=n)

    if rule.type == RecurrenceType.MONTHLY:
        month_start = origin.replace(day=1) + relativedelta(months=n)
        return rolled_date(month_start.year, month_start.month, target)

    if rule.type == RecurrenceType.YEARLY:
        return rolled_date(origin.year + n, origin.month, target)

    return origin + datetime.timedelta(days=n)


def period_candidates(anchor: datetime.date, rule: RecurrenceRule, step: int) -> list[datetime.date]:
    """Candidate dates for the ``step``-th period of a series anchored at ``anchor``.

    Weekly rules step by whole weeks and test each day of the stepped week, so
    a multi-weekday selection is found within each period. Monthly
    nth-weekday rules test every day of the stepped month. Every other rule
    has a single candidate per period.
    """
    if rule.type == RecurrenceType.WEEKLY:
        week_start = advance(anchor, rule, step)
        return [week_start + datetime.timedelta(days=offset) for offset in range(7)]

    if rule.type == RecurrenceType.MONTHLY:
        if rule.has_nth_weekday:
            month_start = advance(anchor, rule, step, day=1)
            days_in_month = calendar.monthrange(month_start.year, month_start.month)[1]
            return [month_start + datetime.timedelta(days=offset) for offset in range(days_in_month)]
        return [advance(anchor, rule, step, day=rule.target_day(anchor))]

    return [advance(anchor, rule, step)]


def first_step_near(anchor: datetime.date, rule: RecurrenceRule, start: datetime.date) -> int:
    """Smallest safe step index whose period may still reach ``start``.

    Used to skip pre-window periods arithmetically for rules without a count
    limit. Backs off by one period so rolled-over candidates are never lost.
    """
    if start <= anchor:
        return 0

    if rule.type == RecurrenceType.WEEKLY:
        span = (start - anchor).days // (7 * rule.interval)
    elif rule.type == RecurrenceType.MONTHLY:
        months = (start.year - anchor.year) * 12 + (start.month - anchor.month)
        span = months // rule.interval
    elif rule.type == RecurrenceType.YEARLY:
        span = (start.year - anchor.year) // rule.interval
    else:
        span = (start - anchor).days // rule.interval

    return max(0, span - 1)
