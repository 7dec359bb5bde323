"""Reminder scheduling loop for reminderbot_lite.

The scheduler polls the current occurrence snapshot on a fixed interval and
fires each reminder from the first pass at or after the reminder instant
(occurrence time minus lead time) while the occurrence is still upcoming, so
a late or skipped tick delays a reminder rather than losing it. Delivered
reminders are recorded in a sent store so later passes and restarts cannot
fire them twice.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import inspect
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..calendar.models import CalendarEvent
from ..core.time_utils import now_local
from .protocols import NotificationPermission, NotificationSink, SentStoreProtocol
from .sent_store import is_key_sent

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 60.0
DEFAULT_LOOKAHEAD_MINUTES = 30
DEFAULT_EVENT_TIME = datetime.time(9, 0)


@dataclass
class PassReport:
    """Outcome of one scheduler pass."""

    checked_at: datetime.datetime
    candidates: int = 0
    fired: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    suppressed: list[str] = field(default_factory=list)
    skipped_reason: Optional[str] = None


def format_reminder(event: CalendarEvent) -> tuple[str, str]:
    """Build the alert title and body for an occurrence.

    Returns:
        ("Upcoming Event: <title>", "<Ddd, Mon D>[ at HH:MM][\\n<description>]")
    """
    title = f"Upcoming Event: {event.title}"
    body = f"{event.date.strftime('%a, %b')} {event.date.day}"
    if event.time is not None:
        body += f" at {event.time.strftime('%H:%M')}"
    if event.description:
        body += f"\n{event.description}"
    return title, body


class NotificationScheduler:
    """Background loop deciding when to fire reminders.

    Construct one instance at the application root and pass it around; the
    "exactly one active timer" guarantee comes from owning a single instance,
    not from a global.
    """

    def __init__(
        self,
        sink: NotificationSink,
        sent_store: Optional[SentStoreProtocol] = None,
        *,
        clock: Callable[[], datetime.datetime] = now_local,
        check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
        default_event_time: datetime.time = DEFAULT_EVENT_TIME,
    ) -> None:
        self._sink = sink
        self._sent_store = sent_store
        self._clock = clock
        self._check_interval = float(check_interval_seconds)
        self._lookahead = datetime.timedelta(minutes=lookahead_minutes)
        self._default_event_time = default_event_time

        # Replaced wholesale by set_events; a pass reads it exactly once.
        self._events: tuple[CalendarEvent, ...] = ()
        self._running = False
        self._ticker: Optional[asyncio.Task[None]] = None
        self._pass_task: Optional[asyncio.Task[None]] = None
        self._pass_in_progress = False
        self._permission_blocked = False
        # reminder key -> occurrence time, for keys delivered by this process
        self._delivered: dict[str, datetime.datetime] = {}
        self.last_report: Optional[PassReport] = None

    # -- snapshot ---------------------------------------------------------

    def set_events(self, events: Iterable[CalendarEvent]) -> None:
        """Replace the held occurrence snapshot."""
        snapshot = tuple(events)
        self._events = snapshot
        logger.debug("Scheduler snapshot replaced (%d events)", len(snapshot))

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    # -- lifecycle --------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Run one pass now, then one every check interval until stop().

        Must be called from within a running event loop. Calling start() on
        a running scheduler is a no-op.
        """
        if self._running:
            logger.debug("Scheduler already running; start() ignored")
            return

        loop = asyncio.get_running_loop()
        self._running = True
        self._ticker = loop.create_task(self._tick_loop(), name="reminder-scheduler")
        logger.info("Reminder scheduler started (interval %.0fs)", self._check_interval)

    def stop(self) -> None:
        """Cancel the ticker. Safe to call when not running."""
        self._running = False
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
            logger.info("Reminder scheduler stopped")

    async def aclose(self) -> None:
        """Stop and wait for the ticker and any in-flight pass to finish cancelling."""
        ticker = self._ticker
        self.stop()
        pass_task = self._pass_task
        self._pass_task = None
        for task in (ticker, pass_task):
            if task is None or task.done():
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _tick_loop(self) -> None:
        while self._running:
            self._spawn_pass()
            await asyncio.sleep(self._check_interval)

    def _spawn_pass(self) -> None:
        if self._pass_task is not None and not self._pass_task.done():
            logger.warning("Previous reminder pass still in flight; skipping this tick")
            return
        self._pass_task = asyncio.create_task(self._guarded_pass(), name="reminder-pass")

    async def _guarded_pass(self) -> None:
        try:
            await self.check_pass()
        except Exception:
            logger.exception("Reminder pass failed unexpectedly")

    # -- permission -------------------------------------------------------

    @property
    def permission_blocked(self) -> bool:
        """True when the last permission check found notifications denied."""
        return self._permission_blocked

    def current_permission(self) -> Optional[NotificationPermission]:
        """Sink permission state, or None if the sink is unsupported."""
        if not self._sink.is_supported():
            return None
        return NotificationPermission(self._sink.current_permission())

    async def _ensure_permission(self) -> bool:
        permission = NotificationPermission(self._sink.current_permission())
        if permission == NotificationPermission.DEFAULT:
            granted = await self._sink.request_permission()
            permission = NotificationPermission.GRANTED if granted else NotificationPermission.DENIED

        blocked = permission != NotificationPermission.GRANTED
        if blocked and not self._permission_blocked:
            logger.warning("Notification permission %s; reminders will not be sent", permission.value)
        elif not blocked and self._permission_blocked:
            logger.info("Notification permission granted; reminders resumed")
        self._permission_blocked = blocked
        return not blocked

    # -- timing -----------------------------------------------------------

    def occurrence_time(self, event: CalendarEvent) -> datetime.datetime:
        return event.occurrence_datetime(self._default_event_time)

    def reminder_time(self, event: CalendarEvent) -> datetime.datetime:
        """Reminder instant: occurrence time minus the event's lead minutes."""
        lead = datetime.timedelta(minutes=event.notification.lead_minutes)
        return self.occurrence_time(event) - lead

    def reminder_key(self, event: CalendarEvent) -> str:
        """Identity of one reminder: occurrence id plus its date-time."""
        return f"{event.id}@{self.occurrence_time(event).strftime('%Y%m%dT%H%M')}"

    def upcoming(
        self, events: Iterable[CalendarEvent], now: datetime.datetime
    ) -> list[CalendarEvent]:
        """Enabled, unsent occurrences starting within ``[now, now + lookahead]``."""
        horizon = now + self._lookahead
        result = []
        for event in events:
            if not event.notification.enabled or event.notification.sent:
                continue
            when = self.occurrence_time(event)
            if now <= when <= horizon:
                result.append(event)
        return result

    def is_due(self, event: CalendarEvent, now: datetime.datetime) -> bool:
        """True once the reminder instant has been reached.

        Callers only pass upcoming occurrences, so a reminder stays due from
        its instant until the occurrence starts; the delivered set and the
        sent store keep it from firing more than once.
        """
        return now >= self.reminder_time(event)

    # -- pass -------------------------------------------------------------

    async def check_pass(self, now: Optional[datetime.datetime] = None) -> PassReport:
        """Evaluate the snapshot once and fire every reminder that is due.

        Passes never overlap: a pass requested while another is in flight
        returns immediately with ``skipped_reason`` set.
        """
        now = now or self._clock()
        report = PassReport(checked_at=now)

        if self._pass_in_progress:
            report.skipped_reason = "pass already in progress"
            return report

        self._pass_in_progress = True
        try:
            await self._run_pass(now, report)
        finally:
            self._pass_in_progress = False

        self.last_report = report
        if report.fired or report.failed:
            logger.info(
                "Reminder pass at %s: %d candidates, %d sent, %d failed",
                now.strftime("%H:%M:%S"),
                report.candidates,
                len(report.fired),
                len(report.failed),
            )
        return report

    async def _run_pass(self, now: datetime.datetime, report: PassReport) -> None:
        if not self._sink.is_supported():
            report.skipped_reason = "notifications unsupported"
            return

        events = self._events
        self._forget_delivered_before(now)
        candidates = self.upcoming(events, now)
        report.candidates = len(candidates)

        permitted: Optional[bool] = None
        for event in candidates:
            key = self.reminder_key(event)
            if not self.is_due(event, now):
                continue
            if key in self._delivered or await is_key_sent(key, self._sent_store):
                logger.debug("Reminder %s already delivered; skipping", key)
                continue

            if permitted is None:
                permitted = await self._ensure_permission()
            if not permitted:
                report.suppressed.append(key)
                continue

            title, body = format_reminder(event)
            try:
                await self._sink.send(title, body, f"event-{event.id}")
            except Exception as exc:
                logger.warning("Failed to send notification for event %s: %s", event.title, exc)
                report.failed.append(key)
                continue

            logger.info("Notification sent for event: %s", event.title)
            report.fired.append(key)
            await self._mark_sent(key, self.occurrence_time(event))

    async def _mark_sent(self, key: str, occurrence: datetime.datetime) -> None:
        self._delivered[key] = occurrence
        if self._sent_store is None:
            return
        try:
            result = self._sent_store.mark_sent(key)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Failed to record reminder %s as sent", key)

    def _forget_delivered_before(self, now: datetime.datetime) -> None:
        expired = [k for k, when in self._delivered.items() if when < now]
        for k in expired:
            del self._delivered[k]
