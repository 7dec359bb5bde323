"""Application root for reminderbot_lite.

Owns the one scheduler, the sink and the sent store, keeps the scheduler's
occurrence snapshot in step with the events file, and runs until signalled.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
import signal
from pathlib import Path
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from .calendar import CalendarEvent, default_window, describe_end, describe_recurrence, expand_all, load_events
from .calendar.event_codec import EventRecordError
from .config_loader import Config
from .core.time_utils import now_local
from .notifications import (
    BaseNotificationSink,
    ConsoleNotificationSink,
    NotificationScheduler,
    PassReport,
    SentStore,
    WebhookNotificationSink,
)

logger = logging.getLogger(__name__)


def build_sink(config: Config) -> BaseNotificationSink:
    """Webhook sink when a URL is configured, console sink otherwise."""
    display = float(config.notification_display_seconds)
    if config.webhook_url:
        logger.debug("Using webhook sink for %s", config.webhook_url)
        return WebhookNotificationSink(config.webhook_url, display_seconds=display)
    return ConsoleNotificationSink(display_seconds=display)


class ReminderApp:
    """Wires the events file, expansion and the reminder scheduler together."""

    def __init__(
        self,
        config: Config,
        sink: Optional[BaseNotificationSink] = None,
        sent_store: Optional[SentStore] = None,
        clock: Callable[[], datetime.datetime] = now_local,
    ) -> None:
        self.config = config
        self.sink = sink or build_sink(config)
        self.sent_store = sent_store if sent_store is not None else SentStore(config.sent_store_path)
        self._clock = clock
        self.default_event_time = datetime.time(config.default_event_hour, 0)
        self.scheduler = NotificationScheduler(
            self.sink,
            self.sent_store,
            clock=clock,
            check_interval_seconds=config.check_interval_seconds,
            lookahead_minutes=config.lookahead_minutes,
            default_event_time=self.default_event_time,
        )

        self._events_path = Path(config.events_file)
        self._events_mtime: Optional[float] = None
        self._base_events: list[CalendarEvent] = []
        self._occurrences: list[CalendarEvent] = []
        self._expanded_for: Optional[datetime.date] = None

    @property
    def base_events(self) -> list[CalendarEvent]:
        return list(self._base_events)

    @property
    def occurrences(self) -> list[CalendarEvent]:
        return list(self._occurrences)

    def _current_mtime(self) -> Optional[float]:
        try:
            return self._events_path.stat().st_mtime
        except OSError:
            return None

    def reload_events(self, force: bool = False) -> bool:
        """Re-read the events file when it changed (or always with ``force``).

        Returns:
            True if events were reloaded. A file that fails to parse keeps the
            previously loaded events.
        """
        mtime = self._current_mtime()
        if not force and mtime == self._events_mtime:
            return False

        try:
            events = load_events(self._events_path, self.config.default_lead_minutes)
        except (EventRecordError, OSError) as exc:
            logger.error("Failed to load events from %s: %s", self._events_path, exc)
            self._events_mtime = mtime
            return False

        self._events_mtime = mtime
        self._base_events = events
        logger.info("Loaded %d events from %s", len(events), self._events_path)
        self.refresh_occurrences()
        return True

    def refresh_occurrences(self, today: Optional[datetime.date] = None) -> list[CalendarEvent]:
        """Expand the base events over the window around ``today`` and hand them to the scheduler."""
        today = today or self._clock().date()
        start, end = default_window(
            today,
            past=relativedelta(days=self.config.window_past_days),
            future=relativedelta(days=self.config.window_future_days),
        )
        self._occurrences = expand_all(self._base_events, start, end, self.default_event_time)
        self._expanded_for = today
        self.scheduler.set_events(self._occurrences)
        logger.debug(
            "Expanded %d base events into %d occurrences for %s..%s",
            len(self._base_events),
            len(self._occurrences),
            start,
            end,
        )
        return self.occurrences

    def maintain(self) -> None:
        """Reload on file change and slide the window when the day rolls over."""
        if self.reload_events():
            return
        today = self._clock().date()
        if self._expanded_for != today:
            logger.info("Date changed to %s; re-expanding occurrences", today)
            self.refresh_occurrences(today)

    async def run_once(self, now: Optional[datetime.datetime] = None) -> PassReport:
        """Load events and run a single reminder pass."""
        self.reload_events(force=True)
        try:
            return await self.scheduler.check_pass(now)
        finally:
            await self.sink.aclose()

    def describe_occurrences(self) -> list[str]:
        """One line per expanded occurrence: date-time, title and repeat summary."""
        lines = []
        for occ in self._occurrences:
            when = occ.occurrence_datetime(self.default_event_time)
            line = f"{when:%Y-%m-%d %H:%M}  {occ.title}"
            if occ.recurrence.is_repeating:
                line += f"  ({describe_recurrence(occ.recurrence)}, ends {describe_end(occ.recurrence)})"
            lines.append(line)
        return lines

    async def _maintain_loop(self, stop_event: asyncio.Event) -> None:
        interval = self.config.check_interval_seconds
        while not stop_event.is_set():
            try:
                await asyncio.sleep(interval)
                if stop_event.is_set():
                    break
                self.maintain()
            except Exception:
                logger.exception("Events maintenance loop unexpected error")

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run the scheduler until ``stop_event`` is set (or SIGINT/SIGTERM arrives)."""
        owns_stop_event = stop_event is None
        stop_event = stop_event or asyncio.Event()

        self.reload_events(force=True)
        self.scheduler.start()
        maintainer = asyncio.create_task(self._maintain_loop(stop_event), name="events-maintainer")

        loop = asyncio.get_running_loop()
        if owns_stop_event:

            def _on_signal() -> None:
                logger.info("Shutdown signal received")
                stop_event.set()

            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, _on_signal)

        logger.info("reminderbot_lite running (%d occurrences loaded)", len(self._occurrences))
        await stop_event.wait()
        logger.info("Stop event received, shutting down")

        maintainer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await maintainer
        await self.scheduler.aclose()
        try:
            await self.sink.aclose()
        except Exception as e:
            logger.warning("Error closing notification sink: %s", e)
