"""Protocol definitions for the scheduler's collaborators.

The scheduler depends only on these capability interfaces, never on a
concrete sink or store, so tests and applications can inject their own.
"""

from __future__ import annotations

import datetime
from collections.abc import Awaitable
from enum import Enum
from typing import Optional, Protocol, Union


class NotificationPermission(str, Enum):
    """Permission state reported by a notification sink."""

    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"


class NotificationSink(Protocol):
    """Capability for showing user-visible alerts."""

    def is_supported(self) -> bool:
        """Return True if this sink can deliver alerts at all."""
        ...

    def current_permission(self) -> NotificationPermission:
        """Return the current permission state without prompting."""
        ...

    async def request_permission(self) -> bool:
        """Ask for permission, possibly waiting on the user.

        Returns:
            True if permission is granted
        """
        ...

    async def send(self, title: str, body: str, dedupe_key: str) -> None:
        """Display an alert.

        Alerts auto-dismiss after a fixed duration; a send whose
        ``dedupe_key`` matches a visible alert collapses into it.

        Raises:
            NotificationDeliveryError: If the alert could not be delivered
        """
        ...


class SentStoreProtocol(Protocol):
    """Durable record of occurrences whose reminder has been delivered.

    Methods may be plain or coroutine functions.
    """

    def is_sent(self, key: str) -> Union[bool, Awaitable[bool]]:
        """Return True if ``key`` has already been notified."""
        ...

    def mark_sent(
        self, key: str, expires_at: Optional[datetime.datetime] = None
    ) -> Union[object, Awaitable[object]]:
        """Record ``key`` as notified."""
        ...
