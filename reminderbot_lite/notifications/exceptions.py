"""Exception hierarchy for reminder delivery.

Scheduler passes catch these per occurrence so one failing reminder never
aborts the rest of the pass.
"""


class NotificationError(Exception):
    """Base exception for all notification errors."""


class NotificationDeliveryError(NotificationError):
    """An alert could not be delivered.

    Raised when:
    - The delivery transport (webhook, console stream) fails
    - The receiving endpoint rejects the alert

    The occurrence is not marked sent and stays eligible for a later pass.
    """


class NotificationPermissionError(NotificationError):
    """A send was attempted without notification permission."""
