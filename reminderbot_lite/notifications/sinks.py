"""Notification sink adapters for reminderbot_lite.

Every sink shares the same alert bookkeeping: an alert stays "visible" for a
fixed display duration and is then dismissed; a second send carrying the key
of a visible alert collapses into it instead of producing another alert.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable
from typing import Callable, Optional, TextIO

import httpx

from .exceptions import NotificationDeliveryError, NotificationPermissionError
from .protocols import NotificationPermission

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_SECONDS = 10.0

PermissionPrompt = Callable[[], Awaitable[bool]]


class BaseNotificationSink:
    """Shared permission state, auto-dismiss and de-duplication for sinks.

    Subclasses implement ``_deliver``.
    """

    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.DEFAULT,
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
    ) -> None:
        self._permission = NotificationPermission(permission)
        self.display_seconds = display_seconds
        # dedupe_key -> pending dismiss handle
        self._visible: dict[str, Optional[asyncio.TimerHandle]] = {}

    def is_supported(self) -> bool:
        return True

    def current_permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> bool:
        """Resolve permission; only the ``default`` state prompts."""
        if not self.is_supported():
            logger.warning("Notifications are not supported by %s", type(self).__name__)
            return False
        if self._permission == NotificationPermission.GRANTED:
            return True
        if self._permission == NotificationPermission.DENIED:
            logger.warning("Notification permission denied")
            return False

        granted = await self._prompt()
        self._permission = (
            NotificationPermission.GRANTED if granted else NotificationPermission.DENIED
        )
        logger.info("Notification permission resolved: %s", self._permission.value)
        return granted

    async def _prompt(self) -> bool:
        return True

    async def send(self, title: str, body: str, dedupe_key: str) -> None:
        """Show an alert unless one with the same key is still visible.

        Raises:
            NotificationDeliveryError: If the underlying transport fails
            NotificationPermissionError: If permission has not been granted
        """
        if self._permission != NotificationPermission.GRANTED:
            raise NotificationPermissionError(
                f"Cannot send alert without permission (state: {self._permission.value})"
            )
        if dedupe_key in self._visible:
            logger.debug("Collapsing duplicate alert %s", dedupe_key)
            self._schedule_dismiss(dedupe_key)
            return

        await self._deliver(title, body, dedupe_key)
        self._schedule_dismiss(dedupe_key)

    async def _deliver(self, title: str, body: str, dedupe_key: str) -> None:
        raise NotImplementedError

    def visible_alerts(self) -> list[str]:
        """Keys of alerts that have not been dismissed yet."""
        return list(self._visible)

    def dismiss(self, dedupe_key: str) -> bool:
        """Dismiss a visible alert; returns False if it was not visible."""
        if dedupe_key not in self._visible:
            return False
        handle = self._visible.pop(dedupe_key)
        if handle is not None:
            handle.cancel()
        logger.debug("Dismissed alert %s", dedupe_key)
        return True

    def _schedule_dismiss(self, dedupe_key: str) -> None:
        existing = self._visible.get(dedupe_key)
        if existing is not None:
            existing.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._visible[dedupe_key] = None
            return
        self._visible[dedupe_key] = loop.call_later(
            self.display_seconds, self._auto_dismiss, dedupe_key
        )

    def _auto_dismiss(self, dedupe_key: str) -> None:
        self._visible.pop(dedupe_key, None)
        logger.debug("Alert %s auto-dismissed after %.0fs", dedupe_key, self.display_seconds)

    async def aclose(self) -> None:
        """Cancel pending dismiss timers."""
        for handle in self._visible.values():
            if handle is not None:
                handle.cancel()
        self._visible.clear()


class ConsoleNotificationSink(BaseNotificationSink):
    """Writes alerts to a text stream (stdout by default).

    Permission defaults to ``granted``; pass ``permission=DEFAULT`` and a
    ``prompt`` coroutine function to ask the user interactively.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        permission: NotificationPermission = NotificationPermission.GRANTED,
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
        prompt: Optional[PermissionPrompt] = None,
    ) -> None:
        super().__init__(permission=permission, display_seconds=display_seconds)
        self._stream = stream
        self._prompt_fn = prompt

    async def _prompt(self) -> bool:
        if self._prompt_fn is None:
            return True
        return bool(await self._prompt_fn())

    async def _deliver(self, title: str, body: str, dedupe_key: str) -> None:
        stream = self._stream or sys.stdout
        try:
            stream.write(f"\n[reminder] {title}\n")
            for line in body.splitlines():
                stream.write(f"    {line}\n")
            stream.flush()
        except (OSError, ValueError) as exc:
            raise NotificationDeliveryError(f"Console delivery failed: {exc}") from exc
        logger.info("Alert shown: %s", title)


class WebhookNotificationSink(BaseNotificationSink):
    """Posts alerts as JSON to an HTTP endpoint.

    Payload: ``{"title", "body", "tag", "expires_in"}``. The sink is
    supported (and permission granted) only when a URL is configured.
    """

    def __init__(
        self,
        url: Optional[str],
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        permission = NotificationPermission.GRANTED if url else NotificationPermission.DENIED
        super().__init__(permission=permission, display_seconds=display_seconds)
        self._url = url
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def is_supported(self) -> bool:
        return bool(self._url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def _deliver(self, title: str, body: str, dedupe_key: str) -> None:
        if not self._url:
            raise NotificationDeliveryError("No webhook URL configured")

        payload = {
            "title": title,
            "body": body,
            "tag": dedupe_key,
            "expires_in": self.display_seconds,
        }
        try:
            response = await self._get_client().post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationDeliveryError(
                f"Webhook rejected alert with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationDeliveryError(f"Webhook delivery failed: {exc}") from exc
        logger.info("Alert posted to webhook: %s", title)

    async def aclose(self) -> None:
        await super().aclose()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
