"""JSON-backed store of delivered reminders with expiry and atomic writes."""

from __future__ import annotations

import contextlib
import inspect
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SENT_TTL = timedelta(days=2)


async def is_key_sent(key: str, store: object | None) -> bool:
    """Check a key against an optional sent store.

    Handles:
    - None stores (returns False)
    - Stores whose is_sent is a coroutine function
    - Exceptions from is_sent (logs warning, returns False)
    """
    if store is None:
        return False

    is_sent_fn = getattr(store, "is_sent", None)
    if not callable(is_sent_fn):
        return False

    try:
        result = is_sent_fn(key)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
    except Exception as e:
        logger.warning("sent_store.is_sent raised: %s", e)
        return False


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_iso(s: str) -> datetime:
    """Parse ISO-8601 string into an aware datetime (accepts a trailing 'Z')."""
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SentStore:
    """Persistent record of delivered reminder keys.

    The on-disk format is a JSON object mapping key -> expiry_iso. Entries
    expire after ``ttl`` so the file does not grow without bound; the TTL must
    outlive the scheduler's lookahead so an entry cannot vanish while its
    occurrence is still a candidate.
    """

    def __init__(
        self,
        path: str | Path,
        ttl: timedelta = DEFAULT_SENT_TTL,
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        self._path = Path(path)
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        # in-memory mapping key -> expiry datetime (aware UTC)
        self._store: dict[str, datetime] = {}

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.debug("Could not ensure directory for sent store: %s", self._path.parent)

        try:
            self.load()
        except Exception as exc:
            logger.warning("Failed to load sent store %s: %s", self._path, exc)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load JSON from disk (if present), dropping expired and malformed entries."""
        with self._lock:
            if not self._path.exists():
                logger.debug("Sent store file not found; starting empty: %s", self._path)
                self._store = {}
                return

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                if not isinstance(data, dict):
                    raise ValueError("sent store JSON root must be an object")  # noqa: TRY004
            except (OSError, ValueError) as exc:
                logger.warning("Failed to read sent store %s: %s", self._path, exc)
                self._store = {}
                return

            now = self._clock()
            store: dict[str, datetime] = {}
            for k, v in data.items():
                if not k or not isinstance(k, str) or not isinstance(v, str):
                    continue
                try:
                    expiry = _parse_iso(v)
                except ValueError:
                    continue
                if expiry > now:
                    store[k] = expiry

            self._store = store
            logger.debug("Loaded sent store %s (%d active entries)", self._path, len(self._store))

    def _persist(self) -> None:
        """Write the in-memory store to disk atomically. Called with lock held."""
        data: dict[str, str] = {k: v.isoformat() for k, v in self._store.items()}

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except Exception:
            if tmp_path is not None and tmp_path.exists():
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise

    def mark_sent(self, key: str, expires_at: datetime | None = None) -> str:
        """Record ``key`` as delivered and persist.

        Args:
            key: Non-empty reminder key
            expires_at: Optional expiry; defaults to now + ttl

        Returns:
            ISO-8601 expiry timestamp string

        Raises:
            ValueError: If key is invalid
            OSError: If the store could not be written (the entry is rolled back)
        """
        if not key or not isinstance(key, str):
            raise ValueError("key must be a non-empty string")

        with self._lock:
            self._purge_expired_locked()

            expiry = expires_at or self._clock() + self._ttl
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            previous = self._store.get(key)
            self._store[key] = expiry

            try:
                self._persist()
            except Exception as exc:
                if previous is None:
                    self._store.pop(key, None)
                else:
                    self._store[key] = previous
                logger.warning("Failed to persist sent marker for %s: %s", key, exc)
                raise

            logger.debug("Marked %s sent until %s", key, expiry.isoformat())
            return expiry.isoformat()

    def is_sent(self, key: str) -> bool:
        """Return True if ``key`` is recorded and not expired."""
        if not key or not isinstance(key, str):
            return False

        with self._lock:
            expiry = self._store.get(key)
            if expiry is None:
                return False
            if expiry <= self._clock():
                self._store.pop(key, None)
                return False
            return True

    def clear_all(self) -> int:
        """Remove all entries, persist, and return the count cleared."""
        with self._lock:
            count = len(self._store)
            self._store = {}
            self._persist()
            logger.info("Cleared all sent reminder entries (%d)", count)
            return count

    def active_list(self) -> dict[str, str]:
        """Return mapping key -> expiry_iso for non-expired entries."""
        with self._lock:
            self._purge_expired_locked()
            return {k: v.isoformat() for k, v in self._store.items()}

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        for k in [k for k, v in self._store.items() if v <= now]:
            del self._store[k]

    def __repr__(self) -> str:
        return f"SentStore(path={str(self._path)!r}, entries={len(self._store)})"
