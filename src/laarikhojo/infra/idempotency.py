"""Idempotency ledger for webhook status notifications.

Meta delivers webhooks at least once, so the same delivery/read status can
arrive several times. Before acting on a status id the webhook calls
`check_and_mark`, which atomically records the id and reports whether it
was new.

Backends (IDEMPOTENCY_BACKEND env var):
- memory (default): per-process, TTL-bounded. Single-instance deployments only.
- postgres: `processed_events` table shared by every instance.
"""

from __future__ import annotations

import os
import threading
import time
from collections import OrderedDict
from typing import Callable, Protocol

from .db import txn

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 100_000

STATUS_SOURCE = "whatsapp_status"


class IdempotencyGuard(Protocol):
    """Ledger of already-processed identifiers."""

    def seen(self, key: str) -> bool: ...

    def mark_seen(self, key: str) -> None: ...

    def check_and_mark(self, key: str) -> bool:
        """Record `key`; True if it was not seen before."""
        ...


class InMemoryIdempotencyGuard:
    """Thread-safe, TTL-expiring in-process ledger.

    Entries expire after `ttl_seconds`; the ledger also evicts its oldest
    entries beyond `max_entries` so a long-lived process stays bounded.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, float] = OrderedDict()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        # Insertion order == expiry order, so expired entries sit at the front.
        while self._entries:
            key, expires_at = next(iter(self._entries.items()))
            if expires_at > now and len(self._entries) <= self._max_entries:
                break
            del self._entries[key]

    def seen(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            self._evict(now)
            return key in self._entries

    def mark_seen(self, key: str) -> None:
        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._entries[key] = now + self._ttl
            self._evict(now)

    def check_and_mark(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            self._evict(now)
            if key in self._entries:
                return False
            self._entries[key] = now + self._ttl
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PostgresIdempotencyGuard:
    """Ledger backed by `processed_events (source, external_id)`.

    `check_and_mark` relies on INSERT ... ON CONFLICT DO NOTHING, so two
    concurrent deliveries of the same id cannot both win.
    """

    def __init__(self, source: str = STATUS_SOURCE) -> None:
        self._source = source

    def seen(self, key: str) -> bool:
        with txn() as cur:
            cur.execute(
                """
                SELECT 1 FROM processed_events
                WHERE source = %s AND external_id = %s
                """,
                (self._source, key),
            )
            return cur.fetchone() is not None

    def mark_seen(self, key: str) -> None:
        self.check_and_mark(key)

    def check_and_mark(self, key: str) -> bool:
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO processed_events (source, external_id)
                VALUES (%s, %s)
                ON CONFLICT (source, external_id) DO NOTHING
                """,
                (self._source, key),
            )
            return cur.rowcount == 1


_guard: IdempotencyGuard | None = None
_guard_lock = threading.Lock()


def build_guard(backend: str | None = None) -> IdempotencyGuard:
    """Create a guard for the given (or configured) backend.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = (backend or os.environ.get("IDEMPOTENCY_BACKEND", "memory")).strip().lower()
    if backend == "memory":
        ttl_raw = os.environ.get("IDEMPOTENCY_TTL_SECONDS", "")
        ttl = float(ttl_raw) if ttl_raw else DEFAULT_TTL_SECONDS
        return InMemoryIdempotencyGuard(ttl_seconds=ttl)
    if backend == "postgres":
        return PostgresIdempotencyGuard()
    raise ValueError(f"Unknown IDEMPOTENCY_BACKEND: {backend}")


def get_guard() -> IdempotencyGuard:
    """Process-wide guard instance (created on first use)."""
    global _guard
    with _guard_lock:
        if _guard is None:
            _guard = build_guard()
        return _guard


def set_guard(guard: IdempotencyGuard | None) -> None:
    """Replace the process-wide guard (None resets to lazy creation)."""
    global _guard
    with _guard_lock:
        _guard = guard
