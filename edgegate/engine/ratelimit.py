"""Windowed failed-authentication limiter keyed by client and tenant.

Each ``(client, subdomain)`` key counts failed attempts inside a fixed
window that starts at the first failure. A key reaching its threshold is
limited until the window expires or a successful login clears it.

Memory is bounded: once ``max_keys`` entries exist, creating a new one
evicts the oldest-inserted entry.

Example:
    limiter = FailureRateLimiter()

    if limiter.is_rate_limited(client_id, subdomain):
        return 429
    if not valid:
        limiter.register_failed_attempt(client_id, subdomain)
    else:
        limiter.clear_failures(client_id, subdomain)
"""

from __future__ import annotations

import math
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic

import structlog

from edgegate.config.rate_limit_defaults import (
    MAX_FAILED_ATTEMPTS,
    MAX_FAILED_ATTEMPTS_UNKNOWN,
    MAX_RATE_LIMIT_KEYS,
    RATE_LIMIT_WINDOW_SECONDS,
    UNKNOWN_CLIENT,
)

logger = structlog.get_logger()


@dataclass
class RateLimitEntry:
    """Failures recorded for one key in the current window."""

    failures: int
    reset_at: float


class FailureRateLimiter:
    """Process-wide failure table guarded by a single lock.

    Operations never suspend, so one ``threading.Lock`` keeps every
    read-modify-write atomic for both threadpool and event-loop callers.
    """

    def __init__(
        self,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        max_failures: int = MAX_FAILED_ATTEMPTS,
        max_failures_unknown: int = MAX_FAILED_ATTEMPTS_UNKNOWN,
        max_keys: int = MAX_RATE_LIMIT_KEYS,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_failures = max_failures
        self.max_failures_unknown = max_failures_unknown
        self.max_keys = max_keys
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], RateLimitEntry] = OrderedDict()
        self._lock = threading.Lock()

    def limit_for(self, client_id: str) -> int:
        if client_id == UNKNOWN_CLIENT:
            return self.max_failures_unknown
        return self.max_failures

    def _prune_if_expired(self, key: tuple[str, str], now: float) -> RateLimitEntry | None:
        entry = self._entries.get(key)
        if entry is not None and now > entry.reset_at:
            del self._entries[key]
            return None
        return entry

    def _evict_if_needed(self) -> None:
        """Drop the oldest-inserted entry when the table is full."""
        if len(self._entries) < self.max_keys:
            return
        if self._entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("rate_limit_entry_evicted", client_id=evicted[0], subdomain=evicted[1])

    def is_rate_limited(self, client_id: str, subdomain: str) -> bool:
        key = (client_id, subdomain)
        with self._lock:
            entry = self._prune_if_expired(key, self._clock())
            return entry is not None and entry.failures >= self.limit_for(client_id)

    def check(self, client_id: str, subdomain: str) -> tuple[bool, int]:
        """Return ``(limited, retry_after)`` from one locked read.

        ``retry_after`` is the whole seconds left in the key's window, 0 when
        the key is not limited.
        """
        key = (client_id, subdomain)
        with self._lock:
            now = self._clock()
            entry = self._prune_if_expired(key, now)
            if entry is None or entry.failures < self.limit_for(client_id):
                return False, 0
            return True, max(1, math.ceil(entry.reset_at - now))

    def register_failed_attempt(self, client_id: str, subdomain: str) -> int:
        """Record one failure and return the failure count for the window."""
        key = (client_id, subdomain)
        with self._lock:
            now = self._clock()
            entry = self._prune_if_expired(key, now)
            if entry is None:
                self._evict_if_needed()
                entry = RateLimitEntry(failures=0, reset_at=now + self.window_seconds)
                self._entries[key] = entry
            entry.failures += 1
            return entry.failures

    def clear_failures(self, client_id: str, subdomain: str) -> None:
        with self._lock:
            self._entries.pop((client_id, subdomain), None)

    def retry_after_seconds(self, client_id: str, subdomain: str) -> int:
        """Whole seconds until the key's window expires, 0 if no entry."""
        key = (client_id, subdomain)
        with self._lock:
            now = self._clock()
            entry = self._prune_if_expired(key, now)
            if entry is None:
                return 0
            return math.ceil(max(0.0, entry.reset_at - now))

    def reset(self) -> None:
        """Drop all tracked entries."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: tuple[str, str]) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def entry_count(self) -> int:
        """Number of tracked entries."""
        with self._lock:
            return len(self._entries)
