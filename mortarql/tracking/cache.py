"""A synchronized in-memory cache with sliding and absolute expiry.

Every entry has two deadlines: a sliding one, pushed forward on each read,
and an absolute one fixed at insertion.  An entry is gone once either
passes.  Expired entries are dropped lazily on access and by a periodic scan
piggy-backed on writes, so no background thread is needed.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SLIDING_EXPIRATION = 300.0
DEFAULT_ABSOLUTE_EXPIRATION = 600.0
DEFAULT_SCAN_INTERVAL = 30.0

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float
    deadline: float


class TTLCache:
    """Thread-safe key/value store with sliding and absolute expiry.

    Args:
        sliding_expiration: Seconds an entry lives after its last access.
        absolute_expiration: Seconds an entry lives after insertion, at most.
        scan_interval: Minimum seconds between full expiry scans.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        sliding_expiration: float = DEFAULT_SLIDING_EXPIRATION,
        absolute_expiration: float = DEFAULT_ABSOLUTE_EXPIRATION,
        scan_interval: float = DEFAULT_SCAN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if sliding_expiration <= 0 or absolute_expiration <= 0:
            raise ValueError("Expiration windows must be positive.")
        self.sliding_expiration = sliding_expiration
        self.absolute_expiration = absolute_expiration
        self.scan_interval = scan_interval
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()
        self._last_scan = clock()

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        deadline = now + self.absolute_expiration
        entry = _Entry(
            value=value,
            expires_at=min(now + self.sliding_expiration, deadline),
            deadline=deadline,
        )
        with self._lock:
            self._entries[key] = entry
            if now - self._last_scan >= self.scan_interval:
                self._purge(now)

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for ``key`` and extend its sliding window."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._expired(entry, now):
                del self._entries[key]
                return default
            entry.expires_at = min(now + self.sliding_expiration, entry.deadline)
            return entry.value

    def pop(self, key: Hashable, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None or self._expired(entry, now):
            return default
        return entry.value

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry now; returns how many were dropped."""
        with self._lock:
            return self._purge(self._clock())

    @staticmethod
    def _expired(entry: _Entry, now: float) -> bool:
        return now >= entry.expires_at or now >= entry.deadline

    def _purge(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        self._last_scan = now
        if expired:
            logger.debug("Dropped %d expired cache entries", len(expired))
        return len(expired)
