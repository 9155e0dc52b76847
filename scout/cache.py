"""In-memory key/value store with per-entry time-to-live.

Entries expire lazily (checked on every read) and eagerly via a background
sweep thread started with :meth:`TTLCache.start`.  The store knows nothing
about what it holds; callers build the keys.

Usage::

    cache = TTLCache(default_ttl=3600, sweep_interval=60)
    cache.start()
    cache.set("page:https://example.com/", page)
    cache.get("page:https://example.com/")
    cache.close()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Thread-safe TTL cache.  Every public method takes the lock once."""

    def __init__(
        self,
        default_ttl: float = 3600.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Key/value API
    # ------------------------------------------------------------------
    def get(self, key: str) -> Any:
        """Return the live value for *key*, or ``None`` when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("[cache] cleared")

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("[cache] swept %d expired entr(y/ies)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Background sweep lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the periodic sweep thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="scout-cache-sweep", daemon=True
        )
        self._sweeper.start()

    def close(self) -> None:
        """Stop the sweep thread and drop every entry."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self._sweep_interval + 1)
            self._sweeper = None
        with self._lock:
            self._entries.clear()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self._sweep_interval):
            self.sweep()
