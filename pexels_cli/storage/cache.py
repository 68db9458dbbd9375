"""
An in-memory key/value cache with a per-entry time-to-live (TTL) for storing API
responses. Expired entries are dropped lazily on lookup and proactively by a
periodic background sweep.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float


class TTLCache:
    """
    Manages an in-memory cache with TTL, periodic cleanup, and statistics tracking.
    """

    def __init__(
        self,
        default_ttl: float = 3600,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initializes the cache.

        Args:
            default_ttl: Lifetime of an entry in seconds when `set` gets no override.
            sweep_interval: Seconds between background sweeps of expired entries.
            clock: Time source in seconds; injectable so tests can simulate time.
        """
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._cleanup_task: asyncio.Task | None = None

    async def start_background_cleanup(self):
        """Starts the periodic background cleanup task."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            log.debug("Started cache background cleanup task.")

    async def _cleanup_loop(self):
        """Runs the sweep periodically in the background."""
        while True:
            try:
                await asyncio.sleep(self.sweep_interval)
                await asyncio.to_thread(self.sweep)
            except asyncio.CancelledError:
                log.debug("Cache cleanup task cancelled.")
                break
            except Exception as e:
                log.warning(f"Error in cache cleanup loop: {e}")

    async def stop_background_cleanup(self):
        """Stops the background cleanup task gracefully."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._cleanup_task
            log.debug("Stopped cache background cleanup task.")
        self._cleanup_task = None

    def sweep(self) -> int:
        """Removes every expired entry and returns how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            log.debug(f"Cache cleanup: {len(expired)} expired entries removed.")
        return len(expired)

    def _live_entry(self, key: str) -> CacheEntry | None:
        """Returns the entry for `key`, evicting it if it has expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            log.debug(f"Cache expired: {key}")
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieves a value from the cache. Returns `default` if the key is not
        found or expired; pass a sentinel to tell a stored None from a miss.
        """
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._misses += 1
                log.debug(f"Cache miss: {key}")
                return default
            self._hits += 1
        log.debug(f"Cache hit: {key}")
        return entry.value

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Stores `value`, replacing any previous entry for `key`."""
        duration = ttl if ttl is not None else self.default_ttl
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value, created_at=now, expires_at=now + duration
            )
        log.debug(f"Cache set: {key} (expires in {duration}s)")

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            log.debug(f"Cache deleted: {key}")
        return removed

    def clear(self) -> int:
        """Removes all items from the cache and returns how many there were."""
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        log.info(f"Cache cleared: {size} entries removed")
        return size

    def __len__(self) -> int:
        """Number of physically stored entries, expired or not."""
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
            }

    def entry_info(self, key: str) -> dict[str, Any]:
        """Describes an entry without touching hit/miss counters or evicting it."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return {"exists": False}
        return {
            "exists": True,
            "created_at": entry.created_at,
            "expires_at": entry.expires_at,
            "ttl": max(0.0, entry.expires_at - self._clock()),
        }
