"""
Bounded in-memory cache with LRU ordering, optional TTL and size budget.

Used for compiled template renderers and for per-input pipeline results.
The optional background sweeper is owned by the caller: it only runs between
``start_cleanup()`` and ``stop_cleanup()``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, Iterator, Literal, TypeVar

logger = logging.getLogger("slidesmith.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

EvictionReason = Literal["lru", "size", "ttl", "manual"]


@dataclass
class CacheEntry(Generic[V]):
    value: V
    size: int = 1
    expires_at: float | None = None
    created_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    entries: int = 0
    evictions_by_reason: dict[str, int] = field(default_factory=dict)


class BoundedCache(Generic[K, V]):
    def __init__(
        self,
        *,
        max_entries: int | None = None,
        max_size: int | None = None,
        default_ttl: float | None = None,
        size_of: Callable[[K, V], int] | None = None,
        on_evict: Callable[[K, V, EvictionReason], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_entries = max_entries
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._size_of = size_of or (lambda _key, _value: 1)
        self._on_evict = on_evict
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()
        self._total_size = 0
        self._sweeper: threading.Thread | None = None
        self._sweeper_stop = threading.Event()

    def get(self, key: K, default: V | None = None) -> V | None:
        """Return the cached value and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return default
            if entry.is_expired(self._clock()):
                self._evict(key, "ttl")
                self._stats.misses += 1
                return default
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return entry.value

    def set(self, key: K, value: V, *, ttl: float | None = None, size: int | None = None) -> None:
        with self._lock:
            now = self._clock()
            effective_ttl = ttl if ttl is not None else self.default_ttl
            entry = CacheEntry(
                value=value,
                size=int(size if size is not None else self._size_of(key, value)),
                expires_at=(now + effective_ttl) if effective_ttl is not None else None,
                created_at=now,
            )
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_size -= previous.size
            self._entries[key] = entry
            self._total_size += entry.size
            self._enforce_budgets()

    def delete(self, key: K) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            self._evict(key, "manual")
            return True

    def clear(self) -> None:
        with self._lock:
            for key in list(self._entries.keys()):
                self._evict(key, "manual")
            self._entries.clear()
            self._total_size = 0
            self._stats = CacheStats()

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._evict(key, "ttl")
            return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                size=self._total_size,
                entries=len(self._entries),
                evictions_by_reason=dict(self._stats.evictions_by_reason),
            )

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                self._evict(key, "ttl")  # type: ignore[arg-type]
                return False
            return True

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())

    # Background sweeper

    @property
    def cleanup_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start_cleanup(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("cleanup interval must be positive")
        if self.cleanup_running:
            return
        self._sweeper_stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval,),
            name="slidesmith-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_cleanup(self, timeout: float | None = 5.0) -> None:
        sweeper = self._sweeper
        if sweeper is None:
            return
        self._sweeper_stop.set()
        sweeper.join(timeout)
        self._sweeper = None

    def _sweep_loop(self, interval: float) -> None:
        while not self._sweeper_stop.wait(interval):
            removed = self.cleanup_expired()
            if removed:
                logger.debug("cache_sweep removed=%s", removed)

    # Internals

    def _enforce_budgets(self) -> None:
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._evict(next(iter(self._entries)), "lru")
        if self.max_size is not None:
            while self._total_size > self.max_size and self._entries:
                self._evict(next(iter(self._entries)), "size")

    def _evict(self, key: K, reason: EvictionReason) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        self._total_size -= entry.size
        self._stats.evictions += 1
        self._stats.evictions_by_reason[reason] = self._stats.evictions_by_reason.get(reason, 0) + 1
        if self._on_evict is not None:
            try:
                self._on_evict(key, entry.value, reason)
            except Exception:
                logger.exception("cache_evict_callback_failed key=%s reason=%s", key, reason)
