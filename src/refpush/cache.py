"""Bounded, recency-ordered caches.

``LRUCache`` is a generic thread-safe LRU map with an atomic ``alter``.
``PushCache`` specializes it to map a referring page path to the push
promises learned for that page.

A single ``PushCache`` is meant to be created once at startup and shared
by every request: one explicit handle instead of module-level state.
"""

import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

from refpush.errors import ConfigurationError
from refpush.policy import PushPromise

DEFAULT_CAPACITY = 100

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time counters for an ``LRUCache``."""

    capacity: int
    size: int
    hits: int
    misses: int
    evictions: int


class LRUCache(Generic[K, V]):
    """Thread-safe LRU cache with a fixed capacity.

    Both ``lookup`` and ``alter`` move the touched key to the
    most-recently-used end. Once an ``alter`` pushes the size past
    ``capacity``, the least-recently-used entry is evicted.

    Usage::

        cache: LRUCache[str, int] = LRUCache(2)
        cache.alter("a", lambda old: (old or 0) + 1)
        cache.lookup("a")  # -> 1
    """

    __slots__ = ("_capacity", "_data", "_evictions", "_hits", "_lock", "_misses")

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            msg = f"capacity must be at least 1, got {capacity}"
            raise ConfigurationError(msg)
        self._capacity = capacity
        self._lock = threading.Lock()
        # LRU at the front, MRU at the back
        self._data: OrderedDict[K, V] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def lookup(self, key: K) -> V | None:
        """Return the value for *key* and mark it most recently used.

        The entry stays in the cache.
        """
        with self._lock:
            try:
                value = self._data[key]
            except KeyError:
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def alter(self, key: K, func: Callable[[V | None], V | None]) -> V | None:
        """Atomically replace the value for *key* with ``func(old)``.

        *func* receives the current value (``None`` when absent) and
        returns the new one. Returning ``None`` removes the entry. The
        whole read-modify-write runs under the cache lock, so concurrent
        alters of the same key never lose an update. *func* must not
        call back into this cache.
        """
        with self._lock:
            new = func(self._data.get(key))
            if new is None:
                self._data.pop(key, None)
                return None
            self._data[key] = new
            self._data.move_to_end(key)
            while len(self._data) > self._capacity:
                self._data.popitem(last=False)
                self._evictions += 1
            return new

    def keys(self) -> list[K]:
        """Snapshot of keys, least recently used first."""
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                capacity=self._capacity,
                size=len(self._data),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __contains__(self, key: object) -> bool:
        # Membership does not touch recency
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(capacity={self._capacity}, size={len(self)})"


class PushCache:
    """Referring page path -> push promises learned for that page.

    Promises for one page are keyed by their own path, so learning the
    same resource twice keeps a single promise (the latest one).
    """

    __slots__ = ("_lru",)

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._lru: LRUCache[bytes, dict[bytes, PushPromise]] = LRUCache(capacity)

    @property
    def capacity(self) -> int:
        return self._lru.capacity

    def lookup(self, path: bytes) -> tuple[PushPromise, ...] | None:
        """Return the promises learned for *path*, ordered by promise path.

        Lookups never consume the entry: every later request for the
        same page gets the same promises until the page is evicted.
        """
        promises = self._lru.lookup(bytes(path))
        if promises is None:
            return None
        return tuple(promises[p] for p in sorted(promises))

    def upsert(self, referrer: bytes, promise: PushPromise) -> None:
        """Record that *promise* should be offered with *referrer*."""
        # Copy views into owned bytes: the cache outlives the request buffer
        key = bytes(referrer)

        def merge(existing: dict[bytes, PushPromise] | None) -> dict[bytes, PushPromise]:
            if existing is None:
                return {promise.path: promise}
            # Copy-on-write: snapshots returned by lookup stay stable
            return {**existing, promise.path: promise}

        self._lru.alter(key, merge)

    def referrers(self) -> list[bytes]:
        """Tracked referring paths, least recently used first."""
        return self._lru.keys()

    def clear(self) -> None:
        self._lru.clear()

    def stats(self) -> CacheStats:
        return self._lru.stats()

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (bytes, bytearray, memoryview)) and bytes(path) in self._lru

    def __len__(self) -> int:
        return len(self._lru)
