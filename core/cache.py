# =============================================================================
# core/cache.py  —  TTL Cache with Single-Flight Fetches
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Keeps MoCo list responses (assigned projects, the user directory) in
#   memory so repeated tool calls don't hit the API every time, and makes
#   sure concurrent callers asking for the same key share ONE fetch.
#
# TWO LAYERS:
#   MemoryCacheStore  : dumb key/value storage with per-entry expiry.
#                       Anything matching the CacheStore protocol can replace
#                       it (e.g. a Redis-backed store) via Cache.set_store().
#   Cache             : the facade callers use.  Owns the pending-fetch table
#                       and implements get_or_set().
#
# EXPIRY IS PASSIVE:
#   There is no background sweeper.  An entry is checked when it is read,
#   and deleted then if it has expired.  Entries nobody reads again simply
#   stay in memory until clear() is called.
#
# SINGLE FLIGHT (get_or_set):
#   The whole "is it cached? is it already being fetched? start a fetch"
#   decision runs without an `await` in between, so within one event loop
#   two callers can never both start a fetch for the same key.  The fetch
#   itself runs as an asyncio.Task; every caller awaits that same task and
#   receives the same value (or the same exception).
#
# KNOWN QUIRK:
#   clear() forgets pending fetches but does not cancel them.  A fetch that
#   was in flight when clear() ran will still store its result when it
#   finishes.
# =============================================================================

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

T = TypeVar("T")

Fetcher = Callable[[], Union[Awaitable[T], T]]

_MISSING = object()


class CacheStore(Protocol):
    """Storage backend used by Cache."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


@dataclass
class CacheEntry:
    """A stored value and the clock reading at which it stops being visible."""

    value: Any
    expires_at: Optional[float] = None   # None = never expires


class MemoryCacheStore:
    """In-memory CacheStore with lazy TTL expiry.

    Args:
        clock: Returns the current time in seconds.  Tests pass a fake clock
            to move time forward without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default

        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return default

        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            # A non-positive TTL disables caching for this write.
            self._entries.pop(key, None)
            return

        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


async def _resolve(fetcher: Fetcher) -> Any:
    result = fetcher()
    if inspect.isawaitable(result):
        return await result
    return result


class Cache:
    """Cache facade coordinating TTL storage and fetch de-duplication."""

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store: CacheStore = store if store is not None else MemoryCacheStore(clock)
        self._pending: dict[str, asyncio.Task] = {}

    @property
    def pending_keys(self) -> list[str]:
        """Keys that currently have a fetch in flight."""
        return list(self._pending)

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        self._store.set(key, value, ttl_seconds)

    def delete(self, key: str) -> None:
        self._store.delete(key)

    def clear(self) -> None:
        """Drop every stored entry and forget all in-flight fetches."""
        self._store.clear()
        self._pending.clear()

    def set_store(self, store: CacheStore) -> None:
        """Swap the storage backend.  Existing state is cleared."""
        self._store = store
        self.clear()

    async def get_or_set(self, key: str, ttl_seconds: float, fetcher: Fetcher) -> Any:
        """Return the cached value for `key`, fetching it at most once at a time.

        Args:
            key: Cache key.
            ttl_seconds: Lifetime of the stored result.  Zero or less bypasses
                the cache and the de-duplication entirely.
            fetcher: Zero-argument callable producing the value; it may return
                a plain value or an awaitable.

        Returns:
            The cached or freshly fetched value.

        Raises:
            Whatever `fetcher` raises.  Failures are not cached.
        """
        if ttl_seconds <= 0:
            return await _resolve(fetcher)

        cached = self._store.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        pending = self._pending.get(key)
        if pending is None:
            # Registered before the first await so concurrent callers see it.
            pending = asyncio.ensure_future(self._fetch_and_store(key, ttl_seconds, fetcher))
            self._pending[key] = pending

        # shield(): a cancelled waiter must not cancel the fetch others share.
        return await asyncio.shield(pending)

    async def _fetch_and_store(self, key: str, ttl_seconds: float, fetcher: Fetcher) -> Any:
        task = asyncio.current_task()
        try:
            result = await _resolve(fetcher)
            self.set(key, result, ttl_seconds)
            return result
        finally:
            # Only remove our own record; after clear() a newer fetch may own the key.
            if self._pending.get(key) is task:
                del self._pending[key]


# Shared by every MocoApiService instance in the process.
cache = Cache()
