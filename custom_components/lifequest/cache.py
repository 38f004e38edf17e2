# File: cache.py
"""Per-user, time-boxed read cache in front of the LifeQuest store.

The cache is never the source of truth: entries expire after a fixed TTL,
raw fetches are throttled per entity, and every mutation either projects its
result into the cache around the store write (PendingUpdate) or invalidates
the entry.

One instance is created per config entry by the coordinator. The clock is
injected so tests control time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
import copy
from dataclasses import dataclass
import time
from typing import Any

from . import const

CacheKey = tuple[str, str]  # (user_id, entity)


@dataclass
class CacheEntry:
    """A cached value and the monotonic time it was stored."""

    value: Any
    stored_at: float


class PendingUpdate:
    """Two-phase optimistic update of one cache entry.

    Created by ConsistencyCache.begin_update(). The projection is installed
    immediately; the caller then either commits (optionally with the
    authoritative value read back from the store) or rolls back, which
    restores the entry that was there before.
    """

    def __init__(
        self,
        cache: ConsistencyCache,
        key: CacheKey,
        previous: CacheEntry | None,
        projected: CacheEntry | None,
    ) -> None:
        self._cache = cache
        self._key = key
        self._previous = previous
        self._projected = projected
        self._done = False

    @property
    def is_pending(self) -> bool:
        return not self._done

    @property
    def projected_value(self) -> Any:
        return copy.deepcopy(self._projected.value) if self._projected else None

    def commit(self, value: Any = None) -> None:
        """Confirm the update.

        Args:
            value: Authoritative value from the store. When given it replaces
                   the projection with a fresh timestamp; otherwise the
                   projection stays as-is.
        """
        if self._done:
            return
        self._done = True
        if value is not None:
            self._cache.set(*self._key, value)

    def rollback(self) -> None:
        """Undo the projection unless something newer replaced it meanwhile."""
        if self._done:
            return
        self._done = True
        if self._cache.entry(*self._key) is not self._projected:
            return
        if self._previous is None:
            self._cache.invalidate(*self._key)
        else:
            self._cache.restore(self._key, self._previous)
        const.LOGGER.debug("DEBUG: Rolled back cache projection for %s", self._key)


class ConsistencyCache:
    """Time-boxed cache of character and quest collections per user.

    Read path (async_get):
    - A non-expired entry is served unless force_refresh is set
    - A fetch already in flight for the same entity is shared
    - Within the throttle window an expired entry is served stale
    - Otherwise the store is fetched and the entry replaced

    A failed fetch leaves the previous entry untouched and re-raises.
    """

    def __init__(
        self,
        ttl: float = const.DEFAULT_CACHE_TTL,
        throttle: float = const.DEFAULT_FETCH_THROTTLE,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.throttle = throttle
        self._monotonic = monotonic
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._last_fetch: dict[CacheKey, float] = {}
        self._inflight: dict[CacheKey, asyncio.Future[Any]] = {}

    # -------------------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------------------

    async def async_get(
        self,
        user_id: str,
        entity: str,
        fetch: Callable[[], Awaitable[Any]],
        force_refresh: bool = False,
    ) -> Any:
        """Return the cached value for (user_id, entity), fetching when needed."""
        key = (user_id, entity)
        now = self._monotonic()
        entry = self._entries.get(key)

        if not force_refresh and entry is not None and now - entry.stored_at < self.ttl:
            const.LOGGER.debug("DEBUG: Cache hit for %s", key)
            return copy.deepcopy(entry.value)

        inflight = self._inflight.get(key)
        if inflight is not None:
            const.LOGGER.debug("DEBUG: Joining in-flight fetch for %s", key)
            return copy.deepcopy(await asyncio.shield(inflight))

        last_fetch = self._last_fetch.get(key)
        if (
            not force_refresh
            and entry is not None
            and last_fetch is not None
            and now - last_fetch < self.throttle
        ):
            const.LOGGER.debug("DEBUG: Fetch throttled for %s, serving stale entry", key)
            return copy.deepcopy(entry.value)

        const.LOGGER.debug("DEBUG: Cache miss for %s, fetching", key)
        self._last_fetch[key] = now
        task = asyncio.ensure_future(self._async_fetch(key, fetch))
        self._inflight[key] = task
        return copy.deepcopy(await asyncio.shield(task))

    async def _async_fetch(
        self, key: CacheKey, fetch: Callable[[], Awaitable[Any]]
    ) -> Any:
        try:
            value = await fetch()
        except Exception as err:
            const.LOGGER.warning("WARNING: Fetch for %s failed: %s", key, err)
            raise
        finally:
            self._inflight.pop(key, None)
        self._entries[key] = CacheEntry(copy.deepcopy(value), self._monotonic())
        return value

    # -------------------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------------------

    def entry(self, user_id: str, entity: str) -> CacheEntry | None:
        """Return the raw entry (not a copy) for identity checks."""
        return self._entries.get((user_id, entity))

    def peek(self, user_id: str, entity: str) -> Any:
        """Return a copy of the cached value regardless of age, or None."""
        entry = self._entries.get((user_id, entity))
        return copy.deepcopy(entry.value) if entry is not None else None

    def set(self, user_id: str, entity: str, value: Any) -> None:
        """Store an authoritative value with a fresh timestamp."""
        self._entries[(user_id, entity)] = CacheEntry(
            copy.deepcopy(value), self._monotonic()
        )

    def restore(self, key: CacheKey, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def invalidate(self, user_id: str, entity: str | None = None) -> None:
        """Drop one entity, or every entity, cached for a user."""
        for key in list(self._entries):
            if key[0] == user_id and (entity is None or key[1] == entity):
                del self._entries[key]
                self._last_fetch.pop(key, None)

    def begin_update(
        self, user_id: str, entity: str, project: Callable[[Any], Any]
    ) -> PendingUpdate:
        """Install a projected value derived from the current entry.

        If nothing is cached there is nothing to project; the returned
        PendingUpdate still accepts an authoritative value on commit.
        """
        key = (user_id, entity)
        previous = self._entries.get(key)
        projected: CacheEntry | None = None
        if previous is not None:
            projected = CacheEntry(
                project(copy.deepcopy(previous.value)), previous.stored_at
            )
            self._entries[key] = projected
        return PendingUpdate(self, key, previous, projected)

    @contextmanager
    def optimistic_update(
        self, user_id: str, entity: str, project: Callable[[Any], Any]
    ) -> Iterator[PendingUpdate]:
        """Context manager around begin_update: rolls back on any exception.

        Example:
            with cache.optimistic_update(uid, "quests", add_quest) as pending:
                await store.async_set_document(path, quest)
                pending.commit(await store.async_list_documents(prefix))
        """
        pending = self.begin_update(user_id, entity, project)
        try:
            yield pending
        except BaseException:
            pending.rollback()
            raise
        pending.commit()
