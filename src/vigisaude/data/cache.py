"""
Request-coalescing cache.

Maps a request key to either a resolved value or a pending future. Concurrent
identical requests attach to the same pending future, so one upstream call is
issued per key. Failures are not cached: the entry is dropped and the error is
delivered to every waiter.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class _Pending:
    __slots__ = ("future",)

    def __init__(self, future: asyncio.Future):
        self.future = future


class RequestCache:
    """In-memory memoization keyed by request parameters (process lifetime)."""

    def __init__(self) -> None:
        self._entries: Dict[Hashable, Any] = {}

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return key in self._entries and not isinstance(entry, _Pending)

    def __len__(self) -> int:
        return sum(1 for e in self._entries.values() if not isinstance(e, _Pending))

    def is_pending(self, key: Hashable) -> bool:
        return isinstance(self._entries.get(key), _Pending)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(self, key: Hashable, fetcher: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for ``key``, awaiting an in-flight fetch or starting one."""
        entry = self._entries.get(key)
        if isinstance(entry, _Pending):
            if entry.future.get_loop() is asyncio.get_running_loop():
                return await asyncio.shield(entry.future)
            # left over from an event loop that is gone
            log.debug("dropping orphaned pending entry key=%s", key)
            del self._entries[key]
        elif key in self._entries:
            return entry

        pending = _Pending(asyncio.get_running_loop().create_future())
        self._entries[key] = pending
        try:
            value = await fetcher()
        except asyncio.CancelledError:
            self._drop(key, pending)
            pending.future.cancel()
            raise
        except Exception as exc:
            self._drop(key, pending)
            pending.future.set_exception(exc)
            pending.future.exception()  # mark retrieved when nobody else is waiting
            raise

        if self._entries.get(key) is pending:
            self._entries[key] = value
        pending.future.set_result(value)
        return value

    def _drop(self, key: Hashable, pending: _Pending) -> None:
        if self._entries.get(key) is pending:
            del self._entries[key]


__all__ = ["RequestCache"]
