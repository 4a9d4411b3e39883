"""Single-flight call sharing and a single-entry value cache."""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from tunelight.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class SingleFlight(Generic[K, T]):
    """Share one in-progress call per key between concurrent callers.

    The first caller for a key starts the work; every caller arriving while it
    is still running awaits the same task and gets the same result (or
    exception). Once the task finishes the key is forgotten.
    """

    def __init__(self) -> None:
        self._inflight: dict[K, asyncio.Task[T]] = {}

    def in_flight(self, key: K) -> bool:
        return key in self._inflight

    async def do(self, key: K, fetch_func: Callable[[], Awaitable[T]]) -> T:
        """Run ``fetch_func`` for ``key`` unless a call for it is already running.

        Args:
            key: Deduplication key
            fetch_func: Zero argument coroutine function doing the work

        Returns:
            Result of the shared call
        """
        task = self._inflight.get(key)
        if task is not None:
            log_with_context(
                logger,
                "debug",
                "Joining in-flight call",
                key=str(key),
                event_type="single_flight_join",
            )
        else:
            task = asyncio.ensure_future(fetch_func())
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._forget(k, _t))

        # shield: one cancelled waiter must not cancel the shared work
        return await asyncio.shield(task)

    def _forget(self, key: K, task: asyncio.Task[T]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters already re-raised it.
            task.exception()


class LatestValueCache(Generic[K, T]):
    """Holds exactly one key/value pair. Setting a new key supersedes the old."""

    def __init__(self) -> None:
        self._key: K | None = None
        self._value: T | None = None

    def get(self, key: K) -> T | None:
        """Value for ``key`` if it is the cached key, else None."""
        if self._key is not None and self._key == key:
            log_with_context(logger, "debug", "Cache hit", cache_key=str(key), event_type="cache_hit")
            return self._value
        return None

    def set(self, key: K, value: T) -> None:
        if self._key is not None and self._key != key:
            log_with_context(
                logger,
                "debug",
                "Cache entry superseded",
                previous_key=str(self._key),
                cache_key=str(key),
                event_type="cache_superseded",
            )
        self._key = key
        self._value = value

    def current(self) -> T | None:
        """Whatever is cached, regardless of key."""
        return self._value

    def clear(self) -> None:
        if self._key is not None:
            log_with_context(logger, "debug", "Cache cleared", cache_key=str(self._key), event_type="cache_clear")
        self._key = None
        self._value = None
