"""
prio-router: Observable values.

A small thread-safe holder for state that other components react to:
provider availability, the routing mode and router statistics. Readers get
the latest value without locking, subscribers are called on every change,
and coroutines can wait for a condition with a timeout instead of polling.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _resolve(future: asyncio.Future, value: object) -> None:
    if not future.done():
        future.set_result(value)


class Observable(Generic[T]):
    """Holds a value and notifies subscribers when it changes.

    Example::

        ready = Observable(False)
        unsubscribe = ready.subscribe(lambda v: print("ready:", v))
        ready.set(True)
        await ready.wait_for(lambda v: v, timeout=2.0)
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        # Held while subscribers run; reentrant so callbacks may call set().
        self._notify_lock = threading.RLock()
        self._version = 0
        self._subscribers: list[Callable[[T], None]] = []
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future, Callable[[T], bool]]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Store a new value. Subscribers only hear about actual changes.

        Changes are delivered one at a time in the order they were made, so
        the last value a subscriber saw is always the current one. A
        subscriber that sets a newer value stops delivery of the older one.
        """
        with self._notify_lock:
            with self._lock:
                if value == self._value:
                    return
                self._value = value
                self._version += 1
                version = self._version
                subscribers = list(self._subscribers)
                ready = [w for w in self._waiters if w[2](value)]
                for waiter in ready:
                    self._waiters.remove(waiter)

            for callback in subscribers:
                if self._version != version:
                    break
                self._notify(callback, value)

        for loop, future, _ in ready:
            loop.call_soon_threadsafe(_resolve, future, value)

    def subscribe(
        self, callback: Callable[[T], None], emit_current: bool = True
    ) -> Callable[[], None]:
        """Register a callback for value changes.

        Args:
            callback: Called with each new value.
            emit_current: Also call it once with the current value.

        Returns:
            A function that removes the subscription.
        """
        with self._notify_lock:
            with self._lock:
                self._subscribers.append(callback)
                current = self._value
            if emit_current:
                self._notify(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    async def wait_for(
        self, predicate: Callable[[T], bool], timeout: float | None = None
    ) -> T:
        """Wait until the value satisfies ``predicate``.

        Raises:
            asyncio.TimeoutError: If the condition is not met in time.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if predicate(self._value):
                return self._value
            future: asyncio.Future = loop.create_future()
            waiter = (loop, future, predicate)
            self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            with self._lock:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)

    @staticmethod
    def _notify(callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as e:
            logger.warning(f"Observable subscriber {callback!r} failed: {e}")

    def __repr__(self) -> str:
        return f"Observable({self._value!r})"
