"""Observable values with explicit subscribe/unsubscribe semantics.

A ``LiveData`` pushes its full current value to an observer as soon as the
observer subscribes, and again every time the value changes. Observers are
plain callables invoked synchronously by the producer.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Observer = Callable[[T], None]


class Subscription:
    """Handle returned by ``LiveData.subscribe``."""

    _ids = itertools.count(1)

    def __init__(self, source: "LiveData", observer: Observer):
        self.id = next(self._ids)
        self.observer = observer
        self._source = source

    def close(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        self._source.unsubscribe(self)


class LiveData(ABC, Generic[T]):
    """A subscribable value that never completes on its own."""

    @abstractmethod
    async def subscribe(self, observer: Observer[T]) -> Subscription:
        """Register ``observer`` and emit the current value to it immediately."""

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription previously returned by ``subscribe``."""

    def map(self, fn: Callable[[T], R]) -> "LiveData[R]":
        """Derive a new LiveData by applying ``fn`` to every emitted value."""
        return MappedLiveData(self, fn)

    async def stream(self) -> AsyncIterator[T]:
        """Iterate over emitted values; unsubscribes when the iterator closes."""
        queue: asyncio.Queue[T] = asyncio.Queue()
        subscription = await self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(subscription)


class MappedLiveData(LiveData[R]):
    """LiveData whose values are ``fn(value)`` for each upstream value.

    Nothing is cached here: ``fn`` runs once per upstream emission, per
    observer.
    """

    def __init__(self, source: LiveData[T], fn: Callable[[T], R]):
        self._source = source
        self._fn = fn

    async def subscribe(self, observer: Observer[R]) -> Subscription:
        fn = self._fn
        return await self._source.subscribe(lambda value: observer(fn(value)))

    def unsubscribe(self, subscription: Subscription) -> None:
        self._source.unsubscribe(subscription)


class ObserverRegistry(Generic[T]):
    """Bookkeeping for producers that fan a value out to many observers."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def add(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.id] = subscription

    def remove(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    def dispatch(self, value: T) -> None:
        """Deliver ``value`` to every active observer, in subscription order."""
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.observer(value)
            except Exception:
                # One broken observer must not starve the others
                logger.exception(f"Observer {subscription.id} raised while handling update")
