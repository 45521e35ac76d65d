"""In-process broadcast bus shared by the DKG participants of one session."""

import asyncio
import logging
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from common.errors import SessionAborted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """
    One receiver's cursor on a BroadcastChannel. Messages arrive in publish
    order; when more than `capacity` are waiting the oldest is dropped.
    """

    def __init__(self, channel: "BroadcastChannel[T]", capacity: int) -> None:
        self._channel = channel
        self._capacity = capacity
        self._backlog: Deque[T] = deque()
        self._ready = asyncio.Event()
        self.lagged = 0
        self.closed = False

    def __len__(self) -> int:
        return len(self._backlog)

    def _deliver(self, message: T) -> None:
        if len(self._backlog) >= self._capacity:
            self._backlog.popleft()
            self.lagged += 1
            logger.warning("Subscriber backlog full (%d), dropped oldest message; %d dropped so far",
                           self._capacity, self.lagged)
        self._backlog.append(message)
        self._ready.set()

    def _wake(self) -> None:
        self._ready.set()

    def try_recv(self) -> Optional[T]:
        """Return the next buffered message, or None if nothing is waiting."""
        if self._backlog:
            return self._backlog.popleft()
        if self.closed or self._channel.closed:
            raise SessionAborted("Broadcast channel closed")
        return None

    async def recv(self) -> T:
        """
        Wait for the next message. Buffered messages are still delivered after
        the channel closes; once they are drained SessionAborted is raised.
        """
        while not self._backlog:
            if self.closed or self._channel.closed:
                raise SessionAborted("Broadcast channel closed")
            self._ready.clear()
            await self._ready.wait()
        return self._backlog.popleft()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._channel._unsubscribe(self)
            self._wake()


class BroadcastChannel(Generic[T]):
    """
    Multi-producer, multi-consumer bus. Every published message is delivered
    to every subscription open at publish time. Meant to be used from tasks
    of a single event loop, so no locking is needed.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("Broadcast capacity must be positive")
        self.capacity = capacity
        self.closed = False
        self._subscribers: List[Subscription[T]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription[T]:
        """A new cursor that only sees messages published from now on."""
        if self.closed:
            raise SessionAborted("Cannot subscribe to a closed broadcast channel")
        subscription = Subscription(self, self.capacity)
        self._subscribers.append(subscription)
        return subscription

    def publish(self, message: T) -> int:
        """
        Deliver message to every current subscription without waiting for any
        of them. Returns the number of subscriptions reached.
        """
        if self.closed:
            raise SessionAborted("Cannot publish on a closed broadcast channel")
        for subscription in self._subscribers:
            subscription._deliver(message)
        return len(self._subscribers)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for subscription in self._subscribers:
            subscription._wake()
        logger.debug("Broadcast channel closed with %d subscribers", len(self._subscribers))

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
