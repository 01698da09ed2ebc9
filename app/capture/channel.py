"""
In-process broadcast channel.

Stands in for the live transport in local runs and tests. Every subscriber
gets its own copy of each published message and can be given a ``drop``
predicate to simulate messages lost on the way to that side only.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.capture.events import TRANSCRIPT_TOPIC, TurnEvent, encode_turn_event

# Set up logging
logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class ChannelMessage:
    topic: str
    data: bytes


class Subscription:
    """One subscriber's queue. Iterate it until the channel or the subscriber closes."""

    def __init__(self, channel: "InMemoryChannel", drop: Optional[Callable[[ChannelMessage], bool]] = None):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._drop = drop
        self.closed = False

    def deliver(self, message: ChannelMessage) -> None:
        if self.closed:
            return
        if self._drop is not None and self._drop(message):
            logger.debug(f"Dropped {message.topic} message for one subscriber")
            return
        self._queue.put_nowait(message)

    def close(self) -> None:
        """Stop receiving. Messages already queued are still yielded."""
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)
        self._channel.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChannelMessage:
        message = await self._queue.get()
        if message is _CLOSED:
            # Leave the marker for any later reader
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return message


class InMemoryChannel:
    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(self, drop: Optional[Callable[[ChannelMessage], bool]] = None) -> Subscription:
        subscription = Subscription(self, drop=drop)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, topic: str, data: bytes) -> None:
        message = ChannelMessage(topic=topic, data=data)
        for subscription in list(self._subscriptions):
            subscription.deliver(message)
        # Let subscribers run
        await asyncio.sleep(0)

    async def publish_turn(self, event: TurnEvent) -> None:
        await self.publish(TRANSCRIPT_TOPIC, encode_turn_event(event))

    def close(self) -> None:
        """End the session for every subscriber."""
        for subscription in list(self._subscriptions):
            subscription.close()
