"""In-process publish/subscribe broker for domain events.

Each subscription owns a bounded queue that is registered before the caller
starts iterating, so events published while a consumer is busy are buffered
instead of lost. Delivery is per process; running several instances needs an
external broker.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    TASK_ADDED = "TASK_ADDED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_UNASSIGNED = "TASK_UNASSIGNED"


@dataclass(frozen=True)
class Event:
    """A published event. ``payload`` carries identities, never entities."""

    type: EventType
    payload: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Subscription:
    """Async iterator over the events of the requested types."""

    def __init__(self, event_types: frozenset[EventType], buffer_size: int):
        self.event_types = event_types
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=buffer_size)
        self.dropped = 0

    def accepts(self, event: Event) -> bool:
        return not self.event_types or event.type in self.event_types

    def deliver(self, event: Event) -> None:
        if self._queue.full():
            # Slow consumer: keep the newest events
            self._queue.get_nowait()
            self.dropped += 1
            logger.warning(f"Subscription buffer full, dropped oldest event ({self.dropped} dropped so far)")
        self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        return await self._queue.get()


class EventBroker:
    """Fan-out of published events to every live subscription."""

    def __init__(self, buffer_size: int = 100):
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.buffer_size = buffer_size
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: Event) -> int:
        """Deliver an event to every matching subscription without blocking.

        Returns the number of subscriptions that received it.
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.accepts(event):
                subscription.deliver(event)
                delivered += 1
        logger.debug(f"Published {event.type} to {delivered} subscriber(s)")
        return delivered

    @asynccontextmanager
    async def subscribe(self, *event_types: EventType) -> AsyncIterator[Subscription]:
        """Register a subscription for the duration of the block.

        With no event types the subscription receives every event.
        """
        subscription = Subscription(frozenset(event_types), self.buffer_size)
        self._subscriptions.add(subscription)
        logger.info(f"Subscriber registered for {sorted(event_types) or 'all events'}")
        try:
            yield subscription
        finally:
            self._subscriptions.discard(subscription)
            logger.info("Subscriber removed")


def get_event_broker(connection: HTTPConnection) -> EventBroker:
    """FastAPI dependency returning the application's broker."""
    return connection.app.state.event_broker
