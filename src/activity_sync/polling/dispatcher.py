"""
Event dispatcher for the polling engine.

Delivers classified events to the single registered consumer, one at a time,
awaiting each delivery before the next.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from ..events import ClassifiedEvent

logger = structlog.get_logger(__name__)

EventConsumer = Callable[[ClassifiedEvent], Awaitable[Any] | Any]


class EventDispatcher:
    """Sequential delivery to one consumer callback."""

    def __init__(self, consumer: EventConsumer):
        self.consumer = consumer
        self.delivered = 0
        self.failed = 0

    async def dispatch(self, event: ClassifiedEvent) -> bool:
        """
        Deliver one event.

        Consumer failures are logged and counted, never raised.

        Returns:
            True if the consumer completed without raising
        """
        try:
            outcome = self.consumer(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.failed += 1
            logger.error(
                "Consumer failed to handle event",
                repository=event.repository.full_name,
                kind=event.kind,
                action=event.action,
                error=str(e),
            )
            return False

        self.delivered += 1
        return True

    async def dispatch_all(self, events: list[ClassifiedEvent]) -> int:
        """
        Deliver events in order.

        Returns:
            Number of events the consumer handled successfully
        """
        handled = 0
        for event in events:
            if await self.dispatch(event):
                handled += 1
        return handled
