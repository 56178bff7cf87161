"""
Event Bus implementation for room-control device events.

The Event Bus is a simple, in-order dispatcher for device and domain events.
Handlers may be plain callables or coroutine functions.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional, Dict, Any, Callable, List, Awaitable, Union

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Get current UTC time (for default factory)."""
    return datetime.now(UTC)


@dataclass
class Event:
    """
    A domain event in the room-release system.

    Attributes:
        type: Event type (e.g., "sensor.state_changed", "booking.started")
        source: Event source (e.g., "device", "release", "test")
        entity_id: Optional device status path or UI element this event relates to
        payload: Event-specific data
        timestamp: When the event occurred
    """

    type: str
    source: str
    entity_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)


class EventFilter:
    """
    Filter for event subscriptions.

    Allows subscribers to filter events by type and entity.
    """

    def __init__(
        self,
        event_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        """
        Initialize an event filter.

        Args:
            event_type: Filter by event type (None = all types)
            entity_id: Filter by entity ID (None = all entities)
        """
        self.event_type = event_type
        self.entity_id = entity_id

    def matches(self, event: Event) -> bool:
        """
        Check if an event matches this filter.

        Args:
            event: The event to check

        Returns:
            True if the event matches the filter
        """
        if self.event_type and event.type != self.event_type:
            return False

        if self.entity_id and event.entity_id != self.entity_id:
            return False

        return True

    def __repr__(self) -> str:
        return f"EventFilter(event_type={self.event_type!r}, entity_id={self.entity_id!r})"


EventHandler = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """
    Simple, in-order event bus for room-release events.

    Handlers run one after another in subscription order. Coroutine handlers
    are awaited before the next handler runs. Handlers are wrapped in
    try/except so one failing handler cannot stop dispatch.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._handlers: List[tuple[EventFilter, EventHandler]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_filter: Optional[EventFilter] = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Callable (sync or async) that receives Event objects
            event_filter: Optional filter for events (None = receive all events)
        """
        if event_filter is None:
            event_filter = EventFilter()

        self._handlers.append((event_filter, handler))
        logger.debug(f"Subscribed handler {handler.__name__} with filter {event_filter}")

    async def publish(self, event: Event) -> None:
        """
        Publish an event to all matching subscribers.

        Args:
            event: The event to publish
        """
        logger.debug(f"Publishing event: {event.type} from {event.source}")

        for event_filter, handler in list(self._handlers):
            if event_filter.matches(event):
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        f"Error in event handler {handler.__name__} "
                        f"for event {event.type}: {e}",
                        exc_info=True,
                    )

    def unsubscribe(self, handler: EventHandler) -> None:
        """
        Unsubscribe a handler from all events.

        Args:
            handler: The handler to unsubscribe
        """
        self._handlers = [(f, h) for f, h in self._handlers if h != handler]
        logger.debug(f"Unsubscribed handler {handler.__name__}")
