"""
Event bus for lead domain events.

Synchronous in-process pub/sub. Handlers execute immediately in the same
thread as the publisher, after the store write has committed. Handler
errors are logged but never propagate to the caller of the lead operation.
"""

import logging
from typing import Callable, Dict, List

from core.events import LeadEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for lead domain events.

    Subscribe by event class name (string), publish by event instance.
    Subscribing to "LeadEvent" receives every event. Handlers for the
    concrete class run before handlers for its base classes, each group in
    subscription order.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable):
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Name of event class to subscribe to (e.g. 'LeadAssigned')
            callback: Function to call when event is published
        """
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> bool:
        """Remove a subscription. False if it wasn't registered."""
        callbacks = self._subscribers.get(event_type, [])
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def _callbacks_for(self, event: LeadEvent) -> List[Callable]:
        callbacks = []
        for cls in type(event).__mro__:
            callbacks.extend(self._subscribers.get(cls.__name__, []))
            if cls is LeadEvent:
                break
        return callbacks

    def publish(self, event: LeadEvent):
        """
        Publish an event to all subscribers of its type and base types.

        Args:
            event: LeadEvent instance to publish
        """
        event_type = event.__class__.__name__

        for callback in self._callbacks_for(event):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
