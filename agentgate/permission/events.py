"""
EventBus - in-process pub/sub for permission events.

Handlers are plain callables invoked synchronously in publish order. A handler
that raises is unsubscribed; the remaining handlers still receive the event.
"""

import threading
from typing import Callable

from agentgate.permission.schema import PermissionEvent
from agentgate.utils.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[PermissionEvent], None]


class Subscription:
    """Handle returned by ``EventBus.subscribe``; unsubscribe is idempotent."""

    def __init__(self, bus: "EventBus", subscription_id: int) -> None:
        self._bus = bus
        self.id = subscription_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self.id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[int, EventHandler] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> Subscription:
        with self._lock:
            self._next_id += 1
            subscription_id = self._next_id
            self._handlers[subscription_id] = handler
        return Subscription(self, subscription_id)

    def _remove(self, subscription_id: int) -> None:
        with self._lock:
            self._handlers.pop(subscription_id, None)

    def publish(self, event: PermissionEvent) -> None:
        with self._lock:
            handlers = list(self._handlers.items())
        for subscription_id, handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.warning(
                    "event_handler_failed",
                    subscription_id=subscription_id,
                    event_type=event.type.value,
                    error=str(e),
                )
                self._remove(subscription_id)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._handlers)


__all__ = ["EventBus", "EventHandler", "Subscription"]
