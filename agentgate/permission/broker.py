"""
PermissionBroker - human-in-the-loop approval of agent actions.

A caller of ``submit`` is suspended until a human answers through ``resolve``
or the deadline fires, whichever comes first. Both paths go through
``CorrelationRegistry.pop``; only the caller that removes the entry publishes
the response and wakes the waiter, so every request ends exactly once.

Broker methods are meant to be called on the event loop that owns the
waiters. Registry and bus access is lock-guarded; a ``resolve`` issued from a
foreign thread hands the wake-up back to the owning loop.
"""

import asyncio
import threading
from typing import Any, Callable

from agentgate.config.settings import settings
from agentgate.exceptions import ValidationError
from agentgate.permission.events import EventBus, EventHandler, Subscription
from agentgate.permission.registry import CorrelationRegistry, PendingEntry
from agentgate.permission.schema import (
    PermissionEvent,
    PermissionOutcome,
    PermissionRequest,
    PermissionResponse,
    PermissionStatus,
    ResolveResult,
)
from agentgate.utils.ids import new_permission_id
from agentgate.utils.logging import get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Permission request not found or already processed"
CANCELLED_REASON = "Request cancelled"


def _default_reason(approved: bool) -> str:
    return "Approved by user" if approved else "Denied by user"


class PermissionBroker:
    """
    Create, resolve and list pending permission requests.

    Events:
        request-created: published once when a request is stored
        request-resolved: published once when it leaves the registry
            (human answer, timeout or caller cancellation)
    """

    def __init__(self, bus: EventBus | None = None, timeout: float | None = None) -> None:
        """
        Initialize permission broker.

        Args:
            bus: Event bus to publish on (a private one is created if omitted)
            timeout: Deadline in seconds (default: settings.permission_timeout)
        """
        self.bus = bus or EventBus()
        self._timeout = float(timeout if timeout is not None else settings.permission_timeout)
        self._registry: CorrelationRegistry[asyncio.Future] = CorrelationRegistry()
        # Serializes registry mutation with publishing so that snapshot+subscribe
        # in watch() never misses or duplicates an event.
        self._lock = threading.RLock()

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def timeout_reason(self) -> str:
        return f"Request timed out after {self._timeout:g} seconds"

    def _new_request(
        self,
        action: str | None,
        description: str | None,
        resource: str | None = None,
        details: Any | None = None,
    ) -> PermissionRequest:
        if not action or not description:
            raise ValidationError("Action and description are required")

        request_id = new_permission_id()
        while request_id in self._registry:
            request_id = new_permission_id()

        return PermissionRequest(
            id=request_id,
            action=action,
            description=description,
            resource=resource,
            details=details,
        )

    async def submit(
        self,
        action: str | None,
        description: str | None,
        resource: str | None = None,
        details: Any | None = None,
    ) -> PermissionOutcome:
        """
        Store a pending request and wait for its single outcome.

        Returns:
            PermissionOutcome: approved/denied by a human, or denied by timeout

        Raises:
            ValidationError: If action or description is missing (no side effect)
        """
        request = self._new_request(action, description, resource, details)
        loop = asyncio.get_running_loop()
        future: asyncio.Future[PermissionOutcome] = loop.create_future()
        entry = PendingEntry(request=request, waiter=future)

        with self._lock:
            self._registry.insert(entry)
            entry.timer = loop.call_later(self._timeout, self._expire, request.id)
            self.bus.publish(PermissionEvent.created(request))

        logger.info(
            "permission_requested",
            request_id=request.id,
            action=action,
            resource=resource,
            subscribers=self.bus.subscriber_count,
        )

        try:
            return await future
        except asyncio.CancelledError:
            if self._finish(request.id, False, CANCELLED_REASON, PermissionStatus.DENIED):
                logger.info("permission_cancelled", request_id=request.id)
            raise

    def resolve(self, request_id: str, approved: bool, reason: str | None = None) -> ResolveResult:
        """
        Accept a human answer for a pending request.

        An unknown or already-resolved id yields ``success=False`` and leaves
        all state untouched.
        """
        reason = reason or _default_reason(approved)
        status = PermissionStatus.APPROVED if approved else PermissionStatus.DENIED
        response = self._finish(request_id, approved, reason, status) if request_id else None

        if response is None:
            logger.warning("permission_not_found", request_id=request_id)
            return ResolveResult(success=False, error=NOT_FOUND_MESSAGE, request_id=request_id)

        logger.info(
            "permission_resolved",
            request_id=request_id,
            approved=approved,
            reason=reason,
        )
        return ResolveResult(
            success=True,
            request_id=request_id,
            approved=approved,
            message=f"Permission {'approved' if approved else 'denied'}",
        )

    def list_pending(self) -> list[PermissionRequest]:
        """Pending requests in insertion order."""
        return self._registry.requests()

    def watch(
        self,
        handler: EventHandler,
        on_snapshot: Callable[[list[PermissionRequest]], None] | None = None,
    ) -> tuple[list[PermissionRequest], Subscription]:
        """
        Snapshot pending requests and subscribe to live events atomically.

        Every event published after the snapshot reaches ``handler``; none
        published before it does. ``on_snapshot`` runs inside the same
        critical section, before any live event can be delivered.
        """
        with self._lock:
            snapshot = self._registry.requests()
            if on_snapshot is not None:
                on_snapshot(snapshot)
            subscription = self.bus.subscribe(handler)
        return snapshot, subscription

    def _expire(self, request_id: str) -> None:
        if self._finish(request_id, False, self.timeout_reason, PermissionStatus.TIMED_OUT):
            logger.info("permission_timed_out", request_id=request_id, timeout=self._timeout)

    def _finish(
        self,
        request_id: str,
        approved: bool,
        reason: str,
        status: PermissionStatus,
    ) -> PermissionResponse | None:
        """Remove, publish and wake; a no-op returning None if already finished."""
        with self._lock:
            entry = self._registry.pop(request_id)
            if entry is None:
                return None
            response = PermissionResponse(
                request_id=request_id,
                approved=approved,
                reason=reason,
                status=status,
            )
            self.bus.publish(PermissionEvent.resolved(response))

        self._settle(entry, PermissionOutcome(approved=approved, reason=reason))
        return response

    def _settle(self, entry: PendingEntry, outcome: PermissionOutcome) -> None:
        future: asyncio.Future = entry.waiter
        loop = future.get_loop()

        def _apply() -> None:
            if entry.timer is not None:
                entry.timer.cancel()
            if not future.done():
                future.set_result(outcome)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            _apply()
        else:
            loop.call_soon_threadsafe(_apply)


__all__ = ["PermissionBroker", "NOT_FOUND_MESSAGE", "CANCELLED_REASON"]
