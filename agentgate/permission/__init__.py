"""
Human-in-the-loop permission broker.

The proxy process entry point lives in ``agentgate.permission.proxy`` and is
not imported here.
"""

from agentgate.permission.broker import PermissionBroker
from agentgate.permission.events import EventBus, Subscription
from agentgate.permission.fanout import ObserverChannel, TransportFanout
from agentgate.permission.registry import CorrelationRegistry, PendingEntry
from agentgate.permission.schema import (
    PermissionEvent,
    PermissionEventType,
    PermissionOutcome,
    PermissionRequest,
    PermissionResponse,
    PermissionStatus,
    ResolveResult,
)

__all__ = [
    "PermissionBroker",
    "EventBus",
    "Subscription",
    "ObserverChannel",
    "TransportFanout",
    "CorrelationRegistry",
    "PendingEntry",
    "PermissionEvent",
    "PermissionEventType",
    "PermissionOutcome",
    "PermissionRequest",
    "PermissionResponse",
    "PermissionStatus",
    "ResolveResult",
]
