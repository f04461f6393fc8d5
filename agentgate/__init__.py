"""
AgentGate - human-in-the-loop gateway for a long-running agent runtime.

Usage:
    from agentgate import PermissionBroker, SessionWorkspaceManager, AgentInvocationAdapter
    from agentgate.agent import ClaudeAgentRuntime

    broker = PermissionBroker()
    outcome = await broker.submit("Write", "Request to use Write tool", "/tmp/x.txt")

    workspaces = SessionWorkspaceManager()
    workspaces.initialize_base("./usercontent")
    adapter = AgentInvocationAdapter(workspaces, ClaudeAgentRuntime(), "http://localhost:3001")
    async for event in adapter.stream("Hello!"):
        ...
"""

from agentgate.agent.adapter import AgentInvocationAdapter
from agentgate.agent.schema import AgentEvent, AgentEventType, ChatResult
from agentgate.exceptions import (
    AgentGateError,
    NotFoundError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from agentgate.permission.broker import PermissionBroker
from agentgate.permission.events import EventBus
from agentgate.permission.fanout import TransportFanout
from agentgate.permission.schema import PermissionOutcome, PermissionRequest, PermissionResponse
from agentgate.workspace.manager import Session, SessionWorkspaceManager

__all__ = [
    "AgentEvent",
    "AgentEventType",
    "AgentGateError",
    "AgentInvocationAdapter",
    "ChatResult",
    "EventBus",
    "NotFoundError",
    "PermissionBroker",
    "PermissionOutcome",
    "PermissionRequest",
    "PermissionResponse",
    "Session",
    "SessionWorkspaceManager",
    "TransportError",
    "TransportFanout",
    "UpstreamError",
    "ValidationError",
]
