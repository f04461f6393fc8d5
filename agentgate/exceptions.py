"""
AgentGate exceptions.

Timeouts are intentionally absent: a permission request that outlives its
deadline resolves to a denial instead of raising.
"""


class AgentGateError(Exception):
    """Base exception for all AgentGate errors."""

    pass


class ValidationError(AgentGateError):
    """Raised when a required field (action, description, prompt) is missing."""

    pass


class NotFoundError(AgentGateError):
    """Raised when a permission request is unknown or already resolved."""

    pass


class TransportError(AgentGateError):
    """Raised when the proxy cannot get a usable answer from the broker."""

    pass


class UpstreamError(AgentGateError):
    """Raised when the agent runtime fails during an invocation."""

    pass


__all__ = [
    "AgentGateError",
    "ValidationError",
    "NotFoundError",
    "TransportError",
    "UpstreamError",
]
