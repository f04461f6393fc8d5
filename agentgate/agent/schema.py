from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class AgentEventType(str, Enum):
    """Normalized events produced from one agent invocation"""

    TEXT = "text"
    SESSION_BOUND = "session_bound"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class AgentEvent:
    """
    Uniform event emitted by the invocation adapter.

    Which fields are set depends on ``type``:
    - TEXT: value
    - SESSION_BOUND: session_id (id minted by the agent runtime)
    - DONE: session_id (final bound id, may be None)
    - ERROR: message
    """

    type: AgentEventType
    value: str | None = None
    session_id: str | None = None
    message: str | None = None

    @classmethod
    def text(cls, value: str) -> "AgentEvent":
        return cls(type=AgentEventType.TEXT, value=value)

    @classmethod
    def session_bound(cls, session_id: str) -> "AgentEvent":
        return cls(type=AgentEventType.SESSION_BOUND, session_id=session_id)

    @classmethod
    def done(cls, session_id: str | None) -> "AgentEvent":
        return cls(type=AgentEventType.DONE, session_id=session_id)

    @classmethod
    def error(cls, message: str) -> "AgentEvent":
        return cls(type=AgentEventType.ERROR, message=message)


@dataclass
class ChatResult:
    """Collected output of a non-streaming invocation."""

    response: str
    session_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        data = {"response": self.response, "timestamp": self.timestamp.isoformat()}
        if self.session_id:
            data["sessionId"] = self.session_id
        return data


__all__ = ["AgentEventType", "AgentEvent", "ChatResult"]
