"""
Permission data model.

PermissionRequest and PermissionResponse are the records exchanged with
observers; PermissionOutcome is what the blocked caller of ``submit`` receives.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PermissionStatus(str, Enum):
    """Lifecycle status of a permission request"""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    TIMED_OUT = "timed-out"


class PermissionRequest(BaseModel):
    """An action awaiting human approval."""

    model_config = ConfigDict(frozen=True)

    id: str
    action: str
    description: str
    resource: str | None = None
    details: Any | None = None
    created_at: datetime = Field(default_factory=_utcnow, serialization_alias="timestamp")
    status: PermissionStatus = PermissionStatus.PENDING

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PermissionResponse(BaseModel):
    """The single accepted answer to a permission request."""

    model_config = ConfigDict(frozen=True)

    request_id: str = Field(serialization_alias="id")
    approved: bool
    reason: str
    status: PermissionStatus
    resolved_at: datetime = Field(default_factory=_utcnow, serialization_alias="timestamp")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PermissionOutcome(BaseModel):
    """Result handed back to the caller blocked in ``submit``."""

    approved: bool
    reason: str


class ResolveResult(BaseModel):
    """Result of a human response attempt."""

    success: bool
    error: str | None = None
    request_id: str | None = None
    approved: bool | None = None
    message: str | None = None


class PermissionEventType(str, Enum):
    """Events published on the permission bus"""

    REQUEST_CREATED = "request-created"
    REQUEST_RESOLVED = "request-resolved"


@dataclass(frozen=True)
class PermissionEvent:
    """
    Tagged bus event.

    REQUEST_CREATED carries ``request``; REQUEST_RESOLVED carries ``response``.
    """

    type: PermissionEventType
    request: PermissionRequest | None = None
    response: PermissionResponse | None = None

    @classmethod
    def created(cls, request: PermissionRequest) -> "PermissionEvent":
        return cls(type=PermissionEventType.REQUEST_CREATED, request=request)

    @classmethod
    def resolved(cls, response: PermissionResponse) -> "PermissionEvent":
        return cls(type=PermissionEventType.REQUEST_RESOLVED, response=response)

    def to_frame(self) -> dict[str, Any]:
        """Render as an observer frame."""
        if self.type == PermissionEventType.REQUEST_CREATED:
            return {"type": "permission-request", "permission": self.request.to_wire()}
        return {"type": "permission-response", "response": self.response.to_wire()}


__all__ = [
    "PermissionStatus",
    "PermissionRequest",
    "PermissionResponse",
    "PermissionOutcome",
    "ResolveResult",
    "PermissionEventType",
    "PermissionEvent",
]
