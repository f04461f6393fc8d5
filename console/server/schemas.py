"""
API-layer Pydantic models for request/response serialization.

Request bodies accept both camelCase (browser client) and snake_case keys.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool


# ── Permissions ─────────────────────────────────────────────────────────


class PermissionRequestBody(BaseModel):
    action: str | None = None
    description: str | None = None
    resource: str | None = None
    details: Any | None = None


class PermissionRespondBody(BaseModel):
    permission_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("permissionId", "permission_id"),
    )
    approved: StrictBool | None = None
    reason: str | None = None


class PermissionDecisionResponse(BaseModel):
    approved: bool
    reason: str


class PermissionRespondResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    permission_id: str = Field(serialization_alias="permissionId")
    approved: bool


class PendingPermissionsResponse(BaseModel):
    permissions: list[dict[str, Any]]
    count: int


# ── Sessions ────────────────────────────────────────────────────────────


class SessionWorkspaceRequest(BaseModel):
    session_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sessionId", "session_id"),
    )


class SessionWorkspaceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(serialization_alias="sessionId")
    workspace_dir: str = Field(serialization_alias="workspaceDir")


# ── Chat ────────────────────────────────────────────────────────────────


class ChatRequest(BaseModel):
    prompt: str | None = None
    session_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sessionId", "session_id"),
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    session_id: str | None = Field(default=None, serialization_alias="sessionId")
    timestamp: str
