"""
Sessions API router — session workspace bindings.
"""

import asyncio

from fastapi import APIRouter

from server.dependencies import get_workspaces
from server.schemas import SessionWorkspaceRequest, SessionWorkspaceResponse

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("/workspace", response_model=SessionWorkspaceResponse)
async def get_or_create_workspace(body: SessionWorkspaceRequest):
    """Resolve (or create) the workspace directory for a session id."""
    session = await asyncio.to_thread(get_workspaces().get_or_create, body.session_id)
    return SessionWorkspaceResponse(
        session_id=session.id,
        workspace_dir=str(session.workspace_dir),
    )


@router.get("", response_model=list[SessionWorkspaceResponse])
async def list_sessions():
    return [
        SessionWorkspaceResponse(session_id=session_id, workspace_dir=str(workspace_dir))
        for session_id, workspace_dir in get_workspaces().all_sessions()
    ]
