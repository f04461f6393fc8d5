"""
Permissions API router — broker submit/respond/list and the observer WebSocket.
"""

import asyncio
import json
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from agentgate.exceptions import NotFoundError, ValidationError
from agentgate.utils.logging import get_logger

from server.dependencies import get_broker, get_fanout, get_workspaces
from server.schemas import (
    PendingPermissionsResponse,
    PermissionDecisionResponse,
    PermissionRequestBody,
    PermissionRespondBody,
    PermissionRespondResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.post("/request-mcp", response_model=PermissionDecisionResponse)
async def request_mcp_permission(body: PermissionRequestBody):
    """Suspend until a human answers the request or it times out."""
    broker = get_broker()
    try:
        outcome = await broker.submit(
            body.action,
            body.description,
            resource=body.resource,
            details=body.details,
        )
    except ValidationError:
        raise
    except Exception as e:
        logger.error("permission_submit_failed", action=body.action, error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "approved": False, "reason": "Server error"},
        )

    return PermissionDecisionResponse(approved=outcome.approved, reason=outcome.reason)


@router.post("/request")
async def request_permission_legacy(body: PermissionRequestBody):
    """Older tool-call path: approves immediately without asking anyone."""
    if not body.action or not body.description:
        raise ValidationError("Action and description are required")

    workspace = get_workspaces().base_dir
    logger.warning("permission_auto_approved", action=body.action, resource=body.resource)
    return {
        "approved": True,
        "message": "Permission auto-approved",
        "action": body.action,
        "description": body.description,
        "workspace": str(workspace) if workspace else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/pending", response_model=PendingPermissionsResponse)
async def list_pending_permissions():
    pending = get_broker().list_pending()
    return PendingPermissionsResponse(
        permissions=[request.to_wire() for request in pending],
        count=len(pending),
    )


@router.post("/respond", response_model=PermissionRespondResponse)
async def respond_to_permission(body: PermissionRespondBody):
    if not body.permission_id or body.approved is None:
        raise ValidationError("Permission ID and approved status are required")

    result = get_broker().resolve(body.permission_id, body.approved, body.reason)
    if not result.success:
        raise NotFoundError(result.error)

    return PermissionRespondResponse(
        success=True,
        message=result.message,
        permission_id=body.permission_id,
        approved=body.approved,
    )


async def _listen(websocket: WebSocket, client_id: str) -> None:
    """Consume inbound frames until the peer goes away, then drop the channel."""
    fanout = get_fanout()
    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                logger.warning("observer_message_invalid", client_id=client_id)
                continue
            logger.debug("observer_message", client_id=client_id, data=data)
    except WebSocketDisconnect:
        fanout.disconnect(client_id)
    except Exception as e:
        logger.warning("observer_receive_failed", client_id=client_id, error=str(e))
        fanout.disconnect(client_id, reason="transport_error")


@router.websocket("/ws")
async def permission_events(websocket: WebSocket):
    """Stream connected, pending-permissions and live permission frames."""
    await websocket.accept()
    fanout = get_fanout()
    channel = fanout.connect()
    listener = asyncio.create_task(_listen(websocket, channel.id))

    reason = "closed"
    try:
        async for frame in channel.read():
            await websocket.send_json(frame)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        reason = "transport_error"
        logger.warning("observer_send_failed", client_id=channel.id, error=str(e))
    finally:
        listener.cancel()
        await asyncio.gather(listener, return_exceptions=True)
        fanout.disconnect(channel.id, reason=reason)
