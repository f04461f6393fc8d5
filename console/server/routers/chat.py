"""
Chat API router — agent conversation via SSE, plus a non-streaming variant.
"""

import json
from typing import Any

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from agentgate.agent.schema import AgentEvent, AgentEventType
from agentgate.exceptions import ValidationError
from agentgate.utils.ids import new_id
from agentgate.utils.logging import clear_request_context, get_logger, set_request_context

from server.dependencies import get_agent_adapter
from server.schemas import ChatRequest, ChatResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _serialize_event(event: AgentEvent, message_id: int) -> dict[str, str]:
    """Map an AgentEvent to an SSE frame."""
    data: dict[str, Any]
    if event.type == AgentEventType.TEXT:
        name = "message"
        data = {"type": "message", "content": event.value, "messageId": message_id}
    elif event.type == AgentEventType.SESSION_BOUND:
        name = "session"
        data = {"type": "session", "sessionId": event.session_id}
    elif event.type == AgentEventType.DONE:
        name = "complete"
        data = {"type": "complete", "message": "Stream complete"}
        if event.session_id:
            data["sessionId"] = event.session_id
    else:
        name = "error"
        data = {"type": "error", "error": event.message}
    return {"event": name, "data": json.dumps(data)}


@router.post("/stream")
async def chat_stream(body: ChatRequest):
    if not body.prompt or not body.prompt.strip():
        raise ValidationError("Prompt is required")

    adapter = get_agent_adapter()

    async def event_generator():
        set_request_context(request_id=new_id("req"), session_id=body.session_id)
        yield {
            "event": "start",
            "data": json.dumps({"type": "start", "message": "Connected to agent"}),
        }
        message_id = 0
        try:
            async for event in adapter.stream(body.prompt, session_id=body.session_id):
                if event.type == AgentEventType.TEXT:
                    message_id += 1
                yield _serialize_event(event, message_id)
        except Exception as e:
            logger.error("chat_stream_failed", session_id=body.session_id, error=str(e), exc_info=True)
            yield {"event": "error", "data": json.dumps({"type": "error", "error": str(e)})}
        finally:
            clear_request_context()

    return EventSourceResponse(event_generator())


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest):
    set_request_context(request_id=new_id("req"), session_id=body.session_id)
    try:
        result = await get_agent_adapter().run(body.prompt, session_id=body.session_id)
    finally:
        clear_request_context()
    return ChatResponse(
        response=result.response,
        session_id=result.session_id,
        timestamp=result.timestamp.isoformat(),
    )
