"""
Reduce heterogeneous agent-runtime messages to AgentEvents.

Classification order:
1. bare string -> text
2. system/init with a session id -> session bound
3. assistant message with content parts -> text parts joined by newline
4. terminal result -> suppressed (repeats the incremental content)
5. direct ``content`` / ``text`` string field -> text
6. anything else -> dropped
"""

from typing import Any, Iterable, Mapping

from agentgate.agent.schema import AgentEvent


def session_init_id(message: Any) -> str | None:
    """Session id carried by a system/init message, if any."""
    if not isinstance(message, Mapping):
        return None
    if message.get("type") != "system" or message.get("subtype") != "init":
        return None
    session_id = message.get("session_id")
    return session_id if isinstance(session_id, str) and session_id else None


def assistant_text(message: Mapping[str, Any]) -> str:
    """Concatenate the text-typed parts of an assistant message."""
    body = message.get("message")
    if not isinstance(body, Mapping):
        return ""
    parts = body.get("content")
    if not isinstance(parts, list):
        return ""
    return "\n".join(
        part["text"]
        for part in parts
        if isinstance(part, Mapping) and part.get("type") == "text" and isinstance(part.get("text"), str)
    )


def normalize(message: Any) -> AgentEvent | None:
    """Classify one raw message; None means nothing is emitted for it."""
    if isinstance(message, str):
        return AgentEvent.text(message)

    if not isinstance(message, Mapping):
        return None

    session_id = session_init_id(message)
    if session_id:
        return AgentEvent.session_bound(session_id)

    kind = message.get("type")
    if kind == "assistant":
        text = assistant_text(message)
        return AgentEvent.text(text) if text else None

    if kind == "result":
        return None

    for key in ("content", "text"):
        value = message.get(key)
        if isinstance(value, str) and value:
            return AgentEvent.text(value)

    return None


def join_text(chunks: Iterable[str]) -> str:
    """Join consecutive text events, separating non-empty neighbours by a blank line."""
    result = ""
    for chunk in chunks:
        if result and chunk:
            result += "\n\n"
        result += chunk
    return result


__all__ = ["normalize", "session_init_id", "assistant_text", "join_text"]
