"""
Agent runtime binding.

``InvocationConfig`` is the per-call value that scopes one agent run: working
root, extra directories, permission prompt wiring and resume id. Nothing about
a call is carried in process-wide state, so concurrent invocations do not
interfere.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Protocol

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    query,
)


@dataclass(frozen=True)
class InvocationConfig:
    prompt: str
    working_directory: Path
    additional_directories: tuple[str, ...] = ()
    mcp_servers: dict[str, dict[str, Any]] = field(default_factory=dict)
    permission_tool_name: str | None = None
    permission_mode: str = "default"
    allowed_tools: tuple[str, ...] = ()
    resume_session_id: str | None = None


class AgentRuntime(Protocol):
    """An agent runtime yields raw turn messages for one invocation."""

    def query(self, config: InvocationConfig) -> AsyncIterator[Any]:
        """Return an async generator of raw messages (strings or mappings)."""
        ...


def _block_payload(block: Any) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ThinkingBlock):
        return {"type": "thinking", "thinking": block.thinking}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        return {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
            "is_error": block.is_error,
        }
    return {"type": type(block).__name__}


def to_payload(message: Any) -> Any:
    """Convert an SDK message object into the tagged mapping shape."""
    if isinstance(message, SystemMessage):
        return {**(message.data or {}), "type": "system", "subtype": message.subtype}
    if isinstance(message, AssistantMessage):
        return {
            "type": "assistant",
            "message": {
                "model": message.model,
                "content": [_block_payload(b) for b in message.content],
            },
        }
    if isinstance(message, UserMessage):
        content = message.content
        if not isinstance(content, str):
            content = [_block_payload(b) for b in content]
        return {"type": "user", "message": {"content": content}}
    if isinstance(message, ResultMessage):
        return {
            "type": "result",
            "subtype": message.subtype,
            "session_id": message.session_id,
            "is_error": message.is_error,
            "result": message.result,
        }
    return message


class ClaudeAgentRuntime:
    """AgentRuntime backed by the Claude Agent SDK."""

    def __init__(self, cli_path: str | None = None) -> None:
        self._cli_path = cli_path

    def build_options(self, config: InvocationConfig) -> ClaudeAgentOptions:
        options = ClaudeAgentOptions(
            cwd=str(config.working_directory),
            add_dirs=list(config.additional_directories),
            mcp_servers=config.mcp_servers,
            permission_mode=config.permission_mode,
            allowed_tools=list(config.allowed_tools),
            resume=config.resume_session_id,
        )
        if config.permission_tool_name:
            options.permission_prompt_tool_name = config.permission_tool_name
        if self._cli_path:
            options.cli_path = self._cli_path
        return options

    async def query(self, config: InvocationConfig) -> AsyncIterator[Any]:
        async for message in query(prompt=config.prompt, options=self.build_options(config)):
            yield to_payload(message)


__all__ = ["InvocationConfig", "AgentRuntime", "ClaudeAgentRuntime", "to_payload"]
