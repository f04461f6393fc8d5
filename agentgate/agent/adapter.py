"""
AgentInvocationAdapter - drive one agent call inside a session workspace.

The adapter resolves the session workspace, builds the per-call
InvocationConfig (working root and the only granted directory are the session
workspace; the permission proxy is launched with that same workspace), then
reduces the runtime's message stream to AgentEvents:

    text* ... session_bound? ... text*  then exactly one of  done | error
"""

import asyncio
import sys
from contextlib import aclosing
from typing import Any, AsyncIterator

from agentgate.agent.normalizer import join_text, normalize
from agentgate.agent.runtime import AgentRuntime, InvocationConfig
from agentgate.agent.schema import AgentEvent, AgentEventType, ChatResult
from agentgate.config.settings import AgentGateSettings, settings as default_settings
from agentgate.exceptions import UpstreamError, ValidationError
from agentgate.workspace.manager import Session, SessionWorkspaceManager
from agentgate.utils.logging import get_logger

logger = get_logger(__name__)


def _preview(message: Any, limit: int = 200) -> str:
    text = message if isinstance(message, str) else repr(message)
    return text[:limit]


class AgentInvocationAdapter:
    def __init__(
        self,
        workspaces: SessionWorkspaceManager,
        runtime: AgentRuntime,
        broker_url: str,
        settings: AgentGateSettings | None = None,
    ) -> None:
        """
        Args:
            workspaces: Session workspace manager
            runtime: Agent runtime producing raw messages
            broker_url: Base URL the permission proxy uses to reach the broker
            settings: Settings override (default: global settings)
        """
        self._workspaces = workspaces
        self._runtime = runtime
        self._broker_url = broker_url
        self._settings = settings or default_settings

    def permission_server(self, session: Session) -> dict[str, Any]:
        """stdio MCP server entry for the permission proxy of one call."""
        return {
            "type": "stdio",
            "command": sys.executable,
            "args": [
                "-m",
                "agentgate.permission.proxy",
                "--broker-url",
                self._broker_url,
                "--workspace-dir",
                str(session.workspace_dir),
                "--timeout",
                str(self._settings.proxy_timeout),
            ],
        }

    def build_config(
        self,
        prompt: str,
        session: Session,
        resume_session_id: str | None = None,
    ) -> InvocationConfig:
        workspace = str(session.workspace_dir)
        return InvocationConfig(
            prompt=prompt,
            working_directory=session.workspace_dir,
            additional_directories=(workspace,),
            mcp_servers={self._settings.permission_server_name: self.permission_server(session)},
            permission_tool_name=self._settings.permission_tool_name,
            permission_mode=self._settings.permission_mode,
            allowed_tools=tuple(self._settings.allowed_tools),
            resume_session_id=resume_session_id,
        )

    async def stream(self, prompt: str | None, session_id: str | None = None) -> AsyncIterator[AgentEvent]:
        """
        Run one agent invocation and yield normalized events.

        Raises:
            ValidationError: If prompt is missing (before anything runs)

        Runtime failures are not raised: they end the stream with a single
        ERROR event.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        session = await asyncio.to_thread(self._workspaces.get_or_create, session_id)
        config = self.build_config(prompt, session, resume_session_id=session_id)
        final_session_id = session.id
        debug = self._settings.debug

        logger.info(
            "agent_invocation_started",
            session_id=session.id,
            resume=session_id,
            workspace_dir=str(session.workspace_dir),
        )

        message_count = 0
        try:
            async with aclosing(self._runtime.query(config)) as messages:
                async for raw in messages:
                    message_count += 1
                    if debug:
                        logger.debug("agent_message", index=message_count, preview=_preview(raw))

                    event = normalize(raw)
                    if event is None:
                        continue

                    if event.type == AgentEventType.SESSION_BOUND:
                        final_session_id = event.session_id
                        if not session_id:
                            self._workspaces.rebind(event.session_id, session.workspace_dir)
                        else:
                            logger.debug("agent_session_resumed", session_id=event.session_id)

                    yield event
        except Exception as e:
            logger.error(
                "agent_invocation_failed",
                session_id=final_session_id,
                messages=message_count,
                error=str(e),
                exc_info=True,
            )
            yield AgentEvent.error(str(e) or type(e).__name__)
            return

        logger.info(
            "agent_invocation_completed",
            session_id=final_session_id,
            messages=message_count,
        )
        yield AgentEvent.done(final_session_id)

    async def run(self, prompt: str | None, session_id: str | None = None) -> ChatResult:
        """
        Run one invocation and collect its text.

        Raises:
            ValidationError: If prompt is missing
            UpstreamError: If the agent runtime failed
        """
        chunks: list[str] = []
        final_session_id: str | None = None

        async for event in self.stream(prompt, session_id=session_id):
            if event.type == AgentEventType.TEXT:
                chunks.append(event.value)
            elif event.type == AgentEventType.DONE:
                final_session_id = event.session_id
            elif event.type == AgentEventType.ERROR:
                raise UpstreamError(event.message)

        return ChatResult(response=join_text(chunks), session_id=final_session_id)


__all__ = ["AgentInvocationAdapter"]
