import pytest

from agentgate.agent.adapter import AgentInvocationAdapter
from agentgate.agent.runtime import InvocationConfig
from agentgate.permission.broker import PermissionBroker
from agentgate.permission.fanout import TransportFanout
from agentgate.workspace.manager import SessionWorkspaceManager

from server.config import ConsoleConfig
from server.dependencies import (
    set_agent_adapter,
    set_broker,
    set_console_config,
    set_fanout,
    set_workspaces,
)


class ScriptedRuntime:
    """Agent runtime that replays canned messages."""

    def __init__(self) -> None:
        self.messages: list = []
        self.error: Exception | None = None
        self.configs: list[InvocationConfig] = []

    async def query(self, config: InvocationConfig):
        self.configs.append(config)
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error


@pytest.fixture
def runtime() -> ScriptedRuntime:
    return ScriptedRuntime()


@pytest.fixture
def services(tmp_path, runtime):
    """Wire console dependencies against a temp workspace and a scripted runtime."""
    config = ConsoleConfig(workspace_dir=str(tmp_path / "usercontent"))
    set_console_config(config)

    workspaces = SessionWorkspaceManager()
    workspaces.initialize_base(config.workspace_dir)
    set_workspaces(workspaces)

    broker = PermissionBroker(timeout=5)
    set_broker(broker)

    fanout = TransportFanout(broker)
    set_fanout(fanout)

    set_agent_adapter(AgentInvocationAdapter(workspaces, runtime, config.broker_url))

    yield {"broker": broker, "fanout": fanout, "workspaces": workspaces, "config": config}

    fanout.close_all()
