"""
Global dependency instances for the console server.

Initialized during app lifespan, accessed by routers.
"""

from agentgate.agent.adapter import AgentInvocationAdapter
from agentgate.permission.broker import PermissionBroker
from agentgate.permission.fanout import TransportFanout
from agentgate.workspace.manager import SessionWorkspaceManager

from server.config import ConsoleConfig

_console_config: ConsoleConfig | None = None
_broker: PermissionBroker | None = None
_fanout: TransportFanout | None = None
_workspaces: SessionWorkspaceManager | None = None
_agent_adapter: AgentInvocationAdapter | None = None


def set_console_config(config: ConsoleConfig) -> None:
    global _console_config
    _console_config = config


def get_console_config() -> ConsoleConfig:
    if _console_config is None:
        raise RuntimeError("ConsoleConfig not initialized")
    return _console_config


def set_broker(broker: PermissionBroker) -> None:
    global _broker
    _broker = broker


def get_broker() -> PermissionBroker:
    if _broker is None:
        raise RuntimeError("PermissionBroker not initialized")
    return _broker


def set_fanout(fanout: TransportFanout) -> None:
    global _fanout
    _fanout = fanout


def get_fanout() -> TransportFanout:
    if _fanout is None:
        raise RuntimeError("TransportFanout not initialized")
    return _fanout


def set_workspaces(workspaces: SessionWorkspaceManager) -> None:
    global _workspaces
    _workspaces = workspaces


def get_workspaces() -> SessionWorkspaceManager:
    if _workspaces is None:
        raise RuntimeError("SessionWorkspaceManager not initialized")
    return _workspaces


def set_agent_adapter(adapter: AgentInvocationAdapter) -> None:
    global _agent_adapter
    _agent_adapter = adapter


def get_agent_adapter() -> AgentInvocationAdapter:
    if _agent_adapter is None:
        raise RuntimeError("AgentInvocationAdapter not initialized")
    return _agent_adapter
