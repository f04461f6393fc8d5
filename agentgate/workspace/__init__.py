from agentgate.workspace.manager import Session, SessionWorkspaceManager

__all__ = ["Session", "SessionWorkspaceManager"]
