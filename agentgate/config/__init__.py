from agentgate.config.settings import AgentGateSettings, settings

__all__ = ["AgentGateSettings", "settings"]
