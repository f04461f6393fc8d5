from agentgate.agent.adapter import AgentInvocationAdapter
from agentgate.agent.normalizer import join_text, normalize
from agentgate.agent.runtime import AgentRuntime, ClaudeAgentRuntime, InvocationConfig
from agentgate.agent.schema import AgentEvent, AgentEventType, ChatResult

__all__ = [
    "AgentInvocationAdapter",
    "AgentRuntime",
    "ClaudeAgentRuntime",
    "InvocationConfig",
    "AgentEvent",
    "AgentEventType",
    "ChatResult",
    "normalize",
    "join_text",
]
