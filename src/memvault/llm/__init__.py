"""Agent service clients for memvault."""

from .client import AgentClient, AnthropicAgentClient, FakeAgentClient, get_agent_client

__all__ = [
    "AgentClient",
    "AnthropicAgentClient",
    "FakeAgentClient",
    "get_agent_client",
]
