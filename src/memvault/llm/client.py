"""Agent service clients: plain-text prompt in, plain-text completion out."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import requests

from ..config import MemvaultConfig
from ..errors import AgentResponseError, ConfigError


class AgentClient(ABC):
    """Abstract interface for the language-model agent.

    Implementations take a prompt and return the completion text. Transport
    and provider errors propagate to the caller.
    """

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the agent's completion for ``prompt``."""
        pass

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Return engine identifier (e.g., 'fake', 'anthropic')."""
        pass


class FakeAgentClient(AgentClient):
    """Scripted agent for tests and offline runs.

    Replies come from a fixed string, a callable of the prompt, or a list
    consumed in order (the last entry repeats). Every prompt is recorded.
    """

    def __init__(self, replies: Union[str, list[str], Callable[[str], str]] = ""):
        self._replies = replies
        self.prompts: list[str] = []

    @property
    def engine_name(self) -> str:
        return "fake"

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if callable(self._replies):
            return self._replies(prompt)
        if isinstance(self._replies, list):
            if not self._replies:
                return ""
            idx = min(len(self.prompts) - 1, len(self._replies) - 1)
            return self._replies[idx]
        return self._replies


class AnthropicAgentClient(AgentClient):
    """Agent client for the Anthropic Messages API."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "claude-haiku-4-5-20251001",
        max_tokens: int = 1024,
        timeout_seconds: float = 60,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key
            model: Model name
            max_tokens: Completion token cap
            timeout_seconds: Per-request timeout
            session: Optional requests session

        Raises:
            ValueError: If no API key is provided
        """
        if not api_key:
            raise ValueError("Missing API key: set ANTHROPIC_API_KEY environment variable")
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def engine_name(self) -> str:
        return "anthropic"

    def complete(self, prompt: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
        }
        data = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        response = self.session.post(self.API_URL, json=data, headers=headers, timeout=self.timeout_seconds)
        response.raise_for_status()
        return self._parse_response(response.json())

    def _parse_response(self, response: object) -> str:
        if not isinstance(response, dict) or not isinstance(response.get("content"), list):
            raise AgentResponseError("Agent response has no 'content' list")
        # Concatenate text blocks; tool or thinking blocks carry no reply text.
        parts = [
            str(block.get("text", ""))
            for block in response["content"]
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return "".join(parts)


def get_agent_client(config: MemvaultConfig, engine: str = "auto") -> Optional[AgentClient]:
    """Get an agent client based on engine setting and configured credentials.

    Args:
        config: Validated configuration
        engine: 'fake', 'anthropic', or 'auto' ('auto' returns None when no
            credential is configured)

    Returns:
        AgentClient implementation, or None

    Raises:
        ConfigError: If 'anthropic' is requested without a key, or the engine
            is unknown
    """
    if engine == "fake":
        return FakeAgentClient()

    if engine in ("anthropic", "auto"):
        if config.anthropic_api_key:
            return AnthropicAgentClient(
                config.anthropic_api_key,
                model=config.agent_model,
                timeout_seconds=config.request_timeout_seconds,
            )
        if engine == "anthropic":
            raise ConfigError("ANTHROPIC_API_KEY not set")
        return None

    raise ConfigError(f"Unknown agent engine: {engine!r}")
