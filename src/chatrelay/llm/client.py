"""Unified AI client interface and factory.

All providers implement the same Protocol: send the conversation, stream text
back. Provider-specific details (wire format, stream parsing, error types) are
encapsulated in each implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatrelay.config import AIConfig

logger = logging.getLogger(__name__)

Provider: TypeAlias = Literal["http", "echo"]

MessageRole: TypeAlias = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class AIMessage:
    """A chat message sent to the AI service."""

    role: MessageRole
    content: str
    images: tuple[str, ...] = ()  # data URLs


@dataclass(frozen=True, slots=True)
class SenderMeta:
    """Who the AI service is talking to."""

    user_id: str
    phone: str | None = None
    email: str | None = None
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class Instructions:
    """Tier-dependent instruction payload."""

    system_hint: str
    mode: str = "gpt"


class AIError(Exception):
    """Unified error for all AI providers."""

    def __init__(self, message: str, provider: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.original = original


class AIClient(Protocol):
    """Protocol for AI providers.

    Implementations must handle:
    - Serializing history, instructions and sender metadata
    - Parsing the response stream into text deltas
    - Error mapping to AIError
    """

    @property
    def provider_name(self) -> str: ...

    def stream(
        self,
        messages: list[AIMessage],
        instructions: Instructions,
        sender: SenderMeta,
    ) -> AsyncIterator[str]:
        """Yield response text deltas as they arrive."""
        ...

    async def complete(
        self,
        messages: list[AIMessage],
        instructions: Instructions,
        sender: SenderMeta,
    ) -> str:
        """Send the conversation and return the full response text.

        Raises:
            AIError: On any provider error, including an empty response.
        """
        ...


async def collect(
    client: AIClient,
    messages: list[AIMessage],
    instructions: Instructions,
    sender: SenderMeta,
) -> str:
    """Concatenate a client's stream; an empty result is a failure."""
    parts = [delta async for delta in client.stream(messages, instructions, sender)]
    text = "".join(parts)
    if not text.strip():
        raise AIError("Empty response stream", provider=client.provider_name)
    return text


def create_ai_client(config: AIConfig, api_key: str = "") -> AIClient:
    """Factory: create an AI client for the configured provider.

    Args:
        config: AI section of the settings.
        api_key: Optional bearer token for the HTTP endpoint.

    Returns:
        An AIClient implementation.
    """
    if config.provider == "http":
        from chatrelay.llm.providers.http_stream import HttpStreamClient

        return HttpStreamClient(
            endpoint_url=config.endpoint_url,
            timeout=config.timeout_seconds,
            api_key=api_key or None,
        )

    if config.provider == "echo":
        from chatrelay.llm.providers.echo import EchoClient

        return EchoClient()

    raise ValueError(f"Unknown AI provider: {config.provider}")
