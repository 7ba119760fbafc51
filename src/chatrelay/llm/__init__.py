"""AI service abstraction — streaming HTTP provider and an offline echo provider."""

from chatrelay.llm.client import (
    AIClient,
    AIError,
    AIMessage,
    Instructions,
    SenderMeta,
    create_ai_client,
)

__all__ = ["AIClient", "AIError", "AIMessage", "Instructions", "SenderMeta", "create_ai_client"]
