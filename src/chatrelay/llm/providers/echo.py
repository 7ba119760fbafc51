"""Offline provider that answers without any network call."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from chatrelay.llm.client import collect

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatrelay.llm.client import AIMessage, Instructions, SenderMeta

_CHUNK_SIZE = 6


class EchoClient:
    """AI client that streams back the latest user message.

    Useful for running the relay against the console transport without an
    AI endpoint.
    """

    @property
    def provider_name(self) -> str:
        return "echo"

    async def complete(
        self,
        messages: list[AIMessage],
        instructions: Instructions,
        sender: SenderMeta,
    ) -> str:
        return await collect(self, messages, instructions, sender)

    async def stream(
        self,
        messages: list[AIMessage],
        instructions: Instructions,
        sender: SenderMeta,
    ) -> AsyncIterator[str]:
        last_user = next((m for m in reversed(messages) if m.role == "user"), None)
        text = f"You said: {last_user.content}" if last_user else "Hello!"
        if last_user is not None and last_user.images:
            text += f" (with {len(last_user.images)} image(s))"
        for i in range(0, len(text), _CHUNK_SIZE):
            yield text[i : i + _CHUNK_SIZE]
            await asyncio.sleep(0)
