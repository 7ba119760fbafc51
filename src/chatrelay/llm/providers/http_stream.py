"""Streaming HTTP provider for the chat completion endpoint.

POSTs the conversation as JSON and reads a server-sent-event stream of
``data: {"content": "<delta>"}`` lines terminated by ``data: [DONE]``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from chatrelay.llm.client import AIError, collect

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatrelay.llm.client import AIMessage, Instructions, SenderMeta

logger = logging.getLogger(__name__)

_PROVIDER = "http"

# Sentinel for the end-of-stream line
_DONE = object()


class HttpStreamClient:
    """AI client for the SSE chat endpoint.

    Pass ``client`` to reuse a configured ``httpx.AsyncClient`` (tests inject
    one built on ``httpx.MockTransport``); otherwise a short-lived client is
    opened per request.
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 60.0,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = endpoint_url
        self._timeout = timeout
        self._api_key = api_key
        self._client = client

    @property
    def provider_name(self) -> str:
        return _PROVIDER

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
        payload = build_payload(messages, instructions, sender)
        headers = {"Accept": "text/event-stream", "Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            if self._client is not None:
                async for delta in self._stream_with(self._client, headers, payload):
                    yield delta
                return
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async for delta in self._stream_with(client, headers, payload):
                    yield delta
        except httpx.HTTPError as e:
            raise AIError(f"AI request failed: {e}", provider=_PROVIDER, original=e) from e

    async def _stream_with(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> AsyncIterator[str]:
        async with client.stream("POST", self._url, headers=headers, json=payload) as resp:
            if not resp.is_success:
                body = await resp.aread()
                raise AIError(
                    f"AI API error {resp.status_code}: {body[:200]!r}", provider=_PROVIDER
                )
            async for line in resp.aiter_lines():
                delta = parse_sse_line(line)
                if delta is _DONE:
                    break
                if delta:
                    yield delta


def parse_sse_line(line: str) -> str | object | None:
    """Extract the content delta from one SSE line.

    Returns the delta text, ``_DONE`` for the terminator, or None for lines
    that carry nothing (blank, comments, other fields, malformed JSON).
    """
    line = line.strip()
    if not line or line.startswith(":") or not line.startswith("data:"):
        return None
    data = line[len("data:") :].strip()
    if not data:
        return None
    if data == "[DONE]":
        return _DONE
    try:
        obj = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream chunk: %.80s", data)
        return None
    if not isinstance(obj, dict):
        return None
    content = obj.get("content")
    return content if isinstance(content, str) else None


def build_payload(
    messages: list[AIMessage],
    instructions: Instructions,
    sender: SenderMeta,
) -> dict[str, Any]:
    """Serialize a request body for the chat endpoint."""
    api_messages: list[dict[str, Any]] = []
    for m in messages:
        entry: dict[str, Any] = {"role": m.role, "content": m.content}
        if m.images:
            entry["images"] = list(m.images)
        api_messages.append(entry)

    return {
        "messages": api_messages,
        "mode": instructions.mode,
        "userInfo": {
            "userId": sender.user_id,
            "phone": sender.phone,
            "email": sender.email,
            "displayName": sender.display_name,
        },
        "systemHint": instructions.system_hint,
    }
