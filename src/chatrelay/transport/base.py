"""Messaging transport interface — the narrow surface the relay consumes.

A transport owns the wire session with the messaging network (pairing,
encryption, encoding). It reports lifecycle and inbound messages to a
``TransportListener`` and accepts outbound text, attachments and presence.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol, TypeAlias

Presence: TypeAlias = Literal["composing", "paused"]


class BodyKind(Enum):
    """Inbound message body types."""

    text = "text"
    image = "image"
    video = "video"
    document = "document"
    audio = "audio"
    button_reply = "button_reply"
    list_reply = "list_reply"
    sticker = "sticker"
    location = "location"
    contact = "contact"


@dataclass(frozen=True, slots=True)
class MessageBody:
    """Decoded message payload.

    Only the fields relevant to ``kind`` are populated: ``text`` for text,
    captions and selected reply ids; ``data`` for downloaded media bytes.
    """

    kind: BodyKind
    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None
    file_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    contact_name: str | None = None


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """A message delivered by the transport."""

    sender_id: str
    body: MessageBody
    is_group: bool = False
    from_me: bool = False
    push_name: str | None = None
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class Attachment:
    """Outbound attachment: either a URL to fetch or raw bytes."""

    url: str | None = None
    data: bytes | None = None
    mime_type: str = "image/jpeg"


class TransportListener(Protocol):
    """Receives transport lifecycle and message events."""

    async def on_qr(self, code: str) -> None: ...

    async def on_open(self) -> None: ...

    async def on_close(self, reason: str, retryable: bool) -> None: ...

    async def on_message(self, message: InboundMessage) -> None: ...


class Transport(Protocol):
    """Protocol for messaging transports.

    Implementations must handle:
    - Persisting and reloading their own credential state across restarts
    - Reporting ``on_close(retryable=False)`` only when credentials are revoked
    """

    async def connect(self, listener: TransportListener) -> None:
        """Request a new session. Events are delivered to ``listener``."""
        ...

    async def send_text(self, conversation_id: str, text: str) -> None: ...

    async def send_attachment(
        self,
        conversation_id: str,
        attachment: Attachment,
        caption: str | None = None,
    ) -> None: ...

    async def send_presence(self, conversation_id: str, presence: Presence) -> None: ...

    async def clear_credentials(self) -> None:
        """Delete persisted credentials so the next connect re-pairs."""
        ...

    async def close(self) -> None: ...
