"""Inbound content extraction — turns any transport body into pipeline input."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatrelay.transport.base import BodyKind

if TYPE_CHECKING:
    from chatrelay.transport.base import MessageBody


@dataclass(frozen=True, slots=True)
class InboundAttachment:
    """Media received with a message. ``data`` is None when it could not be downloaded."""

    kind: BodyKind
    data: bytes | None = None
    mime_type: str = "image/jpeg"

    def data_url(self) -> str | None:
        if not self.data:
            return None
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass(frozen=True, slots=True)
class ExtractedContent:
    """Text to classify plus an optional attachment."""

    text: str
    attachment: InboundAttachment | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text and self.attachment is None

    def turn_text(self) -> str:
        """Text recorded in history and sent to the AI for this user turn."""
        if self.attachment is None or self.attachment.kind is not BodyKind.image:
            return self.text
        if self.text:
            return f'[User sent an image with caption: "{self.text}"]'
        return "[User sent an image - likely a payment screenshot or document]"


def extract_content(body: MessageBody) -> ExtractedContent:
    """Map a message body to text and attachment.

    Media kinds the relay cannot forward are described in brackets so the
    AI still sees that something was sent.
    """
    kind = body.kind
    text = body.text or ""

    if kind is BodyKind.image:
        attachment = InboundAttachment(
            kind=kind, data=body.data, mime_type=body.mime_type or "image/jpeg"
        )
        return ExtractedContent(text=text, attachment=attachment)

    if kind is BodyKind.video:
        attachment = InboundAttachment(kind=kind, mime_type=body.mime_type or "video/mp4")
        return ExtractedContent(text=text or "[User sent a video]", attachment=attachment)

    if kind is BodyKind.document:
        return ExtractedContent(text=f"[User sent a document: {body.file_name or 'file'}]")

    if kind is BodyKind.audio:
        return ExtractedContent(
            text="[User sent a voice message - please type your message instead]"
        )

    if kind is BodyKind.sticker:
        return ExtractedContent(text="[User sent a sticker 😊]")

    if kind is BodyKind.location:
        return ExtractedContent(
            text=f"[User shared location: {body.latitude}, {body.longitude}]"
        )

    if kind is BodyKind.contact:
        return ExtractedContent(text=f"[User shared a contact: {body.contact_name or 'unknown'}]")

    # text, button_reply and list_reply all carry plain text (selected ids for replies)
    return ExtractedContent(text=text)
