"""Messaging transport interface, supervisor, and the local console transport."""

from chatrelay.transport.base import (
    Attachment,
    BodyKind,
    InboundMessage,
    MessageBody,
    Transport,
    TransportListener,
)
from chatrelay.transport.supervisor import ConnectionStatus, ConnectionSupervisor

__all__ = [
    "Attachment",
    "BodyKind",
    "ConnectionStatus",
    "ConnectionSupervisor",
    "InboundMessage",
    "MessageBody",
    "Transport",
    "TransportListener",
]
