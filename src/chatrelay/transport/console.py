"""Console transport — chat with the relay from a terminal.

Each stdin line is delivered as a text message from a single local sender.
A few prefixes emulate other message kinds:

    /me <text>              message from the linked account itself (operator)
    /image <path> [caption] image message with the file's bytes
    /quit                   end the session
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from chatrelay.transport.base import BodyKind, InboundMessage, MessageBody

if TYPE_CHECKING:
    from chatrelay.transport.base import Attachment, Presence, TransportListener

logger = logging.getLogger(__name__)

CONSOLE_SENDER = "console@local"


class ConsoleTransport:
    """Transport reading stdin and printing replies with rich."""

    def __init__(self, console: Console | None = None, sender_id: str = CONSOLE_SENDER) -> None:
        self._console = console or Console()
        self._sender_id = sender_id
        self._reader: asyncio.Task[None] | None = None
        self.finished = asyncio.Event()

    async def connect(self, listener: TransportListener) -> None:
        await listener.on_open()
        self._console.print("[green]✓[/green] Console session open. Type /quit to exit.")
        self._reader = asyncio.create_task(self._read_loop(listener))

    async def send_text(self, conversation_id: str, text: str) -> None:
        self._console.print(f"[bold cyan]relay →[/bold cyan] {text}")

    async def send_attachment(
        self,
        conversation_id: str,
        attachment: Attachment,
        caption: str | None = None,
    ) -> None:
        source = attachment.url or f"{len(attachment.data or b'')} bytes"
        suffix = f" — {caption}" if caption else ""
        self._console.print(f"[bold cyan]relay →[/bold cyan] 📎 {source}{suffix}")

    async def send_presence(self, conversation_id: str, presence: Presence) -> None:
        logger.debug("Presence %s for %s", presence, conversation_id)

    async def clear_credentials(self) -> None:
        logger.info("Console transport has no credentials to clear")

    async def close(self) -> None:
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        self.finished.set()

    async def _read_loop(self, listener: TransportListener) -> None:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line or line.strip() == "/quit":
                self.finished.set()
                return
            message = self._parse_line(line.rstrip("\n"))
            if message is not None:
                await listener.on_message(message)

    def _parse_line(self, line: str) -> InboundMessage | None:
        if line.startswith("/me "):
            body = MessageBody(kind=BodyKind.text, text=line[4:])
            return InboundMessage(sender_id=self._sender_id, body=body, from_me=True)

        if line.startswith("/image "):
            parts = line[7:].split(maxsplit=1)
            path = Path(parts[0]).expanduser() if parts else None
            if path is None or not path.is_file():
                self._console.print("[red]✗[/red] Image file not found.")
                return None
            body = MessageBody(
                kind=BodyKind.image,
                text=parts[1] if len(parts) > 1 else None,
                data=path.read_bytes(),
                mime_type="image/jpeg",
            )
            return InboundMessage(sender_id=self._sender_id, body=body, push_name="Console")

        body = MessageBody(kind=BodyKind.text, text=line)
        return InboundMessage(sender_id=self._sender_id, body=body, push_name="Console")
