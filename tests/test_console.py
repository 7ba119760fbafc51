"""Tests for the console transport line parser and output."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from chatrelay.transport.base import Attachment, BodyKind
from chatrelay.transport.console import CONSOLE_SENDER, ConsoleTransport


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def transport(output: StringIO) -> ConsoleTransport:
    return ConsoleTransport(console=Console(file=output, width=120))


class TestParseLine:
    def test_plain_text(self, transport: ConsoleTransport) -> None:
        message = transport._parse_line("what's the rate?")
        assert message is not None
        assert message.sender_id == CONSOLE_SENDER
        assert message.body.kind is BodyKind.text
        assert message.body.text == "what's the rate?"
        assert not message.from_me

    def test_own_account(self, transport: ConsoleTransport) -> None:
        message = transport._parse_line("/me !pause 5")
        assert message is not None
        assert message.from_me
        assert message.body.text == "!pause 5"

    def test_image_with_caption(self, transport: ConsoleTransport, tmp_path: Path) -> None:
        image = tmp_path / "receipt.jpg"
        image.write_bytes(b"\xff\xd8\xff")
        message = transport._parse_line(f"/image {image} paid already")
        assert message is not None
        assert message.body.kind is BodyKind.image
        assert message.body.data == b"\xff\xd8\xff"
        assert message.body.text == "paid already"

    def test_missing_image(
        self, transport: ConsoleTransport, output: StringIO, tmp_path: Path
    ) -> None:
        assert transport._parse_line(f"/image {tmp_path / 'nope.jpg'}") is None
        assert "not found" in output.getvalue()


class TestOutput:
    @pytest.mark.asyncio
    async def test_send_text_prints(self, transport: ConsoleTransport, output: StringIO) -> None:
        await transport.send_text(CONSOLE_SENDER, "Muraho!")
        assert "Muraho!" in output.getvalue()

    @pytest.mark.asyncio
    async def test_send_attachment_prints_url(
        self, transport: ConsoleTransport, output: StringIO
    ) -> None:
        await transport.send_attachment(CONSOLE_SENDER, Attachment(url="https://cdn.test/p.jpg"))
        assert "https://cdn.test/p.jpg" in output.getvalue()

    @pytest.mark.asyncio
    async def test_close_finishes(self, transport: ConsoleTransport) -> None:
        await transport.close()
        assert transport.finished.is_set()
