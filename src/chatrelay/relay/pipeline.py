"""Message pipeline — per-message triage, caching and AI dispatch.

For each inbound message:
    control command → pause check → classify → instant reply
    → cache lookup → AI call → directive handling → cache/session update

At most one text reply (plus at most one attachment) goes out per message.
AI or send failures produce a fixed apology and leave cache and assistant
history untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from chatrelay.llm.client import AIMessage, Instructions, SenderMeta
from chatrelay.relay.cache import cache_key
from chatrelay.relay.classifier import MessageClassifier, Tier
from chatrelay.relay.commands import CommandAction, parse_control
from chatrelay.relay.content import extract_content
from chatrelay.relay.formatter import extract_directive, format_output
from chatrelay.relay.sanitize import FLAG_INJECTION, FLAG_TRUNCATED, sanitize_text
from chatrelay.relay.session_store import Turn
from chatrelay.transport.base import Attachment

if TYPE_CHECKING:
    from chatrelay.config import Settings
    from chatrelay.llm.client import AIClient
    from chatrelay.relay.cache import ResponseCache
    from chatrelay.relay.commands import ControlCommand
    from chatrelay.relay.content import ExtractedContent
    from chatrelay.relay.media import MediaStore
    from chatrelay.relay.session_store import SessionStore
    from chatrelay.transport.base import InboundMessage, Presence, Transport

logger = logging.getLogger(__name__)

STYLE_HINT = """\
IMPORTANT STYLE RULES FOR WHATSAPP:
- Reply like a friendly local, mixing Kinyarwanda and English naturally
- Keep it SHORT: one or two sentences
- Be friendly and direct, no formal language
- For transfers give the numbers quickly and skip long explanations
"""

COMPLEX_HINT = """\
TRANSACTION MODE:
- The user is asking about a transfer, payment, or its status
- Use the full conversation history; confirm amounts, currencies and recipient
- Never invent a transaction id or status; ask for the reference if it is missing
- To share a payment proof image, include [[PROOF_IMAGE:<url>]] once in the reply
"""

IMAGE_HINT = (
    '\nNote: User sent an image. If it is a payment screenshot, say "Nabonye screenshot! ✅"'
    " and confirm."
)

ATTACHMENT_MARKER = " [contains image]"


class MessagePipeline:
    """Orchestrates classifier, cache, session store and AI client per message."""

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        ai_client: AIClient,
        sessions: SessionStore,
        cache: ResponseCache,
        media: MediaStore | None = None,
        classifier: MessageClassifier | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._ai = ai_client
        self._sessions = sessions
        self._cache = cache
        self._media = media
        self._classifier = classifier or MessageClassifier()

    async def handle(self, message: InboundMessage) -> None:
        """Process one inbound message end to end."""
        sender = message.sender_id
        content = extract_content(message.body)
        cleaned = sanitize_text(content.text)
        text = cleaned.text
        content = replace(content, text=text)
        if cleaned.had_directive:
            logger.warning("Removed forged reply directive from %s", sender)
        if FLAG_INJECTION in cleaned.flags:
            logger.warning("Possible prompt injection from %s", sender)
        if FLAG_TRUNCATED in cleaned.flags:
            logger.info("Message from %s truncated to %d chars", sender, len(text))

        command = parse_control(text, from_me=message.from_me, config=self.settings.pause)
        if command is not None:
            await self._apply_control(sender, command)
            return

        # Own-account messages are operator replies, not customer input
        if message.from_me:
            return

        if self._sessions.is_paused(sender):
            logger.debug("Dropping message from paused conversation %s", sender)
            return

        if not text and content.attachment is None:
            return

        await self._presence(sender, "composing")
        try:
            await self._respond(message, text, content)
        except Exception:
            logger.exception("Failed to answer message from %s", sender)
            await self._send_apology(sender)
        finally:
            await self._presence(sender, "paused")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _respond(
        self, message: InboundMessage, text: str, content: ExtractedContent
    ) -> None:
        sender = message.sender_id
        attachment = content.attachment
        classification = self._classifier.classify(text)
        tier = classification.tier
        logger.info("Message from %s classified as %s", sender, tier.value)

        if tier is Tier.instant and attachment is None:
            reply = classification.instant_reply or ""
            self._record_exchange(sender, text, reply, tier)
            await self._transport.send_text(sender, reply)
            return

        key = cache_key(text) if attachment is None else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Cache hit for %s", key)
                self._record_exchange(sender, text, cached, tier)
                await self._send_formatted(sender, cached)
                return

        attachment_ref = await self._persist_attachment(content)
        self._sessions.append_turn(
            sender,
            Turn(
                role="user",
                text=content.turn_text(),
                has_attachment=attachment is not None,
                attachment_ref=attachment_ref,
            ),
            tier,
        )

        history = self._sessions.get_or_create(sender).history
        current_image = attachment.data_url() if attachment is not None else None
        response = await self._ai.complete(
            self._build_messages(history, current_image),
            self._instructions(tier, has_attachment=attachment is not None),
            self._sender_meta(message),
        )

        remaining, proof_url = extract_directive(response)
        if proof_url is not None:
            if format_output(remaining):
                await self._send_formatted(sender, remaining)
            await self._send_proof(sender, proof_url)
        else:
            await self._send_formatted(sender, response)

        if key is not None:
            self._cache.set(key, response)

        self._sessions.append_turn(sender, Turn(role="assistant", text=response), tier)

    async def _apply_control(self, sender: str, command: ControlCommand) -> None:
        action = command.action
        if action is CommandAction.unrecognized:
            logger.warning("Dropping unrecognized control command from %s", sender)
            return

        if action is CommandAction.toggle:
            paused = self._sessions.is_paused(sender)
            action = CommandAction.resume if paused else CommandAction.pause

        if action is CommandAction.resume:
            self._sessions.clear_paused(sender)
            await self._transport.send_text(sender, "▶️ Bot resumed for this chat.")
            return

        minutes = command.minutes or self.settings.pause.default_minutes
        self._sessions.set_paused(sender, minutes * 60)
        await self._transport.send_text(
            sender, f"⏸️ Bot paused for {minutes} min in this chat."
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record_exchange(self, sender: str, text: str, reply: str, tier: Tier) -> None:
        self._sessions.append_turn(sender, Turn(role="user", text=text), tier)
        self._sessions.append_turn(sender, Turn(role="assistant", text=reply), tier)

    def _build_messages(self, history: list[Turn], current_image: str | None) -> list[AIMessage]:
        """Convert history to AI messages; only the newest turn carries image data."""
        messages: list[AIMessage] = []
        last = len(history) - 1
        for i, turn in enumerate(history):
            if i == last and turn.role == "user" and current_image:
                messages.append(AIMessage(role="user", content=turn.text, images=(current_image,)))
                continue
            content = turn.text
            if turn.role == "user" and turn.has_attachment:
                content += ATTACHMENT_MARKER
            messages.append(AIMessage(role=turn.role, content=content))
        return messages

    def _instructions(self, tier: Tier, *, has_attachment: bool) -> Instructions:
        hint = STYLE_HINT
        if tier is Tier.complex:
            hint += "\n" + COMPLEX_HINT
        if has_attachment:
            hint += IMAGE_HINT
        return Instructions(system_hint=hint, mode=self.settings.ai.mode)

    def _sender_meta(self, message: InboundMessage) -> SenderMeta:
        local_part = message.sender_id.split("@", 1)[0]
        return SenderMeta(
            user_id=f"{self.settings.ai.user_id_prefix}{message.sender_id}",
            phone=f"+{local_part}" if local_part.isdigit() else None,
            display_name=message.push_name or self.settings.ai.display_name,
        )

    async def _persist_attachment(self, content: ExtractedContent) -> str | None:
        attachment = content.attachment
        if self._media is None or attachment is None or not attachment.data:
            return None
        try:
            return await self._media.save(attachment.data, attachment.mime_type)
        except OSError as e:
            logger.warning("Could not save inbound media: %s", e)
            return None

    async def _send_formatted(self, sender: str, text: str) -> None:
        formatted = format_output(text)
        if not formatted:
            logger.warning("Reply to %s was empty after formatting; nothing sent", sender)
            return
        signature = self.settings.reply.signature
        if signature:
            formatted = f"{formatted}\n\n{signature}"
        await self._transport.send_text(sender, formatted)

    async def _send_proof(self, sender: str, url: str) -> None:
        try:
            await self._transport.send_attachment(sender, Attachment(url=url))
        except Exception as e:
            logger.warning("Proof image send failed for %s (%s); sending link instead", sender, e)
            await self._transport.send_text(sender, url)

    async def _send_apology(self, sender: str) -> None:
        try:
            await self._transport.send_text(sender, self.settings.reply.apology)
        except Exception:
            logger.exception("Could not send apology to %s", sender)

    async def _presence(self, sender: str, presence: Presence) -> None:
        try:
            await self._transport.send_presence(sender, presence)
        except Exception as e:
            logger.debug("Presence update %s failed for %s: %s", presence, sender, e)
