"""In-memory per-conversation state: rolling history and pause records."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, TypeAlias

from chatrelay.relay.classifier import Tier

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

Role: TypeAlias = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class Turn:
    """One message exchanged in a conversation."""

    role: Role
    text: str
    has_attachment: bool = False
    attachment_ref: str | None = None


@dataclass(slots=True)
class Conversation:
    """Rolling history for one sender."""

    conversation_id: str
    history: list[Turn] = field(default_factory=list)
    last_active: float = field(default_factory=time.time)


class SessionStore:
    """Owns conversation histories and pause records.

    Not thread-safe: all access happens on the single event loop.
    """

    def __init__(
        self,
        history_cap: int = 20,
        complex_history_cap: int = 40,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.history_cap = history_cap
        self.complex_history_cap = complex_history_cap
        self._clock = clock
        self._conversations: dict[str, Conversation] = {}
        self._paused: dict[str, float] = {}

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_or_create(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            conversation = Conversation(conversation_id, last_active=self._clock())
            self._conversations[conversation_id] = conversation
        return conversation

    def cap_for(self, tier: Tier) -> int:
        return self.complex_history_cap if tier is Tier.complex else self.history_cap

    def append_turn(self, conversation_id: str, turn: Turn, tier: Tier = Tier.simple) -> None:
        """Append a turn, then drop the oldest turns beyond the tier's cap."""
        conversation = self.get_or_create(conversation_id)
        conversation.history.append(turn)
        cap = self.cap_for(tier)
        if len(conversation.history) > cap:
            del conversation.history[: len(conversation.history) - cap]
        conversation.last_active = self._clock()

    def evict_idle(self, max_idle: float, now: float | None = None) -> int:
        """Forget conversations idle for longer than ``max_idle`` seconds."""
        now = self._clock() if now is None else now
        idle = [
            cid for cid, c in self._conversations.items() if now - c.last_active > max_idle
        ]
        for cid in idle:
            del self._conversations[cid]
        return len(idle)

    def __len__(self) -> int:
        return len(self._conversations)

    # ------------------------------------------------------------------
    # Pause records
    # ------------------------------------------------------------------

    def is_paused(self, conversation_id: str, now: float | None = None) -> bool:
        """True while the pause record's expiry is in the future.

        An expired record is deleted by this check.
        """
        expiry = self._paused.get(conversation_id)
        if expiry is None:
            return False
        now = self._clock() if now is None else now
        if expiry > now:
            return True
        del self._paused[conversation_id]
        return False

    def set_paused(self, conversation_id: str, duration: float) -> float:
        """Pause automated replies for ``duration`` seconds. Returns the expiry."""
        expiry = self._clock() + duration
        self._paused[conversation_id] = expiry
        logger.info("Conversation %s paused for %.0fs", conversation_id, duration)
        return expiry

    def clear_paused(self, conversation_id: str) -> bool:
        removed = self._paused.pop(conversation_id, None) is not None
        if removed:
            logger.info("Conversation %s resumed", conversation_id)
        return removed

    def sweep_paused(self, now: float | None = None) -> int:
        """Remove every expired pause record."""
        now = self._clock() if now is None else now
        expired = [cid for cid, expiry in self._paused.items() if expiry <= now]
        for cid in expired:
            del self._paused[cid]
        return len(expired)

    def paused_conversations(self, now: float | None = None) -> list[tuple[str, float]]:
        """Live pauses as (conversation_id, remaining_seconds), soonest first."""
        now = self._clock() if now is None else now
        live = [(cid, expiry - now) for cid, expiry in self._paused.items() if expiry > now]
        return sorted(live, key=lambda item: item[1])
