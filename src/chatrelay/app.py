"""Relay application — owns the stores, supervisor and pipeline for one process.

Usage:
    app = RelayApp.from_settings(settings, transport)
    await app.run()   # blocks until stop() or cancellation
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chatrelay.llm import create_ai_client
from chatrelay.relay.cache import ResponseCache
from chatrelay.relay.media import MediaStore
from chatrelay.relay.pipeline import MessagePipeline
from chatrelay.relay.session_store import SessionStore
from chatrelay.transport.supervisor import ConnectionSupervisor

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from chatrelay.config import Settings
    from chatrelay.llm.client import AIClient
    from chatrelay.transport.base import InboundMessage, Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RelayStatus:
    """Operator-facing snapshot."""

    connection: str
    reconnect_attempts: int
    pairing_pending: bool
    conversations: int
    cached_responses: int
    paused: list[tuple[str, float]] = field(default_factory=list)


class RelayApp:
    """Wires transport events to the message pipeline and runs the health tick."""

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        ai_client: AIClient,
        sessions: SessionStore | None = None,
        cache: ResponseCache | None = None,
        media: MediaStore | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport
        if sessions is None:
            sessions = SessionStore(
                history_cap=settings.session.history_cap,
                complex_history_cap=settings.session.complex_history_cap,
            )
        if cache is None:
            cache = ResponseCache(
                ttl=settings.cache.ttl_seconds,
                max_entries=settings.cache.max_entries,
            )
        self.sessions = sessions
        self.cache = cache
        self.pipeline = MessagePipeline(
            settings=settings,
            transport=transport,
            ai_client=ai_client,
            sessions=self.sessions,
            cache=self.cache,
            media=media,
        )
        self.supervisor = ConnectionSupervisor(
            transport=transport,
            config=settings.supervisor,
            on_message=self.on_message,
        )
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop_event = asyncio.Event()

    @classmethod
    def from_settings(cls, settings: Settings, transport: Transport) -> RelayApp:
        """Build the app with the configured AI client and media directory."""
        ai_client = create_ai_client(settings.ai, api_key=settings.ai_api_key)
        media = MediaStore(settings.transport.media_dir)
        return cls(settings, transport, ai_client, media=media)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self, until: Awaitable[object] | None = None) -> None:
        """Connect and serve until ``stop()``, ``until`` completes, or cancellation."""
        await self.supervisor.start()
        monitor = asyncio.create_task(self.supervisor.monitor(self.health_tick))
        waiters = [asyncio.ensure_future(self._stop_event.wait())]
        if until is not None:
            waiters.append(asyncio.ensure_future(until))
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            monitor.cancel()
            await asyncio.gather(monitor, *waiters, return_exceptions=True)
            await self.supervisor.stop()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    def stop(self) -> None:
        self._stop_event.set()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def on_message(self, message: InboundMessage) -> None:
        """Dispatch an inbound message to the pipeline on its own task."""
        if message.is_group:
            return
        task = asyncio.create_task(self.pipeline.handle(message))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled error in message task", exc_info=exc)

    def health_tick(self) -> None:
        """Periodic housekeeping shared with the liveness report."""
        swept = self.sessions.sweep_paused()
        evicted = 0
        idle_ttl = self.settings.session.idle_ttl_seconds
        if idle_ttl > 0:
            evicted = self.sessions.evict_idle(idle_ttl)
        if swept or evicted:
            logger.info("Swept %d expired pauses, evicted %d idle conversations", swept, evicted)

    # ------------------------------------------------------------------
    # Operator surface
    # ------------------------------------------------------------------

    def status(self) -> RelayStatus:
        return RelayStatus(
            connection=self.supervisor.status.value,
            reconnect_attempts=self.supervisor.reconnect_attempts,
            pairing_pending=self.supervisor.pending_qr is not None,
            conversations=len(self.sessions),
            cached_responses=len(self.cache),
            paused=self.sessions.paused_conversations(),
        )

    async def reset_credentials(self) -> None:
        """Clear persisted transport credentials and reconnect to re-pair."""
        await self.transport.clear_credentials()
        logger.info("Transport credentials cleared; reconnecting for a new pairing")
        await self.supervisor.restart()
