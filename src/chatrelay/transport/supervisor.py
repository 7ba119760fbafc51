"""Connection supervisor — keeps a transport session alive.

State machine:
    disconnected → connecting → connected → (close) → connecting → ...
    any state → logged_out   (credentials revoked; no automatic reconnect)

Reconnects are scheduled with ``loop.call_later`` so a pending retry never
blocks message handling for other conversations.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chatrelay.config import SupervisorConfig
    from chatrelay.transport.base import InboundMessage, Transport

logger = logging.getLogger(__name__)

MessageHandler: TypeAlias = "Callable[[InboundMessage], Awaitable[None]]"


class ConnectionStatus(Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"
    logged_out = "logged_out"


class ConnectionSupervisor:
    """Drives a ``Transport`` through its lifecycle and applies backoff.

    Acts as the transport's listener: lifecycle events update the state
    machine, inbound messages are forwarded to ``on_message``.
    """

    def __init__(
        self,
        transport: Transport,
        config: SupervisorConfig,
        on_message: MessageHandler,
    ) -> None:
        self._transport = transport
        self._config = config
        self._on_message = on_message
        self.status = ConnectionStatus.disconnected
        self.reconnect_attempts = 0
        self.pending_qr: str | None = None
        self._stopped = False
        self._timer: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the first session."""
        self._stopped = False
        await self._connect()

    async def restart(self) -> None:
        """Leave ``logged_out`` after credentials were re-provisioned."""
        self._cancel_timer()
        self.status = ConnectionStatus.disconnected
        self.reconnect_attempts = 0
        await self.start()

    async def stop(self) -> None:
        """Stop reconnecting and close the transport."""
        self._stopped = True
        self._cancel_timer()
        await self._cancel_reconnect()
        try:
            await self._transport.close()
        finally:
            if self.status is not ConnectionStatus.logged_out:
                self.status = ConnectionStatus.disconnected
        logger.info("Connection supervisor stopped")

    def next_delay(self) -> float:
        """Backoff delay for the current attempt count."""
        if self.reconnect_attempts <= self._config.short_delay_max_attempts:
            return self._config.short_delay_seconds
        return self._config.long_delay_seconds

    # ------------------------------------------------------------------
    # TransportListener
    # ------------------------------------------------------------------

    async def on_qr(self, code: str) -> None:
        self.pending_qr = code
        logger.info("Pairing challenge received — scan the QR code to link the account")

    async def on_open(self) -> None:
        self.status = ConnectionStatus.connected
        self.reconnect_attempts = 0
        self.pending_qr = None
        logger.info("Transport connected")

    async def on_close(self, reason: str, retryable: bool) -> None:
        self.handle_close(reason, retryable)

    def handle_close(self, reason: str, retryable: bool) -> float | None:
        """Apply a closed session to the state machine.

        Returns the scheduled reconnect delay, or None when no reconnect is
        scheduled. ``logged_out`` is only left through ``restart()``.
        """
        self.pending_qr = None

        if self.status is ConnectionStatus.logged_out:
            logger.debug("Ignoring close (%s) after logout", reason)
            return None

        if self._stopped:
            self.status = ConnectionStatus.disconnected
            return None

        if not retryable:
            self._cancel_timer()
            self.status = ConnectionStatus.logged_out
            logger.warning(
                "Transport logged out (%s). Clear credentials and restart to re-pair.", reason
            )
            return None

        self.reconnect_attempts += 1
        delay = self.next_delay()
        self.status = ConnectionStatus.connecting
        logger.warning(
            "Connection closed (%s); reconnect attempt %d in %.0fs",
            reason,
            self.reconnect_attempts,
            delay,
        )
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._spawn_reconnect)
        return delay

    async def on_message(self, message: InboundMessage) -> None:
        await self._on_message(message)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def monitor(self, on_tick: Callable[[], None] | None = None) -> None:
        """Log liveness every health interval and run ``on_tick``. Blocks until cancelled."""
        while True:
            await asyncio.sleep(self._config.health_interval_seconds)
            logger.info(
                "Health: status=%s reconnect_attempts=%d",
                self.status.value,
                self.reconnect_attempts,
            )
            if on_tick is None:
                continue
            try:
                on_tick()
            except Exception:
                logger.exception("Health tick failed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _connect(self) -> None:
        if self._stopped or self.status is ConnectionStatus.logged_out:
            return
        self.status = ConnectionStatus.connecting
        try:
            await self._transport.connect(self)
        except Exception as e:
            logger.exception("Transport connect failed")
            self.handle_close(str(e) or type(e).__name__, retryable=True)

    def _spawn_reconnect(self) -> None:
        self._timer = None
        self._reconnect_task = asyncio.get_running_loop().create_task(self._connect())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
