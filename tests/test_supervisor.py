"""Tests for ConnectionSupervisor — state machine and reconnect backoff."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatrelay.config import SupervisorConfig
from chatrelay.transport.base import BodyKind, InboundMessage, MessageBody
from chatrelay.transport.supervisor import ConnectionStatus, ConnectionSupervisor


def _transport() -> MagicMock:
    transport = MagicMock()
    transport.connect = AsyncMock()
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def transport() -> MagicMock:
    return _transport()


@pytest.fixture
def handler() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def supervisor(transport: MagicMock, handler: AsyncMock) -> ConnectionSupervisor:
    return ConnectionSupervisor(transport, SupervisorConfig(), on_message=handler)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_connects_with_itself_as_listener(
        self, supervisor: ConnectionSupervisor, transport: MagicMock
    ) -> None:
        await supervisor.start()
        transport.connect.assert_awaited_once_with(supervisor)
        assert supervisor.status is ConnectionStatus.connecting

    @pytest.mark.asyncio
    async def test_open_marks_connected(self, supervisor: ConnectionSupervisor) -> None:
        await supervisor.on_qr("2@abc")
        assert supervisor.pending_qr == "2@abc"
        await supervisor.on_open()
        assert supervisor.status is ConnectionStatus.connected
        assert supervisor.pending_qr is None

    @pytest.mark.asyncio
    async def test_open_resets_attempts(self, supervisor: ConnectionSupervisor) -> None:
        for _ in range(3):
            await supervisor.on_close("stream error", retryable=True)
        assert supervisor.reconnect_attempts == 3
        await supervisor.on_open()
        assert supervisor.reconnect_attempts == 0
        await supervisor.stop()

    @pytest.mark.asyncio
    async def test_stop(self, supervisor: ConnectionSupervisor, transport: MagicMock) -> None:
        await supervisor.on_open()
        await supervisor.stop()
        transport.close.assert_awaited_once()
        assert supervisor.status is ConnectionStatus.disconnected
        assert supervisor.handle_close("closed", retryable=True) is None
        assert supervisor.reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_forwards_messages(
        self, supervisor: ConnectionSupervisor, handler: AsyncMock
    ) -> None:
        message = InboundMessage("a@s", MessageBody(kind=BodyKind.text, text="hi"))
        await supervisor.on_message(message)
        handler.assert_awaited_once_with(message)


class TestBackoff:
    @pytest.mark.asyncio
    async def test_first_close_schedules_short_delay(
        self, supervisor: ConnectionSupervisor
    ) -> None:
        delay = supervisor.handle_close("connection lost", retryable=True)
        assert delay == 5.0
        assert supervisor.reconnect_attempts == 1
        assert supervisor.status is ConnectionStatus.connecting
        await supervisor.stop()

    @pytest.mark.asyncio
    async def test_long_delay_after_fifty_attempts(
        self, supervisor: ConnectionSupervisor
    ) -> None:
        delays = [supervisor.handle_close("lost", retryable=True) for _ in range(51)]
        assert delays[49] == 5.0
        assert delays[50] == 60.0
        assert supervisor.reconnect_attempts == 51
        await supervisor.stop()

    @pytest.mark.asyncio
    async def test_logged_out_does_not_reconnect(
        self, supervisor: ConnectionSupervisor, transport: MagicMock
    ) -> None:
        await supervisor.start()
        assert supervisor.handle_close("logged out", retryable=False) is None
        assert supervisor.status is ConnectionStatus.logged_out

        await supervisor.start()
        assert transport.connect.await_count == 1

    @pytest.mark.asyncio
    async def test_restart_leaves_logged_out(
        self, supervisor: ConnectionSupervisor, transport: MagicMock
    ) -> None:
        await supervisor.on_close("logged out", retryable=False)
        await supervisor.restart()
        assert supervisor.status is ConnectionStatus.connecting
        transport.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_counts_as_retryable_close(
        self, supervisor: ConnectionSupervisor, transport: MagicMock
    ) -> None:
        transport.connect.side_effect = OSError("network unreachable")
        await supervisor.start()
        assert supervisor.reconnect_attempts == 1
        assert supervisor.status is ConnectionStatus.connecting
        await supervisor.stop()

    @pytest.mark.asyncio
    async def test_reconnect_fires_after_delay(self, handler: AsyncMock) -> None:
        transport = _transport()
        config = SupervisorConfig(short_delay_seconds=0.01)
        supervisor = ConnectionSupervisor(transport, config, on_message=handler)

        await supervisor.on_close("lost", retryable=True)
        await asyncio.sleep(0.1)

        transport.connect.assert_awaited_once_with(supervisor)
        await supervisor.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_reconnect(self, handler: AsyncMock) -> None:
        transport = _transport()
        config = SupervisorConfig(short_delay_seconds=0.05)
        supervisor = ConnectionSupervisor(transport, config, on_message=handler)

        await supervisor.on_close("lost", retryable=True)
        await supervisor.stop()
        await asyncio.sleep(0.1)

        transport.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_after_logout_stays_logged_out(self, handler: AsyncMock) -> None:
        transport = _transport()
        config = SupervisorConfig(short_delay_seconds=0.01)
        supervisor = ConnectionSupervisor(transport, config, on_message=handler)

        await supervisor.on_close("logged out", retryable=False)
        assert supervisor.handle_close("stream end", retryable=True) is None
        await asyncio.sleep(0.05)

        assert supervisor.status is ConnectionStatus.logged_out
        assert supervisor.reconnect_attempts == 0
        transport.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_reconnect(self, handler: AsyncMock) -> None:
        cancelled = asyncio.Event()

        async def hang(listener: object) -> None:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        transport = _transport()
        transport.connect = AsyncMock(side_effect=hang)
        config = SupervisorConfig(short_delay_seconds=0.01)
        supervisor = ConnectionSupervisor(transport, config, on_message=handler)

        await supervisor.on_close("lost", retryable=True)
        await asyncio.sleep(0.05)
        transport.connect.assert_called_once()

        await supervisor.stop()

        assert cancelled.is_set()
        assert supervisor.status is ConnectionStatus.disconnected


class TestMonitor:
    @pytest.mark.asyncio
    async def test_runs_tick_and_survives_errors(self, transport: MagicMock) -> None:
        config = SupervisorConfig(health_interval_seconds=0.01)
        supervisor = ConnectionSupervisor(transport, config, on_message=AsyncMock())
        tick = MagicMock(side_effect=RuntimeError("boom"))

        task = asyncio.create_task(supervisor.monitor(tick))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert tick.call_count >= 2
