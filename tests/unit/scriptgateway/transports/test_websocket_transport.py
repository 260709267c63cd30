# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/transports/test_websocket_transport.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for the backend connection manager.

Tests cover:
- Opening, idempotent initialize and close
- Outbound checks (format, size, state, backpressure)
- Reconnection backoff, attempt cap and cooldown
- Connection timeout and the one-time error notice
- Heartbeats and inbound frame decoding
"""

# Standard
import asyncio

# Third-Party
import pytest

# First-Party
from scriptgateway.models import ConnectionState, NotificationLevel
from scriptgateway.schemas import SubscribeFrame
from scriptgateway.services.notification_service import NotificationService
from scriptgateway.transports.websocket_transport import DISCONNECTED_MESSAGE, ExecutionTransport, LOST_CONNECTION_MESSAGE

URL = "ws://backend.test/ws/scripts"


@pytest.fixture
def notifier():
    return NotificationService(history_size=50)


def make_transport(connector, notifier=None, **kwargs):
    kwargs.setdefault("heartbeat_interval", 0)
    kwargs.setdefault("max_reconnect_attempts", 5)
    kwargs.setdefault("reconnect_cooldown", 60.0)
    kwargs.setdefault("connection_timeout", 1.0)
    kwargs.setdefault("max_message_size", 100_000)
    return ExecutionTransport(url=URL, connector=connector, notifier=notifier or NotificationService(), **kwargs)


class TestLifecycle:
    """Opening and closing the connection."""

    @pytest.mark.asyncio
    async def test_initialize_opens_connection(self, connector):
        """A successful connect moves the state to open."""
        transport = make_transport(connector)

        await transport.initialize()

        assert transport.state == ConnectionState.OPEN
        assert transport.is_connected is True
        assert transport.reconnect_attempts == 0
        assert connector.calls == [URL]
        await transport.close()

    @pytest.mark.asyncio
    async def test_initialize_is_noop_when_open(self, connector):
        """A second initialize does not open another connection."""
        transport = make_transport(connector)

        await transport.initialize()
        await transport.initialize()

        assert len(connector.calls) == 1
        await transport.close()

    @pytest.mark.asyncio
    async def test_close_closes_connection_and_stops_sending(self, connector):
        """After close, frames are refused and the connection is closed."""
        transport = make_transport(connector)
        await transport.initialize()
        connection = connector.connection

        await transport.close()

        assert transport.state == ConnectionState.CLOSED
        assert connection.closed is True
        assert transport.send({"type": "heartbeat"}) is False

    @pytest.mark.asyncio
    async def test_close_cancels_pending_reconnect(self, make_connector):
        """Closing during backoff prevents further attempts."""
        connector = make_connector(always_fail=True)
        blocked = asyncio.Event()

        async def blocking_sleep(delay):
            await blocked.wait()

        transport = make_transport(connector, sleep=blocking_sleep)
        await transport.initialize()
        assert transport.reconnect_attempts == 1

        await transport.close()
        blocked.set()
        await asyncio.sleep(0)

        assert len(connector.calls) == 1
        assert transport.state == ConnectionState.CLOSED


class TestSend:
    """Outbound frame checks."""

    @pytest.mark.asyncio
    async def test_send_dict_frame(self, connector):
        """Accepted frames reach the connection as JSON."""
        transport = make_transport(connector)
        await transport.initialize()

        assert transport.send({"type": "subscribe", "scriptId": "s1"}) is True
        assert await transport.flush() is True

        assert connector.connection.sent_frames() == [{"type": "subscribe", "scriptId": "s1"}]
        await transport.close()

    @pytest.mark.asyncio
    async def test_send_model_frame_uses_wire_names(self, connector):
        """Frame models are serialised with camelCase keys."""
        transport = make_transport(connector)
        await transport.initialize()

        assert transport.send(SubscribeFrame(script_id="s1")) is True
        await transport.flush()

        assert connector.connection.sent_frames() == [{"type": "subscribe", "scriptId": "s1"}]
        await transport.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("frame", ["heartbeat", None, {}, {"scriptId": "s1"}, {"type": ""}])
    async def test_send_rejects_invalid_frames(self, connector, frame):
        """Non-objects and frames without a type are refused."""
        transport = make_transport(connector)
        await transport.initialize()

        assert transport.send(frame) is False
        await transport.close()

    @pytest.mark.asyncio
    async def test_send_rejects_oversized_frames(self, connector):
        """Frames larger than the limit are refused and never written."""
        transport = make_transport(connector, max_message_size=100_000)
        await transport.initialize()

        assert transport.send({"type": "execute_script", "scriptId": "s1", "parameters": {"blob": "x" * 100_001}}) is False
        assert transport.send({"type": "execute_script", "scriptId": "s1", "parameters": {"blob": "x" * 1000}}) is True
        await transport.flush()

        assert len(connector.connection.sent) == 1
        await transport.close()

    def test_send_when_not_open(self, connector):
        """Nothing is sent before the connection opens."""
        transport = make_transport(connector)

        assert transport.state == ConnectionState.CLOSED
        assert transport.send({"type": "heartbeat"}) is False

    @pytest.mark.asyncio
    async def test_send_reports_backpressure(self, connector):
        """A full outbound queue refuses further frames."""
        transport = make_transport(connector, outbound_queue_size=1)
        await transport.initialize()

        assert transport.send({"type": "heartbeat"}) is True
        assert transport.send({"type": "heartbeat"}) is False

        await transport.flush()
        assert transport.send({"type": "heartbeat"}) is True
        await transport.close()

    @pytest.mark.asyncio
    async def test_write_failure_notifies_and_reconnects(self, connector, notifier, recording_sleep, settle):
        """A failed write drops the connection and schedules a reconnect."""
        transport = make_transport(connector, notifier=notifier, sleep=recording_sleep)
        await transport.initialize()
        connector.connection.fail_send = True

        assert transport.send({"type": "heartbeat"}) is True
        await settle()

        assert [n.message for n in notifier.history] == [LOST_CONNECTION_MESSAGE]
        assert len(connector.connections) == 2
        assert transport.state == ConnectionState.OPEN
        await transport.close()


class TestReconnection:
    """Backoff, attempt cap and cooldown."""

    def test_backoff_delay_is_capped(self):
        """Delays double per attempt and never exceed 30 seconds."""
        assert [ExecutionTransport.backoff_delay_ms(n) for n in range(0, 8)] == [1000, 2000, 4000, 8000, 16000, 30000, 30000, 30000]

    @pytest.mark.asyncio
    async def test_unreachable_backend_exhausts_attempts(self, make_connector, notifier, recording_sleep, drain_reconnects):
        """Five failures back off 2, 4, 8, 16, 30 seconds then enter cooldown."""
        connector = make_connector(always_fail=True)
        transport = make_transport(connector, notifier=notifier, sleep=recording_sleep)

        await transport.initialize()
        await drain_reconnects(transport)

        assert len(connector.calls) == 5
        assert recording_sleep.delays == [2.0, 4.0, 8.0, 16.0, 30.0]
        assert list(transport.backoff_history) == [2000, 4000, 8000, 16000, 30000]
        assert transport.in_cooldown is True
        assert transport.state == ConnectionState.CLOSED

        errors = [n for n in notifier.history if n.level == NotificationLevel.ERROR]
        assert [n.message for n in errors] == [LOST_CONNECTION_MESSAGE, DISCONNECTED_MESSAGE]
        assert errors[0].persistent is False
        assert errors[1].persistent is True
        await transport.close()

    @pytest.mark.asyncio
    async def test_cooldown_blocks_attempts_until_elapsed(self, make_connector, notifier, recording_sleep, drain_reconnects):
        """No attempt is made during the cooldown; afterwards the counter resets."""
        now = [1000.0]
        connector = make_connector(always_fail=True)
        transport = make_transport(connector, notifier=notifier, sleep=recording_sleep, clock=lambda: now[0])

        await transport.initialize()
        await drain_reconnects(transport)
        assert len(connector.calls) == 5

        now[0] += 30
        await transport.initialize()
        assert len(connector.calls) == 5
        assert transport.in_cooldown is True

        now[0] += 31
        connector.always_fail = False
        await transport.initialize()

        assert len(connector.calls) == 6
        assert transport.state == ConnectionState.OPEN
        assert transport.reconnect_attempts == 0
        assert transport.in_cooldown is False
        assert notifier.history[-1].level == NotificationLevel.INFO
        await transport.close()

    @pytest.mark.asyncio
    async def test_reconnects_after_server_close(self, connector, recording_sleep, settle, drain_reconnects):
        """A dropped connection is reopened after the first backoff delay."""
        transport = make_transport(connector, sleep=recording_sleep)
        await transport.initialize()

        connector.connection.drop()
        await settle()
        await drain_reconnects(transport)

        assert recording_sleep.delays == [2.0]
        assert len(connector.connections) == 2
        assert transport.state == ConnectionState.OPEN
        assert transport.reconnect_attempts == 0
        await transport.close()

    @pytest.mark.asyncio
    async def test_error_notice_is_shown_once_per_outage(self, make_connector, notifier, recording_sleep, settle, drain_reconnects):
        """Two failures then success produce one notice; a later outage produces another."""
        connector = make_connector(failures=2)
        transport = make_transport(connector, notifier=notifier, sleep=recording_sleep)

        await transport.initialize()
        await drain_reconnects(transport)
        assert transport.state == ConnectionState.OPEN
        assert [n.message for n in notifier.history] == [LOST_CONNECTION_MESSAGE]

        connector.connection.fail_send = True
        transport.send({"type": "heartbeat"})
        await settle()
        await drain_reconnects(transport)

        assert [n.message for n in notifier.history] == [LOST_CONNECTION_MESSAGE, LOST_CONNECTION_MESSAGE]
        await transport.close()

    @pytest.mark.asyncio
    async def test_connection_timeout_counts_as_failure(self, make_connector, notifier):
        """A connect that never completes is abandoned after the timeout."""
        connector = make_connector(hang=True)
        transport = make_transport(connector, notifier=notifier, connection_timeout=0.01)

        await transport.initialize()

        assert transport.state == ConnectionState.CLOSED
        assert transport.reconnect_attempts == 1
        assert [n.message for n in notifier.history] == [LOST_CONNECTION_MESSAGE]
        await transport.close()


class TestInbound:
    """Heartbeats and inbound frames."""

    @pytest.mark.asyncio
    async def test_heartbeat_is_sent_periodically(self, connector):
        """An open connection sends heartbeat frames."""
        transport = make_transport(connector, heartbeat_interval=0.01)
        await transport.initialize()

        await asyncio.sleep(0.05)
        await transport.flush()

        assert {"type": "heartbeat"} in connector.connection.sent_frames()
        await transport.close()

    @pytest.mark.asyncio
    async def test_frames_are_handed_over_in_order(self, connector, settle):
        """Valid frames reach the handler in arrival order; malformed ones are dropped."""
        received = []
        transport = make_transport(connector, frame_handler=received.append)
        await transport.initialize()

        connection = connector.connection
        connection.feed({"type": "log", "scriptId": "s1", "level": "info", "message": "a"})
        connection.feed("{not json")
        connection.feed("[1, 2, 3]")
        connection.feed({"type": "output", "scriptId": "s1", "content": "b"})
        await settle()

        assert received == [
            {"type": "log", "scriptId": "s1", "level": "info", "message": "a"},
            {"type": "output", "scriptId": "s1", "content": "b"},
        ]
        assert transport.state == ConnectionState.OPEN
        await transport.close()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_reader(self, connector, settle):
        """A failing handler is logged and later frames still arrive."""
        received = []

        def handler(frame):
            if frame["type"] == "log":
                raise RuntimeError("boom")
            received.append(frame)

        transport = make_transport(connector, frame_handler=handler)
        await transport.initialize()
        connector.connection.feed({"type": "log", "scriptId": "s1", "level": "info", "message": "a"})
        connector.connection.feed({"type": "output", "scriptId": "s1", "content": "b"})
        await settle()

        assert received == [{"type": "output", "scriptId": "s1", "content": "b"}]
        await transport.close()

    def test_start_fallback_without_simulator(self, connector):
        """No simulator means no fallback run."""
        transport = make_transport(connector)

        assert transport.start_fallback("s1", {}) is False
