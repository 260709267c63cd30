# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/transports/websocket_transport.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

WebSocket Transport Implementation.
This module keeps one persistent, full-duplex connection to the execution
backend. It owns the connection state machine (connecting, open, closing,
closed), a heartbeat, and reconnection with exponential backoff. After a
bounded number of failed attempts it stays idle for a cooldown period and
shows a persistent "disconnected" notice.

Outbound frames are queued and written by a single writer task; inbound
frames are read by a single reader task and handed to the frame handler in
arrival order.
"""

# Standard
import asyncio
from collections import deque
import time
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set, TYPE_CHECKING

# Third-Party
import aiohttp
from pydantic import BaseModel

# First-Party
from scriptgateway.config import settings
from scriptgateway.errors import MalformedFrameError
from scriptgateway.models import ConnectionState
from scriptgateway.schemas import HeartbeatFrame
from scriptgateway.services.logging_service import LoggingService
from scriptgateway.services.notification_service import NotificationService
from scriptgateway.transports.base import BackendConnection, BackendConnector, decode_frame, encode_frame
from scriptgateway.utils.base_models import GatewayModel

# TYPE_CHECKING import to avoid circular dependency
if TYPE_CHECKING:
    from scriptgateway.transports.simulator import LocalExecutionSimulator

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

FrameHandler = Callable[[Dict[str, Any]], None]

LOST_CONNECTION_MESSAGE = "Lost connection to the execution backend. Trying to reconnect..."
DISCONNECTED_MESSAGE = "Disconnected from the execution backend. Reconnection is paused, please try again later."


class AiohttpConnection(BackendConnection):
    """``BackendConnection`` over an aiohttp client websocket."""

    def __init__(self, session: aiohttp.ClientSession, websocket: aiohttp.ClientWebSocketResponse):
        self._session = session
        self._websocket = websocket

    async def send_text(self, data: str) -> None:
        await self._websocket.send_str(data)

    async def receive_text(self) -> Optional[str]:
        while True:
            message = await self._websocket.receive()
            if message.type == aiohttp.WSMsgType.TEXT:
                return message.data
            if message.type == aiohttp.WSMsgType.BINARY:
                return message.data.decode("utf-8", errors="replace")
            if message.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return None
            if message.type == aiohttp.WSMsgType.ERROR:
                raise ConnectionError(f"Websocket error: {self._websocket.exception()}")

    async def close(self) -> None:
        try:
            if not self._websocket.closed:
                await self._websocket.close()
        finally:
            if not self._session.closed:
                await self._session.close()

    @property
    def closed(self) -> bool:
        return self._websocket.closed


class AiohttpConnector(BackendConnector):
    """Opens backend connections with ``aiohttp.ClientSession.ws_connect``.

    Examples:
        >>> connector = AiohttpConnector(max_msg_size=1024)
        >>> connector.max_msg_size
        1024
    """

    def __init__(self, max_msg_size: Optional[int] = None):
        # Leave headroom over the outbound limit; the backend may send larger output chunks
        self.max_msg_size = max_msg_size or settings.ws_max_message_size * 10

    async def connect(self, url: str) -> BackendConnection:
        session = aiohttp.ClientSession()
        try:
            websocket = await session.ws_connect(url, autoping=True, max_msg_size=self.max_msg_size)
        except BaseException:
            await session.close()
            raise
        return AiohttpConnection(session, websocket)


class ExecutionTransport:
    """Persistent connection to the execution backend.

    Examples:
        >>> transport = ExecutionTransport(url="ws://backend.invalid/ws")
        >>> transport.state
        <ConnectionState.CLOSED: 'closed'>
        >>> transport.send({"type": "heartbeat"})
        False
        >>> [ExecutionTransport.backoff_delay_ms(n) for n in (1, 2, 3, 4, 5, 6)]
        [2000, 4000, 8000, 16000, 30000, 30000]
    """

    def __init__(
        self,
        url: Optional[str] = None,
        connector: Optional[BackendConnector] = None,
        notifier: Optional[NotificationService] = None,
        frame_handler: Optional[FrameHandler] = None,
        *,
        max_reconnect_attempts: Optional[int] = None,
        reconnect_cooldown: Optional[float] = None,
        connection_timeout: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        max_message_size: Optional[int] = None,
        outbound_queue_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        fallback: Optional["LocalExecutionSimulator"] = None,
    ):
        """Initialize the transport.

        Args:
            url: Backend websocket endpoint.
            connector: Opens connections; defaults to ``AiohttpConnector``.
            notifier: Sink for the connection notices.
            frame_handler: Receives every decoded inbound frame.
            max_reconnect_attempts: Failed attempts before the cooldown starts.
            reconnect_cooldown: Seconds to stay idle after exhausting attempts.
            connection_timeout: Seconds allowed for the connection to open.
            heartbeat_interval: Seconds between heartbeats; 0 disables them.
            max_message_size: Largest serialised outbound frame in bytes.
            outbound_queue_size: Frames buffered before ``send`` reports backpressure.
            clock: Monotonic clock used for the cooldown.
            sleep: Coroutine used to wait out reconnect delays.
            fallback: Local simulator used by the dispatcher when sending fails.
        """
        self.url = url or settings.backend_ws_url
        self.max_reconnect_attempts = max_reconnect_attempts if max_reconnect_attempts is not None else settings.ws_reconnect_attempts
        self.reconnect_cooldown = reconnect_cooldown if reconnect_cooldown is not None else settings.ws_reconnect_cooldown
        self.connection_timeout = connection_timeout if connection_timeout is not None else settings.ws_connection_timeout
        self.heartbeat_interval = heartbeat_interval if heartbeat_interval is not None else settings.ws_heartbeat_interval
        self.max_message_size = max_message_size or settings.ws_max_message_size
        self.outbound_queue_size = outbound_queue_size or settings.ws_outbound_queue_size
        self.fallback = fallback

        self._connector = connector or AiohttpConnector()
        self._notifier = notifier or NotificationService()
        self._frame_handler = frame_handler
        self._clock = clock
        self._sleep = sleep

        self._state = ConnectionState.CLOSED
        self._connection: Optional[BackendConnection] = None
        self._outbound: Optional[asyncio.Queue] = None
        self._reconnect_attempts = 0
        self._cooldown_until: Optional[float] = None
        self._error_notified = False
        self._disconnected_notified = False
        self._stopped = False

        self._reader_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._background_tasks: Set[asyncio.Task] = set()

        # Recent reconnect delays, newest last
        self.backoff_history: Deque[int] = deque(maxlen=32)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        """Consecutive failed attempts since the last successful open."""
        return self._reconnect_attempts

    @property
    def in_cooldown(self) -> bool:
        """Whether reconnection is paused after exhausting attempts."""
        return self._cooldown_until is not None and self._clock() < self._cooldown_until

    @property
    def is_connected(self) -> bool:
        """Whether frames can currently be sent."""
        return self._state == ConnectionState.OPEN

    def set_frame_handler(self, handler: Optional[FrameHandler]) -> None:
        """Install the callback that receives decoded inbound frames."""
        self._frame_handler = handler

    @staticmethod
    def backoff_delay_ms(attempts: int, base_ms: Optional[int] = None, max_ms: Optional[int] = None) -> int:
        """Delay before the next reconnect attempt.

        Args:
            attempts: Failed attempts so far.
            base_ms: Base delay; defaults to ``settings.ws_backoff_base_ms``.
            max_ms: Upper bound; defaults to ``settings.ws_backoff_max_ms``.

        Returns:
            int: ``min(base_ms * 2**attempts, max_ms)``.
        """
        base_ms = base_ms or settings.ws_backoff_base_ms
        max_ms = max_ms or settings.ws_backoff_max_ms
        return int(min(base_ms * (2**attempts), max_ms))

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the connection unless it is open, opening, or cooling down.

        Once ``max_reconnect_attempts`` consecutive attempts have failed, the
        first call starts the cooldown and posts the persistent notice. Calls
        during the cooldown do nothing. The first call after it has elapsed
        resets the counter and tries again.
        """
        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            return
        self._stopped = False

        if self._reconnect_attempts >= self.max_reconnect_attempts:
            now = self._clock()
            if self._cooldown_until is None:
                self._cooldown_until = now + self.reconnect_cooldown
                logger.warning(f"Max reconnect attempts reached. Pausing reconnection for {self.reconnect_cooldown}s")
                if not self._disconnected_notified:
                    self._disconnected_notified = True
                    self._notifier.error(DISCONNECTED_MESSAGE, persistent=True)
                return
            if now < self._cooldown_until:
                logger.debug("Reconnect cooldown in effect; not connecting")
                return
            logger.info("Reconnect cooldown elapsed; retrying")
            self._reconnect_attempts = 0
            self._cooldown_until = None

        await self._connect()

    async def _connect(self) -> None:
        self._state = ConnectionState.CONNECTING
        try:
            connection = await asyncio.wait_for(self._connector.connect(self.url), timeout=self.connection_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Timed out connecting to execution backend after {self.connection_timeout}s")
            self._handle_error(e)
            self._handle_close()
            return
        except asyncio.CancelledError:
            self._state = ConnectionState.CLOSED
            raise
        except Exception as e:
            logger.error(f"Error connecting to execution backend: {e}")
            self._handle_error(e)
            self._handle_close()
            return

        if self._stopped:
            await connection.close()
            self._state = ConnectionState.CLOSED
            return
        self._handle_open(connection)

    def _handle_open(self, connection: BackendConnection) -> None:
        self._connection = connection
        self._state = ConnectionState.OPEN
        self._reconnect_attempts = 0
        self._cooldown_until = None
        self._error_notified = False
        if self._disconnected_notified:
            self._disconnected_notified = False
            self._notifier.info("Reconnected to the execution backend")

        self._outbound = asyncio.Queue(maxsize=self.outbound_queue_size)
        self._writer_task = asyncio.create_task(self._writer_loop(connection, self._outbound))
        self._reader_task = asyncio.create_task(self._reader_loop(connection))
        if self.heartbeat_interval > 0:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(f"Connected to execution backend at {self.url}")

    def _handle_error(self, error: BaseException) -> None:
        logger.debug(f"Backend connection error: {error!r}")
        if not self._error_notified:
            self._error_notified = True
            self._notifier.error(LOST_CONNECTION_MESSAGE)

    def _handle_close(self) -> None:
        self._state = ConnectionState.CLOSED
        self._connection = None
        for task in (self._heartbeat_task, self._writer_task):
            if task and not task.done() and task is not asyncio.current_task():
                task.cancel()
        self._heartbeat_task = None
        self._writer_task = None
        if self._outbound is not None and not self._outbound.empty():
            logger.warning(f"Dropping {self._outbound.qsize()} unsent frames")
        self._outbound = None

        if self._stopped:
            return

        self._reconnect_attempts += 1
        delay_ms = self.backoff_delay_ms(self._reconnect_attempts)
        self.backoff_history.append(delay_ms)
        logger.info(f"Backend connection closed. Reconnecting in {delay_ms}ms (attempt {self._reconnect_attempts})")
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay_ms))

    async def _reconnect_after(self, delay_ms: int) -> None:
        await self._sleep(delay_ms / 1000)
        if self._stopped:
            return
        await self.initialize()

    async def close(self) -> None:
        """Close the connection and stop reconnecting.

        Examples:
            >>> import asyncio
            >>> transport = ExecutionTransport(url="ws://backend.invalid/ws")
            >>> asyncio.run(transport.close())
            >>> transport.state
            <ConnectionState.CLOSED: 'closed'>
        """
        self._stopped = True
        connection = self._connection
        self._connection = None
        if connection is not None:
            self._state = ConnectionState.CLOSING

        tasks = [self._reconnect_task, self._heartbeat_task, self._writer_task, self._reader_task, *self._background_tasks]
        for task in tasks:
            if task and not task.done() and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.debug(f"Background task ended with error during close: {e}")
        self._reconnect_task = self._heartbeat_task = self._writer_task = self._reader_task = None
        self._background_tasks.clear()

        if connection is not None:
            try:
                await connection.close()
            except Exception as e:
                logger.warning(f"Error closing backend connection: {e}")
        self._outbound = None
        self._state = ConnectionState.CLOSED
        logger.info("Execution backend transport closed")

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send(self, message: Any) -> bool:
        """Queue one frame for the backend.

        Args:
            message: Frame dict or frame model; must carry a ``type``.

        Returns:
            bool: True if the frame was accepted for sending, False if it is
            malformed, too large, the connection is not open, or the
            outbound queue is full.
        """
        if isinstance(message, GatewayModel):
            message = message.to_wire()
        elif isinstance(message, BaseModel):
            message = message.model_dump(by_alias=True, exclude_none=True, mode="json")

        if not isinstance(message, dict) or not message.get("type"):
            logger.error("Invalid frame format: frames must be objects with a type")
            return False

        if self._state != ConnectionState.OPEN or self._outbound is None:
            logger.debug(f"Cannot send {message['type']} frame: connection is {self._state.value}")
            return False

        try:
            data = encode_frame(message)
        except MalformedFrameError as e:
            logger.error(f"Cannot send {message['type']} frame: {e}")
            return False

        if len(data) > self.max_message_size:
            logger.error(f"Frame too large: {len(data)} bytes exceeds {self.max_message_size}")
            return False

        try:
            self._outbound.put_nowait(data)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full; dropping {message['type']} frame")
            return False
        return True

    async def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every queued frame has been written.

        Args:
            timeout: Seconds to wait.

        Returns:
            bool: True if the queue drained in time (or nothing was queued).
        """
        queue = self._outbound
        if queue is None:
            return True
        try:
            await asyncio.wait_for(queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Outbound queue not drained after {timeout}s")
            return False
        return True

    async def _writer_loop(self, connection: BackendConnection, queue: asyncio.Queue) -> None:
        while True:
            data = await queue.get()
            try:
                await connection.send_text(data.decode("utf-8"))
            except asyncio.CancelledError:
                queue.task_done()
                raise
            except Exception as e:
                queue.task_done()
                logger.error(f"Error sending frame to execution backend: {e}")
                self._handle_error(e)
                # The reader observes the close and schedules the reconnect
                await connection.close()
                return
            queue.task_done()

    async def _heartbeat_loop(self) -> None:
        while self._state == ConnectionState.OPEN:
            await asyncio.sleep(self.heartbeat_interval)
            if self._state != ConnectionState.OPEN:
                break
            if not self.send(HeartbeatFrame()):
                logger.debug("Heartbeat not sent")

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    async def _reader_loop(self, connection: BackendConnection) -> None:
        try:
            while True:
                raw = await connection.receive_text()
                if raw is None:
                    break
                self._handle_raw_frame(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error receiving from execution backend: {e}")
            self._handle_error(e)

        if self._connection is not connection:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Error closing dropped connection: {e}")
        self._reader_task = None
        self._handle_close()

    def _handle_raw_frame(self, raw: Any) -> None:
        try:
            message = decode_frame(raw)
        except MalformedFrameError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            return

        if self._frame_handler is None:
            logger.debug(f"No frame handler installed; dropping {message.get('type')} frame")
            return
        try:
            self._frame_handler(message)
        except Exception as e:
            logger.error(f"Frame handler failed for {message.get('type')} frame: {e}")

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def start_fallback(self, script_id: str, parameters: Dict[str, Any]) -> bool:
        """Run a script on the local simulator in the background.

        Args:
            script_id: Script to simulate.
            parameters: Sanitised run parameters.

        Returns:
            bool: True if a simulator is configured and the run was started.
        """
        if self.fallback is None:
            return False
        task = asyncio.create_task(self.fallback.run(script_id, parameters))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return True
