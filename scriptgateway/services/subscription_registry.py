# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/subscription_registry.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Routing of inbound execution frames to per-script listeners.

One callback may be registered per script id; registering again replaces
the previous callback. Frames are delivered synchronously and in arrival
order, so the order in which the transport received ``log`` and ``output``
frames for a script is the order its listener sees them.
"""

# Standard
import itertools
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

# First-Party
from scriptgateway.models import ExecutionStatus, MessageType
from scriptgateway.schemas import is_valid_script_id, SubscribeFrame, UnsubscribeFrame
from scriptgateway.services.logging_service import LoggingService
from scriptgateway.services.notification_service import NotificationService

logger = LoggingService().get_logger(__name__)

FrameCallback = Callable[[Dict[str, Any]], None]
FrameSender = Callable[[Any], bool]
Unsubscribe = Callable[[], None]

_ROUTED_TYPES = frozenset({MessageType.LOG.value, MessageType.OUTPUT.value, MessageType.VISUALIZATION.value})


def _noop_unsubscribe() -> None:
    """Unsubscribe handle returned for rejected subscriptions."""


class SubscriptionRegistry:
    """Maps script ids to listeners and fans inbound frames out to them.

    Examples:
        >>> sent = []
        >>> registry = SubscriptionRegistry(send=lambda frame: sent.append(frame) or True)
        >>> received = []
        >>> unsubscribe = registry.subscribe("s1", received.append)
        >>> registry.dispatch({"type": "output", "scriptId": "s1", "content": "hi"})
        >>> received
        [{'type': 'output', 'scriptId': 's1', 'content': 'hi'}]
        >>> unsubscribe(); unsubscribe()
        >>> [frame.to_wire()["type"] for frame in sent]
        ['subscribe', 'unsubscribe']
    """

    def __init__(self, send: Optional[FrameSender] = None, notifier: Optional[NotificationService] = None):
        """Initialize the registry.

        Args:
            send: Best-effort frame sender (normally ``ExecutionTransport.send``).
            notifier: Sink for user-facing notices.
        """
        self._send = send
        self._notifier = notifier or NotificationService()
        # script id -> (registration token, wrapped callback)
        self._listeners: Dict[str, Tuple[int, FrameCallback]] = {}
        self._tokens = itertools.count(1)
        # script ids whose current run already produced its terminal notice
        self._terminal_notified: Set[str] = set()

    def bind_sender(self, send: FrameSender) -> None:
        """Attach the frame sender after construction."""
        self._send = send

    def has_subscriber(self, script_id: str) -> bool:
        """Check whether a listener is registered for a script."""
        return script_id in self._listeners

    def subscribed_ids(self) -> List[str]:
        """Script ids with an active listener."""
        return list(self._listeners)

    def begin_run(self, script_id: str) -> None:
        """Re-arm the terminal notification for a new run of a script."""
        self._terminal_notified.discard(script_id)

    def _send_best_effort(self, frame: Any) -> bool:
        if self._send is None:
            return False
        try:
            sent = self._send(frame)
        except Exception as e:
            logger.warning(f"Failed to send {frame.type} frame: {e}")
            return False
        if not sent:
            logger.debug(f"{frame.type} frame for {frame.script_id} not sent; connection unavailable")
        return bool(sent)

    @staticmethod
    def _wrap(callback: FrameCallback) -> FrameCallback:
        def secure_callback(data: Any) -> None:
            if not isinstance(data, dict) or not data.get("type"):
                logger.warning("Dropping frame without a type")
                return
            if data["type"] == MessageType.LOG.value and (not data.get("level") or not data.get("message")):
                logger.warning("Dropping log frame without level or message")
                return
            if data["type"] == MessageType.OUTPUT.value and data.get("content") is None:
                logger.warning("Dropping output frame without content")
                return
            callback(data)

        return secure_callback

    def subscribe(self, script_id: str, callback: FrameCallback) -> Unsubscribe:
        """Register the listener for a script, replacing any previous one.

        Args:
            script_id: Script identity, 1..100 characters.
            callback: Receives validated frames as dicts.

        Returns:
            Unsubscribe: Idempotent function removing this registration.
        """
        if not is_valid_script_id(script_id):
            logger.error("Invalid scriptId provided to subscribe")
            return _noop_unsubscribe

        token = next(self._tokens)
        if script_id in self._listeners:
            logger.debug(f"Replacing listener for script {script_id}")
        self._listeners[script_id] = (token, self._wrap(callback))
        self.begin_run(script_id)
        self._send_best_effort(SubscribeFrame(script_id=script_id))

        def unsubscribe() -> None:
            current = self._listeners.get(script_id)
            if current is None or current[0] != token:
                return
            del self._listeners[script_id]
            self._send_best_effort(UnsubscribeFrame(script_id=script_id))

        return unsubscribe

    def _deliver(self, message: Dict[str, Any]) -> None:
        entry = self._listeners.get(message.get("scriptId"))
        if entry is None:
            return
        try:
            entry[1](message)
        except Exception as e:
            logger.error(f"Listener for script {message.get('scriptId')} raised: {e}")

    def dispatch(self, message: Any) -> None:
        """Route one decoded inbound frame.

        Args:
            message: Frame dict as received from the backend.
        """
        if not isinstance(message, dict) or not message.get("type"):
            logger.warning("Invalid frame format: missing type")
            return

        frame_type = message["type"]
        if frame_type in _ROUTED_TYPES:
            if not message.get("scriptId"):
                logger.warning(f"Invalid frame: missing scriptId for type {frame_type}")
                return
            self._deliver(message)
        elif frame_type == MessageType.EXECUTION_STATUS.value:
            self._handle_execution_status(message)
        elif frame_type == MessageType.SECURITY_VIOLATION.value:
            self._handle_security_violation(message)
        else:
            logger.debug(f"Received frame of type: {frame_type}")

    def _handle_execution_status(self, message: Dict[str, Any]) -> None:
        script_id = message.get("scriptId")
        status = message.get("status")
        if not script_id or not status:
            logger.warning("Invalid execution status frame")
            return

        self._deliver(message)

        if status in (ExecutionStatus.COMPLETED.value, ExecutionStatus.FAILED.value):
            if script_id in self._terminal_notified:
                logger.debug(f"Terminal status {status} for script {script_id} already notified")
                return
            self._terminal_notified.add(script_id)
        elif status in (ExecutionStatus.QUEUED.value, ExecutionStatus.RUNNING.value):
            self.begin_run(script_id)

        if status == ExecutionStatus.COMPLETED.value:
            self._notifier.success(f"Script {script_id} execution completed", script_id=script_id)
        elif status == ExecutionStatus.FAILED.value:
            self._notifier.error(f"Script {script_id} execution failed: {message.get('error') or 'Unknown error'}", script_id=script_id)
        elif status == ExecutionStatus.SECURITY_VIOLATION.value:
            logger.error(f"Security violation in script execution: {message}")
            self._notifier.alert(f"Security violation detected: {message.get('details') or message.get('error') or 'Unknown security issue'}", script_id=script_id)

    def _handle_security_violation(self, message: Dict[str, Any]) -> None:
        logger.error(f"Security violation in script execution: {message}")
        self._notifier.alert(f"Security violation detected: {message.get('details') or 'Unknown security issue'}", script_id=message.get("scriptId"))
        if message.get("scriptId"):
            self._deliver(message)
