# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/notification_service.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

User-facing notifications.

The gateway never renders anything itself. Completion notices, failures,
security alerts and the "disconnected" indicator are published here and a UI
(or the CLI) consumes them, either through registered sink callbacks or by
iterating ``subscribe()``.
"""

# Standard
import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncGenerator, Callable, Deque, List, Optional

# First-Party
from scriptgateway.config import settings
from scriptgateway.models import NotificationLevel
from scriptgateway.services.logging_service import LoggingService

logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    """One user-visible notice.

    ``persistent`` notices stay on screen until the condition clears (for
    example the disconnected indicator) instead of fading like a toast.
    """

    level: NotificationLevel
    message: str
    script_id: Optional[str] = None
    persistent: bool = False
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


NotificationSink = Callable[[Notification], None]


class NotificationService:
    """Fan-out of user notifications to sinks and async subscribers.

    Examples:
        >>> service = NotificationService()
        >>> seen = []
        >>> service.add_sink(seen.append)
        >>> _ = service.success("Script s1 execution completed", script_id="s1")
        >>> [n.message for n in seen]
        ['Script s1 execution completed']
        >>> service.count(NotificationLevel.SUCCESS)
        1
    """

    def __init__(self, history_size: Optional[int] = None):
        self._history: Deque[Notification] = deque(maxlen=history_size or settings.notification_history_size)
        self._sinks: List[NotificationSink] = []
        self._subscribers: List[asyncio.Queue] = []

    @property
    def history(self) -> List[Notification]:
        """Notifications published so far, oldest first."""
        return list(self._history)

    def count(self, level: Optional[NotificationLevel] = None) -> int:
        """Count notifications in the history, optionally by level."""
        if level is None:
            return len(self._history)
        return sum(1 for notification in self._history if notification.level == level)

    def add_sink(self, sink: NotificationSink) -> None:
        """Register a synchronous callback for every notification."""
        self._sinks.append(sink)

    def remove_sink(self, sink: NotificationSink) -> None:
        """Unregister a sink; unknown sinks are ignored."""
        if sink in self._sinks:
            self._sinks.remove(sink)

    def publish(self, level: NotificationLevel, message: str, script_id: Optional[str] = None, persistent: bool = False) -> Notification:
        """Publish a notification to history, sinks and subscribers.

        Args:
            level: Severity of the notice.
            message: Text shown to the user.
            script_id: Script the notice refers to, if any.
            persistent: Whether the notice should stay visible.

        Returns:
            Notification: The published notification.
        """
        notification = Notification(level=NotificationLevel(level), message=message, script_id=script_id, persistent=persistent)
        self._history.append(notification)

        if notification.level in (NotificationLevel.ERROR, NotificationLevel.ALERT):
            logger.warning(f"User notification [{notification.level.value}]: {message}")
        else:
            logger.info(f"User notification [{notification.level.value}]: {message}")

        for sink in list(self._sinks):
            try:
                sink(notification)
            except Exception as e:
                logger.error(f"Notification sink failed: {e}")

        for queue in self._subscribers:
            queue.put_nowait(notification)
        return notification

    def info(self, message: str, script_id: Optional[str] = None, persistent: bool = False) -> Notification:
        """Publish an informational notice."""
        return self.publish(NotificationLevel.INFO, message, script_id, persistent)

    def success(self, message: str, script_id: Optional[str] = None) -> Notification:
        """Publish a success notice."""
        return self.publish(NotificationLevel.SUCCESS, message, script_id)

    def error(self, message: str, script_id: Optional[str] = None, persistent: bool = False) -> Notification:
        """Publish an error notice."""
        return self.publish(NotificationLevel.ERROR, message, script_id, persistent)

    def alert(self, message: str, script_id: Optional[str] = None) -> Notification:
        """Publish a blocking alert; alerts are always persistent."""
        return self.publish(NotificationLevel.ALERT, message, script_id, persistent=True)

    async def subscribe(self) -> AsyncGenerator[Notification, None]:
        """Subscribe to notifications.

        Yields:
            Notification: Each notification published after subscribing.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(queue)
