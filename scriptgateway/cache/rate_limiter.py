# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/cache/rate_limiter.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Rate Limiter Implementation for Script Executions.

This module provides admission control for execution requests. Each script
class (default, lightweight, ngs) owns a window with its own reset clock; in
that window every script id has a request counter. When the window expires
all counters of that class are cleared in bulk.
"""

# Standard
from dataclasses import dataclass, field
import threading
import time
from typing import Callable, Dict, Optional, Union

# First-Party
from scriptgateway.config import settings
from scriptgateway.models import ScriptClass
from scriptgateway.services.logging_service import LoggingService

logger = LoggingService().get_logger(__name__)


@dataclass
class RateWindow:
    """Mutable per-class window state."""

    max_requests: int
    reset_interval: float
    window_start: float
    counts: Dict[str, int] = field(default_factory=dict)


class ScriptRateLimiter:
    """Rate limiter for script execution requests.

    Implements a resetting window keyed by script id, with separate limits
    and separate reset clocks per script class. Calls are synchronous and
    never suspend; a lock guards the counters against re-entrant use from
    worker threads.

    Attributes:
        limits: ``{class: (max_requests, reset_interval_seconds)}``
        name: Name for logging purposes

    Examples:
        >>> now = [0.0]
        >>> limiter = ScriptRateLimiter(limits={"default": (2, 60)}, clock=lambda: now[0])
        >>> [limiter.check_limit("s1") for _ in range(3)]
        [True, True, False]
        >>> now[0] = 61.0
        >>> limiter.check_limit("s1")
        True
    """

    def __init__(
        self,
        limits: Optional[Dict[Union[str, ScriptClass], tuple]] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "script_rate_limiter",
    ):
        """Initialize rate limiter.

        Args:
            limits: Per-class ``(max_requests, window_seconds)``; defaults to settings
            clock: Monotonic time source in seconds
            name: Name for logging purposes
        """
        if limits is None:
            limits = {script_class: settings.rate_limit_for(script_class.value) for script_class in ScriptClass}
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._blocked_count = 0
        self._allowed_count = 0

        now = self._clock()
        self._windows: Dict[ScriptClass, RateWindow] = {}
        for script_class, (max_requests, window_seconds) in limits.items():
            self._windows[ScriptClass.normalize(script_class)] = RateWindow(max_requests=int(max_requests), reset_interval=float(window_seconds), window_start=now)

        summary = ", ".join(f"{c.value}={w.max_requests}/{w.reset_interval:g}s" for c, w in self._windows.items())
        logger.info(f"Initialized rate limiter '{name}' ({summary})")

    def _window(self, script_class: Union[str, ScriptClass]) -> RateWindow:
        try:
            return self._windows[ScriptClass.normalize(script_class)]
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown script class: {script_class}") from exc

    def _expire(self, window: RateWindow, now: float) -> None:
        if now - window.window_start > window.reset_interval:
            window.counts.clear()
            window.window_start = now

    def check_limit(self, script_id: str, script_class: Union[str, ScriptClass] = ScriptClass.DEFAULT) -> bool:
        """Admit or reject one execution request.

        Args:
            script_id: Script identity used as the counter key
            script_class: Admission class of the script

        Returns:
            True if the request is admitted (and counted), False if the class
            limit for this script is already reached

        Raises:
            ValueError: If the script class is unknown
        """
        window = self._window(script_class)
        with self._lock:
            now = self._clock()
            self._expire(window, now)

            current = window.counts.get(script_id, 0)
            if current >= window.max_requests:
                self._blocked_count += 1
                logger.warning(f"Rate limiter '{self.name}' rejected script {script_id} " f"({current}/{window.max_requests} in current window)")
                return False

            window.counts[script_id] = current + 1
            self._allowed_count += 1
            return True

    def get_remaining_capacity(self, script_id: str, script_class: Union[str, ScriptClass] = ScriptClass.DEFAULT) -> int:
        """Get remaining admissions for a script in its current window.

        Args:
            script_id: Script identity
            script_class: Admission class of the script

        Returns:
            Number of additional requests that would be admitted
        """
        window = self._window(script_class)
        with self._lock:
            self._expire(window, self._clock())
            return max(0, window.max_requests - window.counts.get(script_id, 0))

    def reset(self) -> None:
        """Reset the rate limiter, clearing all tracked requests."""
        with self._lock:
            now = self._clock()
            for window in self._windows.values():
                window.counts.clear()
                window.window_start = now
            self._blocked_count = 0
            self._allowed_count = 0
            logger.info(f"Rate limiter '{self.name}' reset")

    def get_stats(self) -> dict:
        """Get rate limiter statistics.

        Returns:
            Dictionary with current state and counters
        """
        with self._lock:
            total = self._allowed_count + self._blocked_count
            return {
                "name": self.name,
                "allowed_count": self._allowed_count,
                "blocked_count": self._blocked_count,
                "block_rate": self._blocked_count / total if total > 0 else 0,
                "classes": {
                    script_class.value: {
                        "max_requests": window.max_requests,
                        "reset_interval": window.reset_interval,
                        "tracked_scripts": len(window.counts),
                    }
                    for script_class, window in self._windows.items()
                },
            }
