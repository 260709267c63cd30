# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/errors.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Exceptions raised by the script gateway.

Examples:
    >>> err = ValidationFailedError(["Script is empty"])
    >>> str(err)
    'Script validation failed: Script is empty'
    >>> isinstance(RateLimitExceededError(), GatewayError)
    True
"""

# Standard
from typing import List, Optional


class GatewayError(Exception):
    """Base class for script gateway errors."""


class ValidationFailedError(GatewayError):
    """Raised when a static scan finds disallowed content."""

    def __init__(self, issues: List[str]):
        self.issues = list(issues)
        super().__init__(f"Script validation failed: {'; '.join(self.issues)}")


class RateLimitExceededError(GatewayError):
    """Raised when admission control rejects an execution request."""

    def __init__(self, message: str = "Rate limit exceeded for script execution", script_id: Optional[str] = None, script_class: Optional[str] = None):
        self.script_id = script_id
        self.script_class = script_class
        super().__init__(message)


class TransportUnavailableError(GatewayError):
    """Raised when a frame that must be delivered cannot be sent."""


class MalformedFrameError(GatewayError):
    """Raised when an inbound frame cannot be decoded into a message object."""
