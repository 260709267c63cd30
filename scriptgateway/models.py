# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/models.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Shared enumerations for the script gateway.

These are the leaves of the dependency graph: the wire protocol, the
transport and the subscription registry all import from here and nothing in
this module imports from the rest of the package.

Examples:
    >>> MessageType.EXECUTE_SCRIPT.value
    'execute_script'
    >>> ExecutionStatus.COMPLETED in TERMINAL_STATUSES
    True
    >>> ScriptClass.normalize("heavy")
    <ScriptClass.NGS: 'ngs'>
"""

# Standard
from enum import Enum


class LogLevel(str, Enum):
    """RFC 5424 severity levels used by the logging service."""

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"


class MessageType(str, Enum):
    """Frame types carried on the persistent backend connection."""

    HEARTBEAT = "heartbeat"
    LOG = "log"
    OUTPUT = "output"
    VISUALIZATION = "visualization"
    EXECUTION_STATUS = "execution_status"
    SECURITY_VIOLATION = "security_violation"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    EXECUTE_SCRIPT = "execute_script"
    CANCEL_SCRIPT = "cancel_script"


class ScriptLanguage(str, Enum):
    """Languages the gateway knows how to vet and bound."""

    PYTHON = "python"
    R = "r"
    JULIA = "julia"
    JAVASCRIPT = "javascript"
    BASH = "bash"


class ScriptClass(str, Enum):
    """Admission-control classes for the rate limiter."""

    DEFAULT = "default"
    LIGHTWEIGHT = "lightweight"
    NGS = "ngs"

    @classmethod
    def normalize(cls, value: "str | ScriptClass") -> "ScriptClass":
        """Map a class name (``heavy`` is an alias of ``ngs``) to the enum.

        Args:
            value: Class name or enum member.

        Returns:
            ScriptClass: The matching class.

        Raises:
            ValueError: If the name is unknown.
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "heavy":
            return cls.NGS
        return cls(name)


class ExecutionStatus(str, Enum):
    """Status values reported in ``execution_status`` frames."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SECURITY_VIOLATION = "security_violation"


TERMINAL_STATUSES = frozenset({ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.SECURITY_VIOLATION})


class LogFrameLevel(str, Enum):
    """Levels accepted in ``log`` frames."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ConnectionState(str, Enum):
    """Backend connection states."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class NotificationLevel(str, Enum):
    """Severity of a user-facing notification."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    ALERT = "alert"
