# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/schemas.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Request, result and wire-frame schemas for the script gateway.

Outbound frames are built from these models and serialised with
``to_wire()`` (camelCase keys). Inbound frames are handled as plain dicts by
the subscription registry and delivered to subscribers unmodified.

Examples:
    >>> SubscribeFrame(script_id="s1").to_wire() == {"type": "subscribe", "scriptId": "s1"}
    True
    >>> ResourceLimits(timeout_seconds=60, memory_limit_mb=128, max_loop_iterations=10000).to_wire()
    {'timeoutSeconds': 60, 'memoryLimitMB': 128, 'maxLoopIterations': 10000}
    >>> is_valid_script_id("x" * 100), is_valid_script_id("x" * 101), is_valid_script_id("")
    (True, False, False)
"""

# Standard
from typing import Any, Dict, List, Literal, Optional

# Third-Party
from pydantic import ConfigDict, Field, field_validator

# First-Party
from scriptgateway.models import ExecutionStatus, LogFrameLevel, ScriptClass
from scriptgateway.utils.base_models import GatewayModel

SCRIPT_ID_MAX_LENGTH = 100


def is_valid_script_id(value: Any) -> bool:
    """Check that a script id is a string of 1..100 characters.

    Args:
        value: Candidate script id.

    Returns:
        bool: True when the id is safe to use as a routing key.
    """
    return isinstance(value, str) and 0 < len(value) <= SCRIPT_ID_MAX_LENGTH


# ---------------------------------------------------------------------------
# Validation and limits
# ---------------------------------------------------------------------------


class ValidationResult(GatewayModel):
    """Outcome of a static scan; valid iff ``issues`` is empty."""

    valid: bool
    issues: List[str] = Field(default_factory=list)


class ResourceLimits(GatewayModel):
    """Per-language resource ceiling."""

    timeout_seconds: int
    memory_limit_mb: int = Field(alias="memoryLimitMB")
    max_loop_iterations: int


class HeavyWorkloadLimits(GatewayModel):
    """Resource ceiling applied to heavy (NGS) workloads."""

    memory_mb: int = Field(alias="memoryMB")
    cpu_millicores: int
    disk_mb: int = Field(alias="diskMB")
    timeout_seconds: int


class NgsConfig(GatewayModel):
    """Sequencing-pipeline settings attached to heavy workload runs."""

    thread_count: int = 4
    reference_genome: str = "hg38"
    quality_threshold: int = 20


# ---------------------------------------------------------------------------
# Execution request / response
# ---------------------------------------------------------------------------


class ExecutionRequest(GatewayModel):
    """A single user-initiated run of a script. Immutable once built.

    Examples:
        >>> req = ExecutionRequest(scriptId="s1", parameters={"n": 3}, scriptClass="heavy")
        >>> req.script_id, req.script_class
        ('s1', 'ngs')
    """

    model_config = ConfigDict(frozen=True)

    script_id: str = Field(min_length=1, max_length=SCRIPT_ID_MAX_LENGTH)
    language: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    execution_limits: Optional[Dict[str, Any]] = None
    script_class: ScriptClass = ScriptClass.DEFAULT

    @field_validator("script_class", mode="before")
    @classmethod
    def _normalize_script_class(cls, value: Any) -> ScriptClass:
        return ScriptClass.normalize(value)

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value: Any) -> Any:
        return {} if value is None else value


class ExecutionResponse(GatewayModel):
    """Immediate acknowledgement returned by the dispatcher."""

    execution_id: str
    status: Literal["running"] = "running"
    start_time: str
    fallback: bool = False


# ---------------------------------------------------------------------------
# Wire frames
# ---------------------------------------------------------------------------


class HeartbeatFrame(GatewayModel):
    """Client liveness ping."""

    type: Literal["heartbeat"] = "heartbeat"


class ScriptFrame(GatewayModel):
    """Base class for frames routed by script id."""

    script_id: str = Field(min_length=1, max_length=SCRIPT_ID_MAX_LENGTH)


class SubscribeFrame(ScriptFrame):
    """Ask the backend to stream events for a script."""

    type: Literal["subscribe"] = "subscribe"


class UnsubscribeFrame(ScriptFrame):
    """Stop streaming events for a script."""

    type: Literal["unsubscribe"] = "unsubscribe"


class CancelScriptFrame(ScriptFrame):
    """Ask the backend to abort a running script."""

    type: Literal["cancel_script"] = "cancel_script"


class ExecuteScriptFrame(ScriptFrame):
    """Vetted, bounded execution request sent to the backend."""

    type: Literal["execute_script"] = "execute_script"
    parameters: Dict[str, Any] = Field(default_factory=dict)
    language: str
    execution_limits: Dict[str, Any]
    ngs_config: Optional[NgsConfig] = None


class LogFrame(ScriptFrame):
    """Log line emitted by a running script."""

    type: Literal["log"] = "log"
    level: LogFrameLevel
    message: str


class OutputFrame(ScriptFrame):
    """Append-only chunk of script output."""

    type: Literal["output"] = "output"
    content: str


class VisualizationFrame(ScriptFrame):
    """Chart or figure payload produced by a script."""

    type: Literal["visualization"] = "visualization"
    data: Any
    config: Optional[Dict[str, Any]] = None


class ExecutionStatusFrame(ScriptFrame):
    """Status transition of a run."""

    type: Literal["execution_status"] = "execution_status"
    status: ExecutionStatus
    execution_time: Optional[float] = None
    memory: Optional[float] = None
    cpu_usage: Optional[float] = None
    error: Optional[str] = None
    details: Optional[str] = None


class SecurityViolationFrame(ScriptFrame):
    """Backend report that a script breached the sandbox policy."""

    type: Literal["security_violation"] = "security_violation"
    details: Optional[str] = None
