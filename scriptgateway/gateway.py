# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/gateway.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Script execution gateway.

``ExecutionGateway`` wires one of each component together: validator,
sanitizer, rate limiter, limit resolver, notification service, catalog
client, subscription registry, transport and simulator. Nothing is held in
module globals, so several gateways can live in one process.

Examples:
    >>> gateway = ExecutionGateway(backend_url="ws://backend.invalid/ws")
    >>> gateway.validate_script("print('hello')", "python").valid
    True
    >>> gateway.connection_state
    'closed'
"""

# Standard
from typing import Any, Dict, Optional

# First-Party
from scriptgateway.cache.rate_limiter import ScriptRateLimiter
from scriptgateway.config import settings
from scriptgateway.errors import TransportUnavailableError, ValidationFailedError
from scriptgateway.models import ScriptLanguage
from scriptgateway.schemas import CancelScriptFrame, ExecutionRequest, ExecutionResponse, is_valid_script_id, ValidationResult
from scriptgateway.services.execution_dispatcher import ExecutionDispatcher
from scriptgateway.services.logging_service import LoggingService
from scriptgateway.services.notification_service import NotificationService
from scriptgateway.services.parameter_sanitizer import ParameterSanitizer
from scriptgateway.services.resource_limits import ResourceLimitResolver
from scriptgateway.services.script_catalog_service import ScriptCatalogService
from scriptgateway.services.static_validator import StaticValidator
from scriptgateway.services.subscription_registry import FrameCallback, SubscriptionRegistry, Unsubscribe
from scriptgateway.transports.base import BackendConnector
from scriptgateway.transports.simulator import LocalExecutionSimulator
from scriptgateway.transports.websocket_transport import ExecutionTransport

logger = LoggingService().get_logger(__name__)


class ExecutionGateway:
    """Single entry point for vetting, running and observing scripts."""

    def __init__(
        self,
        backend_url: Optional[str] = None,
        connector: Optional[BackendConnector] = None,
        catalog: Optional[ScriptCatalogService] = None,
        notifier: Optional[NotificationService] = None,
        rate_limiter: Optional[ScriptRateLimiter] = None,
        simulator: Optional[LocalExecutionSimulator] = None,
        enable_fallback: Optional[bool] = None,
        **transport_options: Any,
    ):
        """Build a gateway from settings, overriding any component.

        Args:
            backend_url: Backend websocket endpoint.
            connector: Connection factory for the transport.
            catalog: Script catalog client.
            notifier: User notification service.
            rate_limiter: Admission control.
            simulator: Local simulator used when the backend is unreachable.
            enable_fallback: Whether the simulator may be used at all.
            **transport_options: Extra keyword arguments for ``ExecutionTransport``.
        """
        self.notifier = notifier or NotificationService()
        self.validator = StaticValidator()
        self.sanitizer = ParameterSanitizer()
        self.resolver = ResourceLimitResolver()
        self.rate_limiter = rate_limiter or ScriptRateLimiter()
        self.catalog = catalog or ScriptCatalogService()
        self.registry = SubscriptionRegistry(notifier=self.notifier)

        fallback_enabled = settings.execution_fallback_enabled if enable_fallback is None else enable_fallback
        if fallback_enabled and simulator is None:
            simulator = LocalExecutionSimulator(self.registry)
        self.simulator = simulator if fallback_enabled else None

        self.transport = ExecutionTransport(
            url=backend_url,
            connector=connector,
            notifier=self.notifier,
            frame_handler=self.registry.dispatch,
            fallback=self.simulator,
            **transport_options,
        )
        self.registry.bind_sender(self.transport.send)
        self.dispatcher = ExecutionDispatcher(
            transport=self.transport,
            catalog=self.catalog,
            rate_limiter=self.rate_limiter,
            sanitizer=self.sanitizer,
            resolver=self.resolver,
            notifier=self.notifier,
            fallback_enabled=fallback_enabled,
        )

    @property
    def connection_state(self) -> str:
        """Backend connection state name."""
        return self.transport.state.value

    def validate_script(self, code: str, language: str = ScriptLanguage.PYTHON.value) -> ValidationResult:
        """Statically scan a script.

        Args:
            code: Script source.
            language: Script language.

        Returns:
            ValidationResult: Every issue found.
        """
        return self.validator.validate(code, language)

    def validate_or_raise(self, code: str, language: str = ScriptLanguage.PYTHON.value) -> ValidationResult:
        """Statically scan a script, raising on any issue.

        Raises:
            ValidationFailedError: If the script has issues.
        """
        result = self.validator.validate(code, language)
        if not result.valid:
            raise ValidationFailedError(result.issues)
        return result

    async def execute(self, request: ExecutionRequest) -> ExecutionResponse:
        """Dispatch a run; see ``ExecutionDispatcher.execute``."""
        self.registry.begin_run(request.script_id)
        return await self.dispatcher.execute(request)

    async def run(self, script_id: str, parameters: Optional[Dict[str, Any]] = None, **options: Any) -> ExecutionResponse:
        """Build an ``ExecutionRequest`` and dispatch it."""
        return await self.execute(ExecutionRequest(script_id=script_id, parameters=parameters or {}, **options))

    def subscribe(self, script_id: str, callback: FrameCallback) -> Unsubscribe:
        """Register the frame listener for a script."""
        return self.registry.subscribe(script_id, callback)

    def cancel(self, script_id: str, strict: bool = False) -> bool:
        """Ask the backend to abort a running script.

        Unsubscribing only stops delivery; this is the explicit way to stop
        the run itself.

        Args:
            script_id: Script to cancel.
            strict: Raise instead of returning False when the frame is not sent.

        Returns:
            bool: Whether the cancel frame was queued.

        Raises:
            TransportUnavailableError: If ``strict`` and the frame was not sent.
            ValueError: If the script id is invalid.
        """
        if not is_valid_script_id(script_id):
            raise ValueError("Invalid scriptId")
        sent = self.transport.send(CancelScriptFrame(script_id=script_id))
        if not sent:
            logger.warning(f"Cancel request for script {script_id} was not sent")
            if strict:
                raise TransportUnavailableError(f"Could not send cancel request for script {script_id}")
        return sent

    async def connect(self) -> None:
        """Open the backend connection."""
        await self.transport.initialize()

    async def close(self) -> None:
        """Close the backend connection and the catalog client."""
        await self.transport.close()
        await self.catalog.aclose()

    async def __aenter__(self) -> "ExecutionGateway":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
