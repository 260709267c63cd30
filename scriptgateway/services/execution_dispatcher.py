# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/execution_dispatcher.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Execution Dispatcher.
This module turns an ``ExecutionRequest`` into an ``execute_script`` frame:
admission control, parameter sanitisation, catalog lookup, heavy workload
classification and resource limit resolution, then hand-off to the
transport. Source is not re-validated here; callers run the static
validator first.
"""

# Standard
import asyncio
from datetime import datetime, timezone
from typing import Optional
import uuid

# First-Party
from scriptgateway.cache.rate_limiter import ScriptRateLimiter
from scriptgateway.config import settings
from scriptgateway.errors import RateLimitExceededError, TransportUnavailableError
from scriptgateway.models import ScriptLanguage
from scriptgateway.schemas import ExecuteScriptFrame, ExecutionRequest, ExecutionResponse
from scriptgateway.services.logging_service import LoggingService
from scriptgateway.services.notification_service import NotificationService
from scriptgateway.services.parameter_sanitizer import ParameterSanitizer
from scriptgateway.services.resource_limits import ResourceLimitResolver
from scriptgateway.services.script_catalog_service import ScriptCatalogService
from scriptgateway.transports.websocket_transport import ExecutionTransport

logger = LoggingService().get_logger(__name__)

RATE_LIMIT_NOTICE = "Rate limit exceeded. Please try again later."


class ExecutionDispatcher:
    """Vets and bounds execution requests, then sends them to the backend."""

    def __init__(
        self,
        transport: ExecutionTransport,
        catalog: ScriptCatalogService,
        rate_limiter: Optional[ScriptRateLimiter] = None,
        sanitizer: Optional[ParameterSanitizer] = None,
        resolver: Optional[ResourceLimitResolver] = None,
        notifier: Optional[NotificationService] = None,
        startup_delay: Optional[float] = None,
        fallback_enabled: Optional[bool] = None,
    ):
        self.transport = transport
        self.catalog = catalog
        self.rate_limiter = rate_limiter or ScriptRateLimiter()
        self.sanitizer = sanitizer or ParameterSanitizer()
        self.resolver = resolver or ResourceLimitResolver()
        self.notifier = notifier or NotificationService()
        self.startup_delay = settings.execution_startup_delay if startup_delay is None else startup_delay
        self.fallback_enabled = settings.execution_fallback_enabled if fallback_enabled is None else fallback_enabled

    async def execute(self, request: ExecutionRequest) -> ExecutionResponse:
        """Dispatch one execution request.

        Args:
            request: The run to start.

        Returns:
            ExecutionResponse: ``running`` acknowledgement. ``fallback`` is set
            when the run was handed to the local simulator.

        Raises:
            RateLimitExceededError: If admission control rejects the request.
            TransportUnavailableError: If the connection is open but the frame
                was refused (too large, or the outbound queue is full).
        """
        script_id = request.script_id
        if not self.rate_limiter.check_limit(script_id, request.script_class):
            self.notifier.error(RATE_LIMIT_NOTICE, script_id=script_id)
            raise RateLimitExceededError(script_id=script_id, script_class=request.script_class)

        parameters = self.sanitizer.sanitize(request.parameters)

        script = await self.catalog.get_script(script_id) or {}
        language = script.get("language") or request.language or ScriptLanguage.PYTHON.value
        is_heavy = self.resolver.is_heavy_workload(script.get("code"), script.get("metadata"))
        limits = self.resolver.resolve(language, is_heavy, request.execution_limits)

        frame = ExecuteScriptFrame(
            script_id=script_id,
            parameters=parameters,
            language=language,
            execution_limits=limits,
            ngs_config=self.resolver.ngs_config(request.parameters) if is_heavy else None,
        )
        logger.info(f"Dispatching script {script_id} ({language}{', heavy workload' if is_heavy else ''})")

        if not self.transport.send(frame):
            if self.transport.is_connected:
                logger.error(f"Backend refused the execute frame for script {script_id} on a live connection; not simulating")
                raise TransportUnavailableError(f"Could not send execute request for script {script_id}")
            if self.fallback_enabled and self.transport.start_fallback(script_id, parameters):
                logger.warning(f"Backend unavailable; simulating execution of script {script_id} locally")
                return ExecutionResponse(execution_id=f"exec-fallback-{uuid.uuid4().hex}", start_time=_utc_now(), fallback=True)
            logger.warning(f"Execute frame for script {script_id} was not sent and no fallback is available")

        await asyncio.sleep(self.startup_delay)
        return ExecutionResponse(execution_id=f"exec-{uuid.uuid4().hex}", start_time=_utc_now())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
