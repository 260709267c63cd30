# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/transports/simulator.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Local execution simulator.

When the backend cannot be reached the dispatcher can hand a run to this
simulator instead. It produces the same frame sequence a real run would
(start log, ten output chunks with progress logs, completion log, summary
output and a ``completed`` status) and pushes it through the subscription
registry, so listeners cannot tell the two apart. The sequence is
deterministic; only the delays between frames are configurable.
"""

# Standard
import asyncio
from typing import Any, Dict, Optional

# Third-Party
import orjson

# First-Party
from scriptgateway.config import settings
from scriptgateway.models import ExecutionStatus, LogFrameLevel
from scriptgateway.schemas import ExecutionStatusFrame, LogFrame, OutputFrame
from scriptgateway.services.logging_service import LoggingService
from scriptgateway.services.subscription_registry import SubscriptionRegistry

logger = LoggingService().get_logger(__name__)

SIMULATED_STEPS = 10
SIMULATED_EXECUTION_TIME = 3.45
SIMULATED_MEMORY = 128.5
SIMULATED_CPU_USAGE = 45.2


def _params_json(parameters: Dict[str, Any]) -> str:
    return orjson.dumps(parameters, default=str).decode("utf-8")


class LocalExecutionSimulator:
    """Emits a canned execution through a subscription registry.

    Examples:
        >>> import asyncio
        >>> registry = SubscriptionRegistry()
        >>> frames = []
        >>> _ = registry.subscribe("s1", frames.append)
        >>> sim = LocalExecutionSimulator(registry, start_delay=0, step_delay=0, completion_delay=0)
        >>> asyncio.run(sim.run("s1", {"n": 1}))
        True
        >>> frames[0]["message"]
        'Script execution started with parameters: {"n":1}'
        >>> frames[-1]["status"]
        'completed'
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        start_delay: Optional[float] = None,
        step_delay: Optional[float] = None,
        completion_delay: Optional[float] = None,
    ):
        self.registry = registry
        self.start_delay = settings.simulator_start_delay if start_delay is None else start_delay
        self.step_delay = settings.simulator_step_delay if step_delay is None else step_delay
        self.completion_delay = settings.simulator_completion_delay if completion_delay is None else completion_delay

    def _emit(self, frame: Any) -> None:
        self.registry.dispatch(frame.to_wire())

    async def run(self, script_id: str, parameters: Optional[Dict[str, Any]] = None) -> bool:
        """Simulate one run of a script.

        Args:
            script_id: Script whose listener receives the frames.
            parameters: Sanitised run parameters, echoed into the output.

        Returns:
            bool: False if nobody was subscribed to the script, True otherwise.
        """
        if not self.registry.has_subscriber(script_id):
            logger.debug(f"No subscriber for {script_id}; skipping simulated run")
            return False

        parameters = parameters or {}
        logger.info(f"Simulating execution of script {script_id}")

        await asyncio.sleep(self.start_delay)
        self._emit(LogFrame(script_id=script_id, level=LogFrameLevel.INFO, message=f"Script execution started with parameters: {_params_json(parameters)}"))

        for step in range(1, SIMULATED_STEPS + 1):
            await asyncio.sleep(self.step_delay)
            self._emit(OutputFrame(script_id=script_id, content=f"Output line {step}: Processing data...\n"))
            if step % 2 == 0:
                self._emit(LogFrame(script_id=script_id, level=LogFrameLevel.INFO, message=f"Processing step {step} completed"))

        await asyncio.sleep(self.completion_delay)
        self._emit(LogFrame(script_id=script_id, level=LogFrameLevel.INFO, message="Script execution completed successfully"))
        self._emit(OutputFrame(script_id=script_id, content=f"\nExecution completed with {SIMULATED_STEPS} steps\nParameters: {_params_json(parameters)}\n"))
        self._emit(
            ExecutionStatusFrame(
                script_id=script_id,
                status=ExecutionStatus.COMPLETED,
                execution_time=SIMULATED_EXECUTION_TIME,
                memory=SIMULATED_MEMORY,
                cpu_usage=SIMULATED_CPU_USAGE,
            )
        )
        return True
