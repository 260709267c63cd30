# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/transports/test_simulator.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for the local execution simulator.
"""

# Third-Party
import pytest

# First-Party
from scriptgateway.models import NotificationLevel
from scriptgateway.services.notification_service import NotificationService
from scriptgateway.services.subscription_registry import SubscriptionRegistry
from scriptgateway.transports.simulator import LocalExecutionSimulator


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def registry(notifier):
    return SubscriptionRegistry(notifier=notifier)


@pytest.fixture
def simulator(registry):
    return LocalExecutionSimulator(registry, start_delay=0, step_delay=0, completion_delay=0)


@pytest.mark.asyncio
async def test_frame_sequence(simulator, registry, notifier):
    """A simulated run emits the full, fixed frame sequence."""
    frames = []
    registry.subscribe("s1", frames.append)

    assert await simulator.run("s1", {"n": 3}) is True

    types = [frame["type"] for frame in frames]
    assert types[0] == "log"
    assert types[-1] == "execution_status"
    assert types.count("output") == 11
    # start log, one progress log per even step, completion log
    assert types.count("log") == 7

    assert frames[0]["message"] == 'Script execution started with parameters: {"n":3}'
    assert frames[1] == {"type": "output", "scriptId": "s1", "content": "Output line 1: Processing data...\n"}
    assert frames[3] == {"type": "log", "scriptId": "s1", "level": "info", "message": "Processing step 2 completed"}
    assert frames[-3]["message"] == "Script execution completed successfully"
    assert frames[-2]["content"] == '\nExecution completed with 10 steps\nParameters: {"n":3}\n'
    assert frames[-1] == {
        "type": "execution_status",
        "scriptId": "s1",
        "status": "completed",
        "executionTime": 3.45,
        "memory": 128.5,
        "cpuUsage": 45.2,
    }
    assert notifier.count(NotificationLevel.SUCCESS) == 1


@pytest.mark.asyncio
async def test_output_lines_are_numbered_in_order(simulator, registry):
    """Output chunks arrive in step order."""
    frames = []
    registry.subscribe("s1", frames.append)

    await simulator.run("s1")

    lines = [frame["content"] for frame in frames if frame["type"] == "output"][:10]
    assert lines == [f"Output line {step}: Processing data...\n" for step in range(1, 11)]


@pytest.mark.asyncio
async def test_skips_without_subscriber(simulator, notifier):
    """Nothing is emitted when nobody listens."""
    assert await simulator.run("nobody", {}) is False
    assert notifier.history == []


def test_delays_default_to_settings(registry, fast_settings):
    """Unset delays are read from settings."""
    simulator = LocalExecutionSimulator(registry)

    assert (simulator.start_delay, simulator.step_delay, simulator.completion_delay) == (0.0, 0.0, 0.0)
