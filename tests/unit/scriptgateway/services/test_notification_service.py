# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/services/test_notification_service.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for user notifications.
"""

# Standard
import asyncio

# Third-Party
import pytest

# First-Party
from scriptgateway.models import NotificationLevel
from scriptgateway.services.notification_service import NotificationService


def test_levels_and_persistence():
    """Helpers publish with the right level; alerts always persist."""
    service = NotificationService()

    service.info("hello")
    service.success("done", script_id="s1")
    service.error("down", persistent=True)
    service.alert("breach")

    assert [(n.level, n.persistent) for n in service.history] == [
        (NotificationLevel.INFO, False),
        (NotificationLevel.SUCCESS, False),
        (NotificationLevel.ERROR, True),
        (NotificationLevel.ALERT, True),
    ]
    assert service.history[1].script_id == "s1"
    assert service.count() == 4
    assert service.count(NotificationLevel.ERROR) == 1


def test_history_is_bounded():
    """Only the newest notifications are kept."""
    service = NotificationService(history_size=2)

    for i in range(5):
        service.info(f"n{i}")

    assert [n.message for n in service.history] == ["n3", "n4"]


def test_failing_sink_does_not_block_others():
    """A sink that raises is logged and the next sink still runs."""
    service = NotificationService()
    seen = []

    def broken(notification):
        raise RuntimeError("sink down")

    service.add_sink(broken)
    service.add_sink(seen.append)
    service.success("ok")

    assert [n.message for n in seen] == ["ok"]


def test_remove_sink():
    """Removed sinks receive nothing; removing twice is harmless."""
    service = NotificationService()
    seen = []
    service.add_sink(seen.append)

    service.remove_sink(seen.append)
    service.remove_sink(seen.append)
    service.info("ignored")

    assert seen == []


@pytest.mark.asyncio
async def test_async_subscribe():
    """Subscribers receive notifications published after subscribing."""
    service = NotificationService()
    received = []

    async def consume():
        async for notification in service.subscribe():
            received.append(notification.message)
            if len(received) == 2:
                break

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    service.info("first")
    service.error("second")
    await asyncio.wait_for(task, timeout=1)

    assert received == ["first", "second"]
