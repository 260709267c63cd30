# -*- coding: utf-8 -*-
"""Location: ./tests/conftest.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Shared fixtures: in-memory backend connections, a scripted connector, a
recording sleep and a dict-backed script catalog.
"""

# Standard
import asyncio
from typing import Any, Dict, List, Optional

# Third-Party
import orjson
import pytest

# First-Party
from scriptgateway.config import settings
from scriptgateway.transports.base import BackendConnection, BackendConnector


class FakeConnection(BackendConnection):
    """Backend connection driven from the test."""

    def __init__(self):
        self.sent: List[str] = []
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.fail_send = False

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise ConnectionError("send failed")
        self.sent.append(data)

    async def receive_text(self) -> Optional[str]:
        if self._closed and self._inbound.empty():
            return None
        return await self._inbound.get()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._inbound.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed

    def feed(self, frame: Any) -> None:
        """Queue an inbound frame; dicts are JSON encoded, strings sent as is."""
        self._inbound.put_nowait(frame if isinstance(frame, str) else orjson.dumps(frame).decode())

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._inbound.put_nowait(None)

    def sent_frames(self) -> List[Dict[str, Any]]:
        return [orjson.loads(data) for data in self.sent]


class FakeConnector(BackendConnector):
    """Connector that fails a scripted number of times before succeeding."""

    def __init__(self, failures: int = 0, always_fail: bool = False, hang: bool = False):
        self.failures = failures
        self.always_fail = always_fail
        self.hang = hang
        self.calls: List[str] = []
        self.connections: List[FakeConnection] = []

    async def connect(self, url: str) -> BackendConnection:
        self.calls.append(url)
        if self.hang:
            await asyncio.Event().wait()
        if self.always_fail or len(self.calls) <= self.failures:
            raise ConnectionRefusedError("backend unreachable")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeCatalog:
    """Script catalog backed by a dict."""

    def __init__(self, scripts: Optional[Dict[str, Dict[str, Any]]] = None):
        self.scripts = scripts or {}
        self.lookups: List[str] = []
        self.closed = False

    async def get_script(self, script_id: str) -> Optional[Dict[str, Any]]:
        self.lookups.append(script_id)
        return self.scripts.get(script_id)

    async def aclose(self) -> None:
        self.closed = True


async def settle(rounds: int = 20) -> None:
    """Let background tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def drain_reconnects(transport) -> None:
    """Await the reconnect chain until no reconnect is pending."""
    while transport._reconnect_task is not None and not transport._reconnect_task.done():
        await transport._reconnect_task


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def fast_settings(monkeypatch):
    """Zero every artificial delay."""
    monkeypatch.setattr(settings, "execution_startup_delay", 0.0)
    monkeypatch.setattr(settings, "simulator_start_delay", 0.0)
    monkeypatch.setattr(settings, "simulator_step_delay", 0.0)
    monkeypatch.setattr(settings, "simulator_completion_delay", 0.0)
    return settings


@pytest.fixture
def make_connector():
    """Factory for connectors with scripted failures."""
    return FakeConnector


@pytest.fixture
def make_catalog():
    """Factory for dict-backed catalogs."""
    return FakeCatalog


@pytest.fixture(name="settle")
def settle_fixture():
    return settle


@pytest.fixture(name="drain_reconnects")
def drain_reconnects_fixture():
    return drain_reconnects
