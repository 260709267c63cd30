# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/transports/base.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Base interfaces and frame codec for backend transports.

``BackendConnector`` opens one ``BackendConnection``; the connection manager
only ever talks to these two abstractions, so tests and alternative
backends can plug in without a network.
"""

# Standard
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

# Third-Party
import orjson

# First-Party
from scriptgateway.errors import MalformedFrameError


class BackendConnection(ABC):
    """One open, full-duplex text connection to the execution backend."""

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """Send one text frame.

        Args:
            data: Serialised frame.
        """

    @abstractmethod
    async def receive_text(self) -> Optional[str]:
        """Wait for the next text frame.

        Returns:
            Optional[str]: The frame, or None once the connection is closed.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Must be safe to call more than once."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the connection is closed."""


class BackendConnector(ABC):
    """Factory for backend connections."""

    @abstractmethod
    async def connect(self, url: str) -> BackendConnection:
        """Open a connection.

        Args:
            url: Backend endpoint.

        Returns:
            BackendConnection: The open connection.
        """


def encode_frame(message: Dict[str, Any]) -> bytes:
    """Serialise an outbound frame.

    Args:
        message: Frame dict.

    Returns:
        bytes: UTF-8 JSON.

    Raises:
        MalformedFrameError: If the frame holds values JSON cannot encode.

    Examples:
        >>> encode_frame({"type": "heartbeat"})
        b'{"type":"heartbeat"}'
    """
    try:
        return orjson.dumps(message)
    except TypeError as exc:
        raise MalformedFrameError(f"Frame is not JSON serialisable: {exc}") from exc


def decode_frame(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Parse an inbound frame.

    Args:
        raw: Text or bytes received from the backend.

    Returns:
        Dict[str, Any]: The decoded JSON object.

    Raises:
        MalformedFrameError: If the payload is not a JSON object.

    Examples:
        >>> decode_frame('{"type": "log", "scriptId": "s1"}')
        {'type': 'log', 'scriptId': 's1'}
        >>> decode_frame("[1, 2]")
        Traceback (most recent call last):
        ...
        scriptgateway.errors.MalformedFrameError: Frame is not a JSON object
    """
    try:
        message = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise MalformedFrameError(f"Frame is not valid JSON: {exc}") from exc
    if not isinstance(message, dict):
        raise MalformedFrameError("Frame is not a JSON object")
    return message
