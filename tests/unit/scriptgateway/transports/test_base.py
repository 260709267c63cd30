# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/transports/test_base.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for the frame codec.
"""

# Third-Party
import pytest

# First-Party
from scriptgateway.errors import MalformedFrameError
from scriptgateway.transports.base import decode_frame, encode_frame


def test_decode_accepts_text_and_bytes():
    """Both text and binary payloads decode to dicts."""
    assert decode_frame('{"type":"output","scriptId":"s1","content":"x"}') == {"type": "output", "scriptId": "s1", "content": "x"}
    assert decode_frame(b'{"type":"heartbeat"}') == {"type": "heartbeat"}


@pytest.mark.parametrize("raw", ["", "{oops", "null", "42", '"text"', "[]"])
def test_decode_rejects_non_objects(raw):
    """Anything but a JSON object is malformed."""
    with pytest.raises(MalformedFrameError):
        decode_frame(raw)


def test_encode_rejects_unserialisable_values():
    """Values JSON cannot represent are reported as malformed."""
    with pytest.raises(MalformedFrameError):
        encode_frame({"type": "execute_script", "parameters": {"handle": object()}})
