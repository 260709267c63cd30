# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/utils/test_base_models.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for the wire base model.
"""

# Standard
from enum import Enum
from typing import Optional

# First-Party
from scriptgateway.utils.base_models import GatewayModel, to_camel_case


class Color(str, Enum):
    RED = "red"


class Sample(GatewayModel):
    script_id: str
    cpu_usage: Optional[float] = None
    color: Color = Color.RED


def test_to_camel_case_multiple_words():
    assert to_camel_case("memory_limit_mb") == "memoryLimitMb"


def test_accepts_either_spelling():
    """Fields populate from the alias or the python name."""
    assert Sample(scriptId="a").script_id == "a"
    assert Sample(script_id="b").script_id == "b"


def test_to_wire_drops_none_and_uses_values():
    """None fields are omitted and enums become their values."""
    assert Sample(script_id="s1", color="red").to_wire() == {"scriptId": "s1", "color": "red"}
    assert Sample(script_id="s1", cpu_usage=1.5).to_wire()["cpuUsage"] == 1.5


def test_extra_fields_ignored():
    assert "unknown" not in Sample(script_id="s1", unknown=1).to_wire()
