# -*- coding: utf-8 -*-
"""Location: ./tests/unit/scriptgateway/services/test_parameter_sanitizer.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Unit tests for parameter sanitisation.
"""

# Standard
import re

# First-Party
from scriptgateway.services.parameter_sanitizer import ParameterSanitizer, sanitize_parameters


def test_metacharacters_are_removed_or_escaped():
    """Shell separators disappear and HTML characters are escaped."""
    value = sanitize_parameters({"a": "rm -rf; <b>&</b>"})["a"]

    assert ";" not in re.sub(r"&(amp|lt|gt);", "", value)
    assert "<" not in value and ">" not in value
    assert "&amp;" in value
    assert value == "rm -rf &lt;b&gt;&amp;&lt;/b&gt;"


def test_backtick_dollar_and_pipe_are_removed():
    """Command substitution and pipes cannot survive."""
    assert sanitize_parameters({"cmd": "`id` $(whoami) | cat"}) == {"cmd": "id (whoami)  cat"}


def test_non_string_values_pass_through():
    """Numbers, booleans, lists and None are kept as they are."""
    params = {"n": 3, "ratio": 0.5, "flag": True, "items": ["a;b"], "missing": None}

    assert ParameterSanitizer().sanitize(params) == params


def test_nested_mappings_are_sanitised():
    """Nested objects are walked recursively."""
    result = ParameterSanitizer().sanitize({"outer": {"inner": "a;b", "deeper": {"x": "<y>"}}})

    assert result == {"outer": {"inner": "ab", "deeper": {"x": "&lt;y&gt;"}}}


def test_input_is_not_mutated():
    """A new mapping is returned."""
    params = {"a": "x;y"}

    ParameterSanitizer().sanitize(params)

    assert params == {"a": "x;y"}
