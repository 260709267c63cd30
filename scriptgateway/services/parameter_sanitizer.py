# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/parameter_sanitizer.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Deep sanitisation of user-supplied execution parameters.

String values lose shell metacharacters (``;``, backtick, ``$``, ``|``) and
get HTML-escaped (``&``, ``<``, ``>``). Each character is mapped exactly once,
so an escape sequence can never reintroduce a stripped character.

Examples:
    >>> sanitize_parameters({"a": "a;b&c"})
    {'a': 'ab&amp;c'}
    >>> sanitize_parameters({"n": 3, "flag": True, "none": None, "nested": {"cmd": "`ls` | wc"}})
    {'n': 3, 'flag': True, 'none': None, 'nested': {'cmd': 'ls  wc'}}
"""

# Standard
from typing import Any, Dict, Mapping

_STRIPPED = ";`$|"
_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;"}

# str.translate applies the whole table in one pass per character
_TRANSLATION = str.maketrans({**{ch: None for ch in _STRIPPED}, **_ESCAPES})


class ParameterSanitizer:
    """Neutralises shell and HTML metacharacters in parameter maps."""

    @staticmethod
    def sanitize_value(value: str) -> str:
        """Sanitise a single string.

        Args:
            value: Raw string.

        Returns:
            str: String with metacharacters removed or escaped.

        Examples:
            >>> ParameterSanitizer.sanitize_value("rm -rf; <b>&</b>")
            'rm -rf &lt;b&gt;&amp;&lt;/b&gt;'
        """
        return value.translate(_TRANSLATION)

    def sanitize(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Recursively sanitise a parameter mapping.

        ``None`` values pass through unchanged, nested mappings are sanitised
        recursively and every other type (numbers, booleans, lists) is kept
        as is.

        Args:
            params: User-supplied parameters.

        Returns:
            Dict[str, Any]: A new, sanitised mapping.
        """
        sanitized: Dict[str, Any] = {}
        for key, value in params.items():
            if value is None:
                sanitized[key] = value
            elif isinstance(value, str):
                sanitized[key] = self.sanitize_value(value)
            elif isinstance(value, Mapping):
                sanitized[key] = self.sanitize(value)
            else:
                sanitized[key] = value
        return sanitized


def sanitize_parameters(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Sanitise parameters with a default sanitizer.

    Args:
        params: User-supplied parameters.

    Returns:
        Dict[str, Any]: Sanitised copy.
    """
    return ParameterSanitizer().sanitize(params)
