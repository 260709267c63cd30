# -*- coding: utf-8 -*-
"""Base model utilities for the script gateway.

This module provides the shared Pydantic base class for wire frames and
request/response models. Python code uses snake_case field names while the
backend protocol speaks camelCase, so every model carries an alias generator
and accepts either spelling on input.

Copyright 2026
SPDX-License-Identifier: Apache-2.0
"""

# Standard
from typing import Any, Dict

# Third-Party
from pydantic import BaseModel, ConfigDict


def to_camel_case(s: str) -> str:
    """Convert a string from snake_case to camelCase.

    Args:
        s (str): The string to be converted, which is assumed to be in snake_case.

    Returns:
        str: The string converted to camelCase.

    Examples:
        >>> to_camel_case("script_id")
        'scriptId'
        >>> to_camel_case("execution_limits")
        'executionLimits'
        >>> to_camel_case("type")
        'type'
        >>> to_camel_case("")
        ''
    """
    return "".join(word.capitalize() if i else word for i, word in enumerate(s.split("_")))


class GatewayModel(BaseModel):
    """Base model with the wire conventions of the execution protocol.

    Provides:
    - Automatic conversion from snake_case to camelCase for output
    - Populate by name for flexible field naming
    - Enum members serialised by value
    """

    model_config = ConfigDict(
        alias_generator=to_camel_case,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump the model as a camelCase dict, omitting unset optional fields.

        Returns:
            Dict[str, Any]: JSON-ready representation.

        Examples:
            >>> class Probe(GatewayModel):
            ...     script_id: str
            ...     note: str | None = None
            >>> Probe(script_id="s1").to_wire()
            {'scriptId': 's1'}
        """
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
