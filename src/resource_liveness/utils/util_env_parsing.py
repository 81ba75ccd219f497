# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Type-safe environment variable parsing.

Malformed values are configuration errors and are reported as
ProtocolConfigurationError naming the offending variable; unset or blank
variables fall back to the supplied default.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import TypeVar

from resource_liveness.enums import EnumInfraTransportType
from resource_liveness.errors import ModelInfraErrorContext, ProtocolConfigurationError

_EnumT = TypeVar("_EnumT", bound=Enum)


def _env_error(name: str, raw: str, expected: str) -> ProtocolConfigurationError:
    return ProtocolConfigurationError(
        f"Environment variable {name}={raw!r} is not {expected}",
        context=ModelInfraErrorContext.with_correlation(
            transport_type=EnumInfraTransportType.RUNTIME,
            operation="parse_env",
            target_name=name,
        ),
        variable=name,
    )


def parse_env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def parse_env_float(
    name: str,
    default: float,
    *,
    minimum: float | None = None,
) -> float:
    """Read a float, enforcing an exclusive lower bound when ``minimum`` is given."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise _env_error(name, raw, "a number") from e
    if minimum is not None and value <= minimum:
        raise _env_error(name, raw, f"greater than {minimum}")
    return value


def parse_env_enum(name: str, default: _EnumT, enum_type: type[_EnumT]) -> _EnumT:
    """Read an enum member by value (case-insensitive)."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return enum_type(raw.strip().lower())
    except ValueError as e:
        allowed = ", ".join(str(member.value) for member in enum_type)
        raise _env_error(name, raw, f"one of: {allowed}") from e


__all__: list[str] = ["parse_env_enum", "parse_env_float", "parse_env_str"]
