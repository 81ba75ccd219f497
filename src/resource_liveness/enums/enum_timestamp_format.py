# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Liveness timestamp encodings understood by the reaper."""

from enum import Enum


class EnumTimestampFormat(str, Enum):
    """Encoding of the liveness annotation value.

    Attributes:
        EPOCH_SECONDS: Unix time in whole seconds, e.g. ``"1760712000"``
        RFC3339: UTC timestamp, e.g. ``"2025-10-17T14:40:00Z"``
    """

    EPOCH_SECONDS = "epoch_seconds"
    RFC3339 = "rfc3339"


__all__ = ["EnumTimestampFormat"]
