# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Heartbeat behavior when the target resource no longer exists."""

from enum import Enum


class EnumNotFoundPolicy(str, Enum):
    """What a heartbeat does after a patch fails with ResourceNotFoundError.

    Attributes:
        KEEP_TRYING: Log the failure and keep ticking (the resource may be
            recreated under the same name).
        STOP: End the heartbeat and release its key.
    """

    KEEP_TRYING = "keep_trying"
    STOP = "stop"


__all__ = ["EnumNotFoundPolicy"]
