# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Watch event type enumeration.

Values match the ``type`` field of Kubernetes watch events so raw feed
events can be classified with ``EnumWatchEventType(raw["type"])``.
"""

from enum import Enum


class EnumWatchEventType(str, Enum):
    """Kinds of change delivered to watch handlers."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


__all__ = ["EnumWatchEventType"]
