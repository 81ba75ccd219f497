# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Watch subscription lifecycle states.

State Transitions:
    CREATED -> LISTING -> WATCHING -> (RECONNECTING -> [LISTING ->] WATCHING)* -> STOPPED

STOPPED is terminal.
"""

from enum import Enum


class EnumSubscriptionState(str, Enum):
    """Lifecycle state of a WatchSubscription."""

    CREATED = "created"
    LISTING = "listing"
    WATCHING = "watching"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"

    def is_terminal(self) -> bool:
        """Return True if no further transitions are possible."""
        return self is EnumSubscriptionState.STOPPED


__all__ = ["EnumSubscriptionState"]
