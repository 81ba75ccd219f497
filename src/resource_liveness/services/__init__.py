# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource liveness services.

Exports:
    HeartbeatHandle: One running periodic liveness patch
    ServiceHeartbeatCoordinator: Heartbeat registry, one per resource key
    ServiceResourceLifecycle: Create-and-track facade over the CRUD client
    ServiceWatchManager: Registry of watch subscriptions
    WatchSubscription: One list-watch subscription
    dispatch_to_callbacks: Adapt add/delete/modify callbacks to one handler
"""

from resource_liveness.services.service_heartbeat_coordinator import (
    HeartbeatHandle,
    ServiceHeartbeatCoordinator,
)
from resource_liveness.services.service_resource_lifecycle import (
    ServiceResourceLifecycle,
)
from resource_liveness.services.service_watch_subscription import (
    ServiceWatchManager,
    WatchSubscription,
    dispatch_to_callbacks,
)

__all__: list[str] = [
    "HeartbeatHandle",
    "ServiceHeartbeatCoordinator",
    "ServiceResourceLifecycle",
    "ServiceWatchManager",
    "WatchSubscription",
    "dispatch_to_callbacks",
]
