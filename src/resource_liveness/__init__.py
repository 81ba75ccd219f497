# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Liveness - heartbeats and change watches for cluster resources.

This package keeps the resources an agent creates for a user session
visibly alive and observable:

- ServiceHeartbeatCoordinator: periodic blind liveness patches, one task
  per resource, read by an external reaper
- WatchSubscription / ServiceWatchManager: resumable list-watch feeds
  delivering ADDED / MODIFIED / DELETED events
- ServiceResourceLifecycle: create-and-track facade over the CRUD client
- HandlerKubernetesServices / InMemoryResourceClient: CRUD collaborators
"""

__all__: list[str] = []
