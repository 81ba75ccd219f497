# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource client implementations.

Exports:
    HandlerKubernetesServices: Kubernetes Services over the official client
    InMemoryResourceClient: In-process store for tests and local development
"""

from resource_liveness.handlers.handler_kubernetes_services import (
    HandlerKubernetesServices,
)
from resource_liveness.handlers.inmemory_resource_client import InMemoryResourceClient

__all__: list[str] = ["HandlerKubernetesServices", "InMemoryResourceClient"]
