# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure Transport Type Enumeration.

Defines the transport types used in error context and log records.
"""

from enum import Enum


class EnumInfraTransportType(str, Enum):
    """Transport types for resource liveness components.

    Attributes:
        KUBERNETES: Kubernetes API server transport
        INMEMORY: In-process resource store (tests, local development)
        RUNTIME: Internal runtime (background tasks, configuration)
    """

    KUBERNETES = "kubernetes"
    INMEMORY = "inmemory"
    RUNTIME = "runtime"


__all__ = ["EnumInfraTransportType"]
