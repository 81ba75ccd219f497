# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource liveness protocols.

Exports:
    ProtocolPatchFn: Async liveness patch capability
    ProtocolResourceClient: Generic cluster CRUD collaborator
"""

from resource_liveness.protocols.protocol_resource_client import (
    ProtocolPatchFn,
    ProtocolResourceClient,
)

__all__: list[str] = ["ProtocolPatchFn", "ProtocolResourceClient"]
