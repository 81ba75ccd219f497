# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Liveness Enumerations Module.

Exports:
    EnumErrorCode: Error classification codes
    EnumInfraTransportType: Transport type enumeration for error context
    EnumNotFoundPolicy: Heartbeat behavior on missing resources
    EnumSubscriptionState: Watch subscription lifecycle states
    EnumTimestampFormat: Liveness annotation value encodings
    EnumWatchEventType: Watch event kinds (ADDED, MODIFIED, DELETED)
"""

from resource_liveness.enums.enum_error_code import EnumErrorCode
from resource_liveness.enums.enum_infra_transport_type import EnumInfraTransportType
from resource_liveness.enums.enum_not_found_policy import EnumNotFoundPolicy
from resource_liveness.enums.enum_subscription_state import EnumSubscriptionState
from resource_liveness.enums.enum_timestamp_format import EnumTimestampFormat
from resource_liveness.enums.enum_watch_event_type import EnumWatchEventType

__all__: list[str] = [
    "EnumErrorCode",
    "EnumInfraTransportType",
    "EnumNotFoundPolicy",
    "EnumSubscriptionState",
    "EnumTimestampFormat",
    "EnumWatchEventType",
]
