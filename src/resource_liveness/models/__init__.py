# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource liveness models.

Exports:
    ModelHeartbeatConfig: Heartbeat coordinator configuration
    ModelLivenessSettings: Environment-driven process settings
    ModelResourceKey: Name and namespace of a tracked resource
    ModelResourceList: List snapshot with collection resource version
    ModelServiceSpec: Service creation request
    ModelWatchConfig: Watch subscription configuration
    ModelWatchEvent: Tagged watch event (ADDED, MODIFIED, DELETED)
"""

from resource_liveness.models.model_heartbeat_config import ModelHeartbeatConfig
from resource_liveness.models.model_liveness_settings import ModelLivenessSettings
from resource_liveness.models.model_resource_key import ModelResourceKey
from resource_liveness.models.model_resource_list import ModelResourceList
from resource_liveness.models.model_service_spec import ModelServiceSpec
from resource_liveness.models.model_watch_config import ModelWatchConfig
from resource_liveness.models.model_watch_event import ModelWatchEvent

__all__: list[str] = [
    "ModelHeartbeatConfig",
    "ModelLivenessSettings",
    "ModelResourceKey",
    "ModelResourceList",
    "ModelServiceSpec",
    "ModelWatchConfig",
    "ModelWatchEvent",
]
