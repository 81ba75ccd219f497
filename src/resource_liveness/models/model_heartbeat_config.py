# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Heartbeat coordinator configuration model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from resource_liveness.enums import EnumNotFoundPolicy, EnumTimestampFormat
from resource_liveness.utils.util_liveness_patch import DEFAULT_ANNOTATION_KEY

DEFAULT_HEARTBEAT_INTERVAL_SECONDS = 30.0
DEFAULT_PATCH_TIMEOUT_SECONDS = 10.0


class ModelHeartbeatConfig(BaseModel):
    """Configuration for ServiceHeartbeatCoordinator.

    Attributes:
        interval_seconds: Period between liveness patches.
        patch_timeout_seconds: Deadline for a single patch call; a call
            exceeding it counts as a failed tick.
        annotation_key: Annotation written on every tick. Shared with the
            reaper that reads it.
        timestamp_format: Encoding of the annotation value.
        not_found_policy: Behavior when the resource no longer exists.

    Example:
        >>> config = ModelHeartbeatConfig(
        ...     interval_seconds=15.0,
        ...     not_found_policy=EnumNotFoundPolicy.STOP,
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval_seconds: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
        gt=0.0,
        description="Period between liveness patches in seconds",
    )
    patch_timeout_seconds: float = Field(
        default=DEFAULT_PATCH_TIMEOUT_SECONDS,
        gt=0.0,
        description="Deadline for one patch call in seconds",
    )
    annotation_key: str = Field(
        default=DEFAULT_ANNOTATION_KEY,
        min_length=1,
        description="Liveness annotation key",
    )
    timestamp_format: EnumTimestampFormat = Field(
        default=EnumTimestampFormat.EPOCH_SECONDS,
        description="Encoding of the liveness timestamp",
    )
    not_found_policy: EnumNotFoundPolicy = Field(
        default=EnumNotFoundPolicy.KEEP_TRYING,
        description="Behavior when the patched resource is gone",
    )


__all__: list[str] = [
    "DEFAULT_HEARTBEAT_INTERVAL_SECONDS",
    "DEFAULT_PATCH_TIMEOUT_SECONDS",
    "ModelHeartbeatConfig",
]
