# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Process-level settings read from the environment.

Environment Variables:
    LIVENESS_HEARTBEAT_INTERVAL_SECONDS: Heartbeat period (default 30)
    LIVENESS_PATCH_TIMEOUT_SECONDS: Deadline for one patch call (default 10)
    LIVENESS_ANNOTATION_KEY: Liveness annotation key (default kt-last-heart-beat)
    LIVENESS_TIMESTAMP_FORMAT: epoch_seconds | rfc3339 (default epoch_seconds)
    LIVENESS_NOT_FOUND_POLICY: keep_trying | stop (default keep_trying)
    LIVENESS_WATCH_TIMEOUT_SECONDS: Server-side watch timeout (default 300)
    LIVENESS_RECONNECT_BACKOFF_INITIAL_SECONDS: First reconnect delay (default 1)
    LIVENESS_RECONNECT_BACKOFF_MAX_SECONDS: Reconnect delay cap (default 30)
    LIVENESS_NAMESPACE: Default namespace for the CLI (default "default")
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import ValidationError

from resource_liveness.enums import (
    EnumInfraTransportType,
    EnumNotFoundPolicy,
    EnumTimestampFormat,
)
from resource_liveness.errors import ModelInfraErrorContext, ProtocolConfigurationError
from resource_liveness.models.model_heartbeat_config import (
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_PATCH_TIMEOUT_SECONDS,
    ModelHeartbeatConfig,
)
from resource_liveness.models.model_watch_config import ModelWatchConfig
from resource_liveness.utils.util_env_parsing import (
    parse_env_enum,
    parse_env_float,
    parse_env_str,
)
from resource_liveness.utils.util_liveness_patch import DEFAULT_ANNOTATION_KEY


@dataclass(frozen=True)
class ModelLivenessSettings:
    """Heartbeat and watch configuration plus the default namespace.

    Attributes:
        heartbeat: Heartbeat coordinator configuration.
        watch: Watch subscription configuration.
        namespace: Namespace used when a command does not name one.
    """

    heartbeat: ModelHeartbeatConfig = field(default_factory=ModelHeartbeatConfig)
    watch: ModelWatchConfig = field(default_factory=ModelWatchConfig)
    namespace: str = "default"

    @classmethod
    def from_env(cls) -> ModelLivenessSettings:
        """Create settings from ``LIVENESS_*`` environment variables.

        Raises:
            ProtocolConfigurationError: If a variable is malformed or the
                combined values fail model validation.
        """
        try:
            heartbeat = ModelHeartbeatConfig(
                interval_seconds=parse_env_float(
                    "LIVENESS_HEARTBEAT_INTERVAL_SECONDS",
                    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
                    minimum=0.0,
                ),
                patch_timeout_seconds=parse_env_float(
                    "LIVENESS_PATCH_TIMEOUT_SECONDS",
                    DEFAULT_PATCH_TIMEOUT_SECONDS,
                    minimum=0.0,
                ),
                annotation_key=parse_env_str(
                    "LIVENESS_ANNOTATION_KEY", DEFAULT_ANNOTATION_KEY
                ),
                timestamp_format=parse_env_enum(
                    "LIVENESS_TIMESTAMP_FORMAT",
                    EnumTimestampFormat.EPOCH_SECONDS,
                    EnumTimestampFormat,
                ),
                not_found_policy=parse_env_enum(
                    "LIVENESS_NOT_FOUND_POLICY",
                    EnumNotFoundPolicy.KEEP_TRYING,
                    EnumNotFoundPolicy,
                ),
            )
            watch = ModelWatchConfig(
                watch_timeout_seconds=int(
                    parse_env_float("LIVENESS_WATCH_TIMEOUT_SECONDS", 300, minimum=0.0)
                ),
                reconnect_backoff_initial_seconds=parse_env_float(
                    "LIVENESS_RECONNECT_BACKOFF_INITIAL_SECONDS", 1.0, minimum=0.0
                ),
                reconnect_backoff_max_seconds=parse_env_float(
                    "LIVENESS_RECONNECT_BACKOFF_MAX_SECONDS", 30.0, minimum=0.0
                ),
            )
        except ValidationError as e:
            raise ProtocolConfigurationError(
                f"Invalid liveness settings: {e.error_count()} validation error(s)",
                context=ModelInfraErrorContext.with_correlation(
                    transport_type=EnumInfraTransportType.RUNTIME,
                    operation="load_settings",
                ),
                errors=e.errors(include_url=False),
            ) from e

        return cls(
            heartbeat=heartbeat,
            watch=watch,
            namespace=parse_env_str("LIVENESS_NAMESPACE", "default"),
        )


__all__: list[str] = ["ModelLivenessSettings"]
