# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Watch subscription configuration model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModelWatchConfig(BaseModel):
    """Configuration for WatchSubscription.

    Attributes:
        watch_timeout_seconds: Server-side timeout of one watch request. The
            feed closes cleanly when it expires and is re-opened from the
            last seen resource version.
        reconnect_backoff_initial_seconds: First delay after a feed error.
        reconnect_backoff_max_seconds: Cap for the doubling backoff.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    watch_timeout_seconds: int = Field(
        default=300,
        gt=0,
        description="Server-side timeout for one watch request",
    )
    reconnect_backoff_initial_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Initial reconnect delay after a feed error",
    )
    reconnect_backoff_max_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Maximum reconnect delay",
    )

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> ModelWatchConfig:
        if self.reconnect_backoff_max_seconds < self.reconnect_backoff_initial_seconds:
            raise ValueError(
                "reconnect_backoff_max_seconds must be >= reconnect_backoff_initial_seconds"
            )
        return self


__all__: list[str] = ["ModelWatchConfig"]
