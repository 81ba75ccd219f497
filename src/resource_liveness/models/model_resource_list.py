# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Snapshot returned by the list half of a list-watch."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModelResourceList(BaseModel):
    """Items plus the collection resource version to resume watching from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[dict[str, Any]] = Field(default_factory=list)
    resource_version: str | None = Field(
        default=None,
        description="Collection resourceVersion at list time",
    )


__all__: list[str] = ["ModelResourceList"]
