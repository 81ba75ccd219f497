# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Watch event model.

A tagged union of the three change kinds delivered by a watch
subscription. ``resource`` is the JSON-shaped object as stored by the
cluster; for MODIFIED it is the new version only and for DELETED it is
the last known state.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from resource_liveness.enums import EnumWatchEventType


def resource_metadata(resource: dict[str, Any]) -> dict[str, Any]:
    """Return the ``metadata`` map of a JSON-shaped resource (empty if absent)."""
    metadata = resource.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


class ModelWatchEvent(BaseModel):
    """One change delivered to a watch handler.

    Attributes:
        event_type: ADDED, MODIFIED or DELETED.
        resource: Current representation of the resource.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: EnumWatchEventType = Field(..., description="Kind of change")
    resource: dict[str, Any] = Field(..., description="Resource representation")

    @property
    def name(self) -> str | None:
        return resource_metadata(self.resource).get("name")

    @property
    def namespace(self) -> str | None:
        return resource_metadata(self.resource).get("namespace")

    @property
    def resource_version(self) -> str | None:
        return resource_metadata(self.resource).get("resourceVersion")


__all__: list[str] = ["ModelWatchEvent", "resource_metadata"]
