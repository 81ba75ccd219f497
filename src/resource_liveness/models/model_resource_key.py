# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource key model.

Identifies one named, namespaced resource tracked by a heartbeat or watch.
The model is frozen and hashable so it can key the heartbeat registry.

Validation delegates to ``util_resource_name_validation``; malformed names
raise ProtocolConfigurationError directly from the constructor (the error
is not a ValueError, so pydantic does not wrap it).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from resource_liveness.utils.util_resource_name_validation import (
    validate_namespace,
    validate_resource_name,
)


class ModelResourceKey(BaseModel):
    """Name and namespace of a cluster resource.

    Attributes:
        name: Object name (DNS-1123 subdomain).
        namespace: Namespace (DNS-1123 label).

    Example:
        >>> key = ModelResourceKey(name="my-svc", namespace="default")
        >>> str(key)
        'default/my-svc'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Object name")
    namespace: str = Field(..., description="Object namespace")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        validate_resource_name(v)
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace_value(cls, v: str) -> str:
        validate_namespace(v)
        return v

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


__all__: list[str] = ["ModelResourceKey"]
