# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure Error Context Configuration Model.

Bundles the structured fields shared by all resource liveness errors so
error constructors keep a short parameter list.
"""

from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from resource_liveness.enums import EnumInfraTransportType


class ModelInfraErrorContext(BaseModel):
    """Structured context attached to infrastructure errors.

    Attributes:
        transport_type: Transport in use (KUBERNETES, INMEMORY, RUNTIME)
        operation: Operation being performed (patch, list, watch, ...)
        target_name: Target resource or endpoint name
        correlation_id: Request correlation ID for tracing

    Example:
        >>> context = ModelInfraErrorContext(
        ...     transport_type=EnumInfraTransportType.KUBERNETES,
        ...     operation="patch",
        ...     target_name="default/my-svc",
        ... )
        >>> raise InfraConnectionError("API server unreachable", context=context)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    transport_type: Optional[EnumInfraTransportType] = Field(
        default=None,
        description="Type of infrastructure transport",
    )
    operation: Optional[str] = Field(
        default=None,
        description="Operation being performed",
    )
    target_name: Optional[str] = Field(
        default=None,
        description="Target resource or endpoint name",
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Request correlation ID for distributed tracing",
    )

    @classmethod
    def with_correlation(
        cls,
        correlation_id: Optional[UUID] = None,
        **kwargs: object,
    ) -> "ModelInfraErrorContext":
        """Build a context, generating a correlation ID when none is given."""
        return cls(correlation_id=correlation_id or uuid4(), **kwargs)


__all__ = ["ModelInfraErrorContext"]
