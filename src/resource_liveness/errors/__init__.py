# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Liveness Errors Module.

Exports:
    ModelInfraErrorContext: Configuration model for bundled error context
    RuntimeHostError: Base error class
    ProtocolConfigurationError: Invalid configuration or registration arguments
    InfraConnectionError: Cluster API unreachable
    InfraTimeoutError: Cluster API call deadline exceeded
    InfraAuthenticationError: 401/403 from the cluster API
    InfraUnavailableError: Throttling or server-side unavailability
    ResourceNotFoundError: Target resource missing (404)
    ResourceConflictError: Conflicting write (409)
    WatchExpiredError: Watch resource version compacted (410)

Error Sanitization Guidelines:
    Never put bearer tokens, kubeconfig contents or client certificates in
    error messages or context. Resource names, namespaces, HTTP status codes
    and operation names are safe to include.

    Example::

        context = ModelInfraErrorContext(
            transport_type=EnumInfraTransportType.KUBERNETES,
            operation="patch",
            target_name=f"{namespace}/{name}",
        )
        raise ResourceNotFoundError("Service not found", context=context) from e
"""

from resource_liveness.errors.infra_errors import (
    InfraAuthenticationError,
    InfraConnectionError,
    InfraTimeoutError,
    InfraUnavailableError,
    ProtocolConfigurationError,
    ResourceConflictError,
    ResourceNotFoundError,
    RuntimeHostError,
    WatchExpiredError,
)
from resource_liveness.errors.model_infra_error_context import ModelInfraErrorContext

__all__: list[str] = [
    "ModelInfraErrorContext",
    "RuntimeHostError",
    "ProtocolConfigurationError",
    "InfraConnectionError",
    "InfraTimeoutError",
    "InfraAuthenticationError",
    "InfraUnavailableError",
    "ResourceNotFoundError",
    "ResourceConflictError",
    "WatchExpiredError",
]
