# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure-Specific Error Classes.

Error Hierarchy:
    RuntimeHostError (base error)
    ├── ProtocolConfigurationError
    ├── InfraConnectionError
    ├── InfraTimeoutError
    ├── InfraAuthenticationError
    ├── InfraUnavailableError
    ├── ResourceNotFoundError
    ├── ResourceConflictError
    └── WatchExpiredError

All errors:
    - Carry an EnumErrorCode for classification
    - Support proper error chaining with ``raise ... from e``
    - Accept ModelInfraErrorContext for bundled context parameters
    - Keep extra keyword context in ``error.context`` for logging
"""

from typing import Optional
from uuid import UUID

from resource_liveness.enums import EnumErrorCode
from resource_liveness.errors.model_infra_error_context import ModelInfraErrorContext


class RuntimeHostError(Exception):
    """Base error class for resource liveness errors.

    Structured Fields (via ModelInfraErrorContext):
        transport_type: Type of transport (kubernetes, inmemory, runtime)
        operation: Operation being performed
        correlation_id: Request correlation ID for tracking
        target_name: Target resource/endpoint name

    Example:
        >>> context = ModelInfraErrorContext(
        ...     transport_type=EnumInfraTransportType.KUBERNETES,
        ...     operation="patch",
        ...     target_name="default/my-svc",
        ... )
        >>> raise RuntimeHostError("Operation failed", context=context, retry_count=3)
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[EnumErrorCode] = None,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        """Initialize RuntimeHostError with structured fields.

        Args:
            message: Human-readable error message
            error_code: Error code (defaults to OPERATION_FAILED)
            context: Bundled infrastructure context
            **extra_context: Additional context information
        """
        super().__init__(message)
        structured_context: dict[str, object] = dict(extra_context)

        correlation_id: Optional[UUID] = None
        if context is not None:
            if context.transport_type is not None:
                structured_context["transport_type"] = context.transport_type
            if context.operation is not None:
                structured_context["operation"] = context.operation
            if context.target_name is not None:
                structured_context["target_name"] = context.target_name
            correlation_id = context.correlation_id

        self.message = message
        self.error_code = error_code or EnumErrorCode.OPERATION_FAILED
        self.correlation_id = correlation_id
        self.context = structured_context

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class ProtocolConfigurationError(RuntimeHostError):
    """Raised when configuration or registration arguments are invalid.

    Used for non-positive intervals, empty resource names, malformed
    namespaces or selectors, and bad environment settings. Always raised
    synchronously, before any background task is started.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.INVALID_CONFIGURATION,
            context=context,
            **extra_context,
        )


class InfraConnectionError(RuntimeHostError):
    """Raised when the cluster API cannot be reached."""

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.CONNECTION_ERROR,
            context=context,
            **extra_context,
        )


class InfraTimeoutError(RuntimeHostError):
    """Raised when a cluster API call exceeds its deadline."""

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.TIMEOUT_ERROR,
            context=context,
            **extra_context,
        )


class InfraAuthenticationError(RuntimeHostError):
    """Raised on 401/403 responses.

    Terminal for watch subscriptions: retrying cannot succeed until the
    credentials or RBAC rules change.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.AUTHENTICATION_ERROR,
            context=context,
            **extra_context,
        )


class InfraUnavailableError(RuntimeHostError):
    """Raised when the API server throttles or is temporarily unavailable (429/5xx)."""

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.SERVICE_UNAVAILABLE,
            context=context,
            **extra_context,
        )


class ResourceNotFoundError(RuntimeHostError):
    """Raised when the target resource does not exist (404)."""

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.RESOURCE_NOT_FOUND,
            context=context,
            **extra_context,
        )


class ResourceConflictError(RuntimeHostError):
    """Raised when a create or update conflicts with stored state (409)."""

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.RESOURCE_CONFLICT,
            context=context,
            **extra_context,
        )


class WatchExpiredError(RuntimeHostError):
    """Raised when a watch resumes from a compacted resource version (410 Gone).

    The subscription must re-list to obtain a fresh resource version.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelInfraErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.RESOURCE_EXPIRED,
            context=context,
            **extra_context,
        )


__all__ = [
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
