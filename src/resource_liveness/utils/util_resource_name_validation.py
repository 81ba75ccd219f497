# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Kubernetes object name and namespace validation.

Validation rules (per the Kubernetes object naming documentation):
    - Namespaces are DNS-1123 labels: at most 63 characters, lowercase
      alphanumerics and ``-``, starting and ending with an alphanumeric
    - Object names are DNS-1123 subdomains: at most 253 characters, one or
      more DNS-1123 labels joined by ``.``

Reference:
    https://kubernetes.io/docs/concepts/overview/working-with-objects/names/

Example:
    >>> validate_namespace("default")                 # passes silently
    >>> validate_resource_name("my-svc.v1")           # passes silently
    >>> validate_namespace("Bad_NS")                  # raises ProtocolConfigurationError
"""

from __future__ import annotations

import re
from uuid import UUID

from resource_liveness.enums import EnumInfraTransportType
from resource_liveness.errors import ModelInfraErrorContext, ProtocolConfigurationError

_DNS1123_LABEL_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_DNS1123_SUBDOMAIN_RE = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)

_MAX_LABEL_LENGTH = 63
_MAX_SUBDOMAIN_LENGTH = 253


def _context(operation: str, correlation_id: UUID | None) -> ModelInfraErrorContext:
    return ModelInfraErrorContext.with_correlation(
        correlation_id=correlation_id,
        transport_type=EnumInfraTransportType.RUNTIME,
        operation=operation,
    )


def validate_namespace(
    namespace: str,
    correlation_id: UUID | None = None,
) -> None:
    """Validate a namespace as a DNS-1123 label.

    Args:
        namespace: The namespace to validate.
        correlation_id: Optional correlation ID for error context.

    Raises:
        ProtocolConfigurationError: If the namespace is empty, too long or
            contains characters outside ``[a-z0-9-]``.
    """
    if not namespace:
        raise ProtocolConfigurationError(
            "Namespace cannot be empty",
            context=_context("validate_namespace", correlation_id),
            parameter="namespace",
        )
    if len(namespace) > _MAX_LABEL_LENGTH or not _DNS1123_LABEL_RE.match(namespace):
        raise ProtocolConfigurationError(
            f"Namespace '{namespace}' is not a valid DNS-1123 label",
            context=_context("validate_namespace", correlation_id),
            parameter="namespace",
            value=namespace,
        )


def validate_resource_name(
    name: str,
    correlation_id: UUID | None = None,
) -> None:
    """Validate an object name as a DNS-1123 subdomain.

    Args:
        name: The object name to validate.
        correlation_id: Optional correlation ID for error context.

    Raises:
        ProtocolConfigurationError: If the name is empty or malformed.
    """
    if not name:
        raise ProtocolConfigurationError(
            "Resource name cannot be empty",
            context=_context("validate_resource_name", correlation_id),
            parameter="name",
        )
    if len(name) > _MAX_SUBDOMAIN_LENGTH or not _DNS1123_SUBDOMAIN_RE.match(name):
        raise ProtocolConfigurationError(
            f"Resource name '{name}' is not a valid DNS-1123 subdomain",
            context=_context("validate_resource_name", correlation_id),
            parameter="name",
            value=name,
        )


__all__: list[str] = ["validate_namespace", "validate_resource_name"]
