# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Label selector helpers.

Supports the equality-based subset of the Kubernetes label selector
grammar, which is what the agent uses to find the services it owns:

    ``key=value``, ``key==value``, ``key!=value``, ``key`` (exists), ``!key``

Set-based requirements (``in``, ``notin``) are rejected as configuration
errors.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from resource_liveness.enums import EnumInfraTransportType
from resource_liveness.errors import ModelInfraErrorContext, ProtocolConfigurationError

_LABEL_NAME_RE = re.compile(r"^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$")
_LABEL_PREFIX_RE = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)

# (key, operator, value); operator is one of "=", "!=", "exists", "!exists"
LabelRequirement = tuple[str, str, str]


def labels_match(
    required: Mapping[str, str] | None,
    candidate: Mapping[str, str] | None,
) -> bool:
    """Return True if every required label is present in candidate with the same value.

    An empty requirement matches everything; a missing candidate only
    matches an empty requirement.
    """
    if not required:
        return True
    if not candidate:
        return False
    return all(candidate.get(key) == value for key, value in required.items())


def selector_from_labels(labels: Mapping[str, str] | None) -> str:
    """Render a label map as a comma-separated equality selector.

    Keys are sorted so the same map always renders to the same string.
    """
    if not labels:
        return ""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def _invalid(selector: str, reason: str) -> ProtocolConfigurationError:
    return ProtocolConfigurationError(
        f"Invalid label selector '{selector}': {reason}",
        context=ModelInfraErrorContext.with_correlation(
            transport_type=EnumInfraTransportType.RUNTIME,
            operation="parse_label_selector",
        ),
        parameter="label_selector",
        value=selector,
    )


def _validate_key(selector: str, key: str) -> None:
    prefix, _, name = key.rpartition("/")
    if prefix and (len(prefix) > 253 or not _LABEL_PREFIX_RE.match(prefix)):
        raise _invalid(selector, f"bad key prefix '{prefix}'")
    if not name or len(name) > 63 or not _LABEL_NAME_RE.match(name):
        raise _invalid(selector, f"bad key '{key}'")


def _validate_value(selector: str, value: str) -> None:
    if value and (len(value) > 63 or not _LABEL_NAME_RE.match(value)):
        raise _invalid(selector, f"bad value '{value}'")


def parse_label_selector(selector: str | None) -> list[LabelRequirement]:
    """Parse an equality-based label selector into requirements.

    Args:
        selector: Selector text; None or blank selects everything.

    Returns:
        Parsed requirements in selector order.

    Raises:
        ProtocolConfigurationError: If the selector is malformed.
    """
    if selector is None or not selector.strip():
        return []

    requirements: list[LabelRequirement] = []
    for raw_term in selector.split(","):
        term = raw_term.strip()
        if not term:
            raise _invalid(selector, "empty requirement")
        if " in " in term or " notin " in term or "(" in term:
            raise _invalid(selector, "set-based requirements are not supported")

        if "!=" in term:
            key, _, value = term.partition("!=")
            operator = "!="
        elif "==" in term:
            key, _, value = term.partition("==")
            operator = "="
        elif "=" in term:
            key, _, value = term.partition("=")
            operator = "="
        elif term.startswith("!"):
            key, value, operator = term[1:], "", "!exists"
        else:
            key, value, operator = term, "", "exists"

        key, value = key.strip(), value.strip()
        _validate_key(selector, key)
        _validate_value(selector, value)
        requirements.append((key, operator, value))
    return requirements


def selector_matches(
    requirements: list[LabelRequirement],
    labels: Mapping[str, str] | None,
) -> bool:
    """Return True if labels satisfy every parsed requirement."""
    labels = labels or {}
    for key, operator, value in requirements:
        if operator == "=" and labels.get(key) != value:
            return False
        if operator == "!=" and labels.get(key) == value:
            return False
        if operator == "exists" and key not in labels:
            return False
        if operator == "!exists" and key in labels:
            return False
    return True


__all__: list[str] = [
    "LabelRequirement",
    "labels_match",
    "parse_label_selector",
    "selector_from_labels",
    "selector_matches",
]
