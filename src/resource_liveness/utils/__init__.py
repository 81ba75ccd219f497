# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Utility modules for resource liveness.

This package provides common utilities used across the subsystem:
    - util_env_parsing: Type-safe environment variable parsing with validation
    - util_label_selector: Label matching and selector parsing
    - util_liveness_patch: Liveness JSON patch encoding
    - util_resource_name_validation: Namespace and object name validation
    - util_service_manifest: Service manifest rendering
"""

from resource_liveness.utils.util_env_parsing import (
    parse_env_enum,
    parse_env_float,
    parse_env_str,
)
from resource_liveness.utils.util_label_selector import (
    labels_match,
    parse_label_selector,
    selector_from_labels,
    selector_matches,
)
from resource_liveness.utils.util_liveness_patch import (
    DEFAULT_ANNOTATION_KEY,
    JSON_PATCH_CONTENT_TYPE,
    encode_liveness_patch,
    format_liveness_timestamp,
)
from resource_liveness.utils.util_resource_name_validation import (
    validate_namespace,
    validate_resource_name,
)

__all__: list[str] = [
    "DEFAULT_ANNOTATION_KEY",
    "JSON_PATCH_CONTENT_TYPE",
    "encode_liveness_patch",
    "format_liveness_timestamp",
    "labels_match",
    "parse_env_enum",
    "parse_env_float",
    "parse_env_str",
    "parse_label_selector",
    "selector_from_labels",
    "selector_matches",
    "validate_namespace",
    "validate_resource_name",
]
