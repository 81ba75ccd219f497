# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Liveness patch encoding.

Builds the JSON patch (RFC 6902) that stamps the liveness annotation onto a
resource. The document has exactly one ``add`` operation; ``add`` on an
existing object member replaces its value, so the same patch can be sent
any number of times and never touches other annotations.

The patch is blind: it is built without reading the resource, so
concurrent heartbeats from several agents cannot race on a stale read.
The target resource must already carry a ``metadata.annotations`` map,
which the service manifest builder guarantees by stamping the annotation
at creation time.

Example:
    >>> encode_liveness_patch(annotation_key="kt-last-heart-beat", now=1760712000)
    b'[{"op": "add", "path": "/metadata/annotations/kt-last-heart-beat", "value": "1760712000"}]'
"""

from __future__ import annotations

import json
import time
from datetime import UTC, datetime

from resource_liveness.enums import EnumTimestampFormat

# Annotation read by the reaper. Overridable through ModelHeartbeatConfig.
DEFAULT_ANNOTATION_KEY = "kt-last-heart-beat"

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


def escape_json_pointer(token: str) -> str:
    """Escape one JSON pointer reference token (RFC 6901 section 3)."""
    return token.replace("~", "~0").replace("/", "~1")


def format_liveness_timestamp(
    now: float | None = None,
    timestamp_format: EnumTimestampFormat = EnumTimestampFormat.EPOCH_SECONDS,
) -> str:
    """Render ``now`` (unix seconds, default current time) as an annotation value."""
    if now is None:
        now = time.time()
    if timestamp_format is EnumTimestampFormat.RFC3339:
        return datetime.fromtimestamp(now, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return str(int(now))


def build_liveness_patch(
    annotation_key: str = DEFAULT_ANNOTATION_KEY,
    now: float | None = None,
    timestamp_format: EnumTimestampFormat = EnumTimestampFormat.EPOCH_SECONDS,
) -> list[dict[str, str]]:
    """Return the liveness patch as a list of JSON patch operations."""
    return [
        {
            "op": "add",
            "path": f"/metadata/annotations/{escape_json_pointer(annotation_key)}",
            "value": format_liveness_timestamp(now, timestamp_format),
        }
    ]


def encode_liveness_patch(
    annotation_key: str = DEFAULT_ANNOTATION_KEY,
    now: float | None = None,
    timestamp_format: EnumTimestampFormat = EnumTimestampFormat.EPOCH_SECONDS,
) -> bytes:
    """Encode the liveness patch as UTF-8 JSON bytes ready to send."""
    return json.dumps(
        build_liveness_patch(annotation_key, now, timestamp_format)
    ).encode("utf-8")


__all__: list[str] = [
    "DEFAULT_ANNOTATION_KEY",
    "JSON_PATCH_CONTENT_TYPE",
    "build_liveness_patch",
    "encode_liveness_patch",
    "escape_json_pointer",
    "format_liveness_timestamp",
]
