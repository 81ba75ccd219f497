# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Service manifest rendering.

Turns a ModelServiceSpec into the JSON-shaped Service object sent to the
create call. The liveness annotation is stamped here so the resource
carries an annotations map from the start; later heartbeat patches only
ever replace that one member.
"""

from __future__ import annotations

from typing import Any

from resource_liveness.enums import EnumTimestampFormat
from resource_liveness.models.model_service_spec import ModelServiceSpec
from resource_liveness.utils.util_liveness_patch import (
    DEFAULT_ANNOTATION_KEY,
    format_liveness_timestamp,
)


def build_service_manifest(
    spec: ModelServiceSpec,
    annotation_key: str = DEFAULT_ANNOTATION_KEY,
    now: float | None = None,
    timestamp_format: EnumTimestampFormat = EnumTimestampFormat.EPOCH_SECONDS,
) -> dict[str, Any]:
    """Render a v1 Service manifest for ``spec``.

    Ports are emitted in ascending order and named ``<proto>-<port>`` so the
    manifest is stable for equal specs.
    """
    annotations = dict(spec.annotations)
    annotations[annotation_key] = format_liveness_timestamp(now, timestamp_format)

    ports = [
        {
            "name": f"tcp-{port}",
            "port": port,
            "targetPort": target,
            "protocol": "TCP",
        }
        for port, target in sorted(spec.ports.items())
    ]

    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": spec.name,
            "namespace": spec.namespace,
            "labels": dict(spec.labels),
            "annotations": annotations,
        },
        "spec": {
            "type": "LoadBalancer" if spec.external else "ClusterIP",
            "selector": dict(spec.selectors),
            "ports": ports,
        },
    }


__all__: list[str] = ["build_service_manifest"]
