# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Lifecycle Facade.

The only component that talks to the CRUD collaborator directly. Creating
a resource through the facade starts its heartbeat; removing it stops the
heartbeat first. Watch registration is forwarded to the watch manager.

Creation failures propagate unchanged and leave no heartbeat behind; the
facade does not retry.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from resource_liveness.models.model_heartbeat_config import ModelHeartbeatConfig
from resource_liveness.models.model_resource_key import ModelResourceKey
from resource_liveness.models.model_service_spec import ModelServiceSpec
from resource_liveness.models.model_watch_config import ModelWatchConfig
from resource_liveness.protocols.protocol_resource_client import ProtocolResourceClient
from resource_liveness.services.service_heartbeat_coordinator import (
    HeartbeatHandle,
    ServiceHeartbeatCoordinator,
)
from resource_liveness.services.service_watch_subscription import (
    ErrorHandler,
    ResourceCallback,
    ServiceWatchManager,
    WatchHandler,
    WatchSubscription,
    dispatch_to_callbacks,
)
from resource_liveness.utils.util_label_selector import (
    labels_match,
    selector_from_labels,
)
from resource_liveness.utils.util_liveness_patch import encode_liveness_patch
from resource_liveness.utils.util_service_manifest import build_service_manifest

logger = logging.getLogger(__name__)


class ServiceResourceLifecycle:
    """Creates, tracks, watches and removes resources for one agent session.

    Example:
        ```python
        async with ServiceResourceLifecycle(client) as lifecycle:
            await lifecycle.create_and_track(spec)
            await lifecycle.watch("default", name_filter=spec.name, on_delete=cleanup)
        ```
    """

    def __init__(
        self,
        client: ProtocolResourceClient,
        coordinator: ServiceHeartbeatCoordinator | None = None,
        watch_manager: ServiceWatchManager | None = None,
        *,
        heartbeat_config: ModelHeartbeatConfig | None = None,
        watch_config: ModelWatchConfig | None = None,
    ) -> None:
        self._client = client
        self._coordinator = coordinator or ServiceHeartbeatCoordinator(heartbeat_config)
        self._watch_manager = watch_manager or ServiceWatchManager(client, watch_config)

    @property
    def coordinator(self) -> ServiceHeartbeatCoordinator:
        return self._coordinator

    @property
    def watch_manager(self) -> ServiceWatchManager:
        return self._watch_manager

    async def _patch_liveness(self, name: str, namespace: str) -> None:
        config = self._coordinator.config
        await self._client.patch(
            name,
            namespace,
            encode_liveness_patch(
                annotation_key=config.annotation_key,
                timestamp_format=config.timestamp_format,
            ),
        )

    async def create_and_track(self, spec: ModelServiceSpec) -> dict[str, Any]:
        """Create the resource and, on success, start its heartbeat.

        Raises:
            RuntimeHostError: Whatever the create call raised; no heartbeat
                is started in that case.
        """
        key = spec.key
        config = self._coordinator.config
        manifest = build_service_manifest(
            spec,
            annotation_key=config.annotation_key,
            timestamp_format=config.timestamp_format,
        )
        resource = await self._client.create(manifest)
        await self._coordinator.start_heartbeat(key, self._patch_liveness)
        logger.info(
            f"Created and tracking {spec.namespace}/{spec.name}",
            extra={"resource_name": spec.name, "namespace": spec.namespace},
        )
        return resource

    async def start_heartbeat(
        self,
        name: str,
        namespace: str,
        interval_seconds: float | None = None,
    ) -> HeartbeatHandle:
        """Track an existing resource without creating it."""
        return await self._coordinator.start_heartbeat(
            ModelResourceKey(name=name, namespace=namespace),
            self._patch_liveness,
            interval_seconds=interval_seconds,
        )

    async def touch(self, name: str, namespace: str) -> None:
        """Send one liveness patch now."""
        await self._patch_liveness(name, namespace)

    async def get(self, name: str, namespace: str) -> dict[str, Any]:
        return await self._client.get(name, namespace)

    async def list_all(self, namespace: str) -> list[dict[str, Any]]:
        return (await self._client.list(namespace)).items

    async def list_by_label(
        self,
        labels: Mapping[str, str],
        namespace: str,
    ) -> list[dict[str, Any]]:
        """Resources whose own labels include ``labels`` (server-side selector)."""
        snapshot = await self._client.list(
            namespace,
            label_selector=selector_from_labels(labels) or None,
        )
        return snapshot.items

    async def list_by_selector(
        self,
        match_labels: Mapping[str, str],
        namespace: str,
    ) -> list[dict[str, Any]]:
        """Resources whose ``spec.selector`` includes every pair in ``match_labels``."""
        snapshot = await self._client.list(namespace)
        return [
            item
            for item in snapshot.items
            if labels_match(match_labels, (item.get("spec") or {}).get("selector"))
        ]

    async def update(self, resource: dict[str, Any]) -> dict[str, Any]:
        return await self._client.update(resource)

    async def remove(self, name: str, namespace: str) -> None:
        """Stop the heartbeat, then delete the resource."""
        await self._coordinator.stop_heartbeat(
            ModelResourceKey(name=name, namespace=namespace)
        )
        await self._client.delete(name, namespace)
        logger.info(
            f"Removed {namespace}/{name}",
            extra={"resource_name": name, "namespace": namespace},
        )

    async def watch(
        self,
        namespace: str,
        name_filter: str | None = None,
        on_add: ResourceCallback | None = None,
        on_delete: ResourceCallback | None = None,
        on_modify: ResourceCallback | None = None,
        *,
        handler: WatchHandler | None = None,
        label_selector: str | None = None,
        on_error: ErrorHandler | None = None,
    ) -> WatchSubscription:
        """Register a watch with per-kind callbacks or a single event handler.

        ``handler`` takes precedence over the three callbacks when given. An
        empty ``name_filter`` watches every resource in the namespace.
        """
        return await self._watch_manager.watch(
            namespace,
            handler or dispatch_to_callbacks(on_add, on_delete, on_modify),
            name_filter=name_filter or None,
            label_selector=label_selector,
            on_error=on_error,
        )

    async def close(self) -> None:
        """Stop every heartbeat and subscription owned by this facade."""
        await self._coordinator.stop_all()
        await self._watch_manager.stop_all()

    async def __aenter__(self) -> ServiceResourceLifecycle:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


__all__: list[str] = ["ServiceResourceLifecycle"]
