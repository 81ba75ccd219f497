# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for ServiceResourceLifecycle."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from resource_liveness.enums import EnumSubscriptionState
from resource_liveness.errors import (
    InfraConnectionError,
    ProtocolConfigurationError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from resource_liveness.handlers import InMemoryResourceClient
from resource_liveness.models import (
    ModelHeartbeatConfig,
    ModelResourceKey,
    ModelServiceSpec,
    ModelWatchConfig,
)
from resource_liveness.services import ServiceResourceLifecycle
from tests.conftest import service_body, wait_until

ANNOTATION = "kt-last-heart-beat"


def _spec(name: str = "web", **kwargs: Any) -> ModelServiceSpec:
    return ModelServiceSpec(name=name, namespace="default", ports={80: 8080}, **kwargs)


@pytest.fixture
def lifecycle_factory(
    inmemory_client: InMemoryResourceClient,
    fast_watch_config: ModelWatchConfig,
) -> Any:
    def build(interval: float = 0.1) -> ServiceResourceLifecycle:
        return ServiceResourceLifecycle(
            inmemory_client,
            heartbeat_config=ModelHeartbeatConfig(interval_seconds=interval),
            watch_config=fast_watch_config,
        )

    return build


class TestCreateAndTrack:
    @pytest.mark.asyncio
    async def test_creates_stamped_resource_and_heartbeats(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        async with lifecycle_factory() as lifecycle:
            created = await lifecycle.create_and_track(_spec(labels={"owner": "agent"}))

            assert ANNOTATION in created["metadata"]["annotations"]
            assert lifecycle.coordinator.active_keys() == [
                ModelResourceKey(name="web", namespace="default")
            ]
            await wait_until(lambda: inmemory_client.call_counts["patch"] >= 2)

        patches = inmemory_client.call_counts["patch"]
        await asyncio.sleep(0.25)
        assert inmemory_client.call_counts["patch"] == patches

    @pytest.mark.asyncio
    async def test_create_failure_starts_no_heartbeat(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        inmemory_client.fail_next("create", InfraConnectionError("api down"))
        lifecycle = lifecycle_factory()

        with pytest.raises(InfraConnectionError):
            await lifecycle.create_and_track(_spec())

        assert lifecycle.coordinator.active_keys() == []
        await asyncio.sleep(0.15)
        assert inmemory_client.call_counts["patch"] == 0

    @pytest.mark.asyncio
    async def test_existing_resource_conflicts(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        await inmemory_client.create(service_body("web"))
        lifecycle = lifecycle_factory()

        with pytest.raises(ResourceConflictError):
            await lifecycle.create_and_track(_spec())
        assert lifecycle.coordinator.active_keys() == []

    @pytest.mark.asyncio
    async def test_invalid_spec_never_calls_create(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        lifecycle = lifecycle_factory()
        with pytest.raises(ProtocolConfigurationError):
            await lifecycle.create_and_track(
                ModelServiceSpec(name="Bad Name", namespace="default")
            )
        assert inmemory_client.call_counts["create"] == 0


class TestLifecycleOperations:
    @pytest.mark.asyncio
    async def test_remove_stops_heartbeat_then_deletes(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        lifecycle = lifecycle_factory()
        await lifecycle.create_and_track(_spec())

        await lifecycle.remove("web", "default")

        assert lifecycle.coordinator.active_keys() == []
        with pytest.raises(ResourceNotFoundError):
            await lifecycle.get("web", "default")

    @pytest.mark.asyncio
    async def test_touch_updates_annotation(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        await inmemory_client.create(service_body("web"))
        lifecycle = lifecycle_factory()

        await lifecycle.touch("web", "default")

        resource = await lifecycle.get("web", "default")
        assert int(resource["metadata"]["annotations"][ANNOTATION]) > 0

    @pytest.mark.asyncio
    async def test_start_heartbeat_for_existing(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        await inmemory_client.create(service_body("web"))
        async with lifecycle_factory() as lifecycle:
            handle = await lifecycle.start_heartbeat("web", "default", 0.05)
            await wait_until(lambda: handle.tick_count >= 2)
            assert handle.failure_count == 0

    @pytest.mark.asyncio
    async def test_list_queries(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        await inmemory_client.create(
            service_body("a", labels={"owner": "agent"}, selector={"app": "web"})
        )
        await inmemory_client.create(
            service_body("b", labels={"owner": "user"}, selector={"app": "web", "v": "2"})
        )
        await inmemory_client.create(service_body("c", selector={"app": "db"}))
        lifecycle = lifecycle_factory()

        everything = await lifecycle.list_all("default")
        by_label = await lifecycle.list_by_label({"owner": "agent"}, "default")
        by_selector = await lifecycle.list_by_selector({"app": "web"}, "default")

        def names(items: list[dict[str, Any]]) -> list[str]:
            return [item["metadata"]["name"] for item in items]

        assert names(everything) == ["a", "b", "c"]
        assert names(by_label) == ["a"]
        assert names(by_selector) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_update(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        lifecycle = lifecycle_factory(interval=10)
        created = await lifecycle.create_and_track(_spec())
        created["metadata"]["labels"]["stage"] = "2"

        updated = await lifecycle.update(created)

        assert updated["metadata"]["labels"]["stage"] == "2"
        await lifecycle.close()

    @pytest.mark.asyncio
    async def test_watch_callbacks_and_close(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        added: list[str] = []
        deleted: list[str] = []
        lifecycle = lifecycle_factory(interval=10)

        subscription = await lifecycle.watch(
            "default",
            name_filter="web",
            on_add=lambda r: added.append(r["metadata"]["name"]),
            on_delete=lambda r: deleted.append(r["metadata"]["name"]),
        )
        await wait_until(lambda: subscription.state is EnumSubscriptionState.WATCHING)
        await lifecycle.create_and_track(_spec())
        await lifecycle.remove("web", "default")

        await wait_until(lambda: deleted == ["web"])
        assert added == ["web"]

        await lifecycle.close()
        assert not subscription.is_running
        assert lifecycle.watch_manager.subscriptions == []

    @pytest.mark.asyncio
    async def test_empty_name_filter_watches_all(
        self,
        inmemory_client: InMemoryResourceClient,
        lifecycle_factory: Any,
    ) -> None:
        added: list[str] = []
        lifecycle = lifecycle_factory(interval=10)

        subscription = await lifecycle.watch(
            "default",
            name_filter="",
            on_add=lambda r: added.append(r["metadata"]["name"]),
        )
        assert subscription.name_filter is None
        await wait_until(lambda: subscription.state is EnumSubscriptionState.WATCHING)
        await inmemory_client.create(service_body("web"))
        await inmemory_client.create(service_body("api"))

        await wait_until(lambda: sorted(added) == ["api", "web"])
        await lifecycle.close()
