# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Unit tests for WatchSubscription and ServiceWatchManager.

This test suite validates:
- Initial list delivery and live events, in store order
- Name and label filtering
- Resume after a clean feed close without losing events
- Re-list with diff after feed errors and expired resource versions
- Terminal authentication errors
- Synchronous validation of registrations
- Handler failures do not stop the subscription
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from resource_liveness.enums import EnumSubscriptionState, EnumWatchEventType
from resource_liveness.errors import (
    InfraAuthenticationError,
    InfraConnectionError,
    ProtocolConfigurationError,
    RuntimeHostError,
    WatchExpiredError,
)
from resource_liveness.handlers import InMemoryResourceClient
from resource_liveness.models import ModelWatchConfig, ModelWatchEvent
from resource_liveness.services import (
    ServiceWatchManager,
    WatchSubscription,
    dispatch_to_callbacks,
)
from tests.conftest import service_body, wait_until


class EventRecorder:
    """WatchHandler collecting ``(event_type, name)`` pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []

    def __call__(self, event: ModelWatchEvent) -> None:
        self.events.append((event.event_type.value, event.name))

    def of(self, name: str) -> list[str]:
        return [event_type for event_type, n in self.events if n == name]


async def _started(
    client: InMemoryResourceClient,
    handler: Any,
    config: ModelWatchConfig,
    **kwargs: Any,
) -> WatchSubscription:
    subscription = WatchSubscription(client, "default", handler, config=config, **kwargs)
    subscription.start()
    await wait_until(lambda: subscription.state is EnumSubscriptionState.WATCHING)
    return subscription


class TestDispatchToCallbacks:
    @pytest.mark.asyncio
    async def test_routes_by_kind_sync_and_async(self) -> None:
        added: list[dict[str, Any]] = []
        deleted: list[dict[str, Any]] = []

        async def on_delete(resource: dict[str, Any]) -> None:
            deleted.append(resource)

        handler = dispatch_to_callbacks(on_add=added.append, on_delete=on_delete)
        resource = service_body("a")

        await handler(ModelWatchEvent(event_type=EnumWatchEventType.ADDED, resource=resource))
        await handler(ModelWatchEvent(event_type=EnumWatchEventType.DELETED, resource=resource))
        await handler(ModelWatchEvent(event_type=EnumWatchEventType.MODIFIED, resource=resource))

        assert added == [resource]
        assert deleted == [resource]


class TestWatchDelivery:
    @pytest.mark.asyncio
    async def test_initial_list_then_live_events(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        await inmemory_client.create(service_body("existing"))
        recorder = EventRecorder()
        subscription = await _started(inmemory_client, recorder, fast_watch_config)

        created = await inmemory_client.create(service_body("new"))
        created["metadata"]["labels"]["v"] = "2"
        await inmemory_client.update(created)
        await inmemory_client.delete("new", "default")

        await wait_until(lambda: len(recorder.events) == 4)
        assert recorder.events == [
            ("ADDED", "existing"),
            ("ADDED", "new"),
            ("MODIFIED", "new"),
            ("DELETED", "new"),
        ]
        assert subscription.events_delivered == 4
        await subscription.stop()
        assert subscription.state is EnumSubscriptionState.STOPPED

    @pytest.mark.asyncio
    async def test_name_filter(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        recorder = EventRecorder()
        subscription = await _started(
            inmemory_client, recorder, fast_watch_config, name_filter="target"
        )
        assert subscription.field_selector == "metadata.name=target"

        await inmemory_client.create(service_body("other"))
        await inmemory_client.create(service_body("target"))

        await wait_until(lambda: len(recorder.events) == 1)
        await asyncio.sleep(0.05)
        assert recorder.events == [("ADDED", "target")]
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_label_selector(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        recorder = EventRecorder()
        subscription = await _started(
            inmemory_client, recorder, fast_watch_config, label_selector="owner=agent"
        )

        await inmemory_client.create(service_body("mine", labels={"owner": "agent"}))
        await inmemory_client.create(service_body("theirs", labels={"owner": "user"}))

        await wait_until(lambda: len(recorder.events) >= 1)
        await asyncio.sleep(0.05)
        assert recorder.events == [("ADDED", "mine")]
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_handler_failure_does_not_stop_subscription(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        seen: list[str | None] = []

        def flaky(event: ModelWatchEvent) -> None:
            seen.append(event.name)
            if event.name == "bad":
                raise ValueError("handler bug")

        subscription = await _started(inmemory_client, flaky, fast_watch_config)
        await inmemory_client.create(service_body("bad"))
        await inmemory_client.create(service_body("good"))

        await wait_until(lambda: seen == ["bad", "good"])
        assert subscription.is_running
        assert subscription.events_delivered == 1
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_stop_from_inside_handler(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        seen: list[str | None] = []
        holder: dict[str, WatchSubscription] = {}

        async def stop_on_first(event: ModelWatchEvent) -> None:
            seen.append(event.name)
            await holder["sub"].stop()

        holder["sub"] = await _started(inmemory_client, stop_on_first, fast_watch_config)
        await inmemory_client.create(service_body("a"))
        await inmemory_client.create(service_body("b"))

        await asyncio.wait_for(holder["sub"].wait(), timeout=1.0)
        assert seen == ["a"]


class TestWatchRecovery:
    @pytest.mark.asyncio
    async def test_forced_close_resumes_without_loss(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        created = await inmemory_client.create(service_body("svc"))
        modified: list[dict[str, Any]] = []
        subscription = await _started(
            inmemory_client,
            dispatch_to_callbacks(on_modify=modified.append),
            fast_watch_config,
        )

        assert inmemory_client.close_feeds() == 1
        created["metadata"]["labels"]["v"] = "2"
        await inmemory_client.update(created)

        await wait_until(lambda: len(modified) == 1)
        assert modified[0]["metadata"]["labels"]["v"] == "2"
        assert subscription.reconnect_count >= 1
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_feed_error_relists_and_diffs(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        await inmemory_client.create(service_body("stays"))
        await inmemory_client.create(service_body("goes"))
        recorder = EventRecorder()
        subscription = await _started(inmemory_client, recorder, fast_watch_config)
        await wait_until(lambda: len(recorder.events) == 2)

        inmemory_client.break_feeds(InfraConnectionError("reset"))
        await inmemory_client.delete("goes", "default")
        await inmemory_client.create(service_body("arrives"))

        await wait_until(
            lambda: "DELETED" in recorder.of("goes") and "ADDED" in recorder.of("arrives")
        )
        await asyncio.sleep(0.05)
        assert recorder.of("goes") == ["ADDED", "DELETED"]
        assert recorder.of("arrives") == ["ADDED"]
        assert recorder.of("stays") == ["ADDED"]
        assert inmemory_client.call_counts["list"] >= 2
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_expired_resource_version_relists(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        recorder = EventRecorder()
        subscription = await _started(inmemory_client, recorder, fast_watch_config)

        inmemory_client.fail_next("watch", WatchExpiredError("too old"))
        inmemory_client.close_feeds()
        await inmemory_client.create(service_body("after"))

        await wait_until(lambda: recorder.of("after") == ["ADDED"])
        await wait_until(lambda: inmemory_client.call_counts["list"] >= 2)
        assert subscription.is_running
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_initial_list_failure_retries(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        await inmemory_client.create(service_body("a"))
        inmemory_client.fail_next("list", InfraConnectionError("down"), times=2)
        recorder = EventRecorder()

        subscription = await _started(inmemory_client, recorder, fast_watch_config)

        assert recorder.events == [("ADDED", "a")]
        assert subscription.reconnect_count == 2
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_authentication_error_is_terminal(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        errors: list[RuntimeHostError] = []
        inmemory_client.fail_next("list", InfraAuthenticationError("401 Unauthorized"))

        subscription = WatchSubscription(
            inmemory_client,
            "default",
            EventRecorder(),
            on_error=errors.append,
            config=fast_watch_config,
        )
        subscription.start()
        await asyncio.wait_for(subscription.wait(), timeout=1.0)

        assert subscription.state is EnumSubscriptionState.STOPPED
        assert len(errors) == 1
        assert isinstance(errors[0], InfraAuthenticationError)
        assert inmemory_client.call_counts["list"] == 1


class TestWatchValidation:
    def test_invalid_namespace(self) -> None:
        with pytest.raises(ProtocolConfigurationError):
            WatchSubscription(InMemoryResourceClient(), "Bad_Namespace", EventRecorder())

    def test_invalid_name_filter(self) -> None:
        with pytest.raises(ProtocolConfigurationError):
            WatchSubscription(
                InMemoryResourceClient(), "default", EventRecorder(), name_filter="Not Valid"
            )

    def test_invalid_selector(self) -> None:
        with pytest.raises(ProtocolConfigurationError):
            WatchSubscription(
                InMemoryResourceClient(), "default", EventRecorder(), label_selector="app in (a)"
            )

    @pytest.mark.asyncio
    async def test_cannot_start_twice(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        subscription = await _started(inmemory_client, EventRecorder(), fast_watch_config)
        with pytest.raises(ProtocolConfigurationError):
            subscription.start()
        await subscription.stop()

    @pytest.mark.asyncio
    async def test_stop_before_start(self, inmemory_client: InMemoryResourceClient) -> None:
        subscription = WatchSubscription(inmemory_client, "default", EventRecorder())
        await subscription.stop()
        assert subscription.state is EnumSubscriptionState.STOPPED


class TestServiceWatchManager:
    @pytest.mark.asyncio
    async def test_watch_and_stop_all(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        async with ServiceWatchManager(inmemory_client, fast_watch_config) as manager:
            first = await manager.watch("default", EventRecorder())
            second = await manager.watch("default", EventRecorder(), name_filter="svc")
            assert set(manager.subscriptions) == {first, second}

        assert first.state is EnumSubscriptionState.STOPPED
        assert second.state is EnumSubscriptionState.STOPPED
        assert manager.subscriptions == []

    @pytest.mark.asyncio
    async def test_stop_before_first_step(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        manager = ServiceWatchManager(inmemory_client, fast_watch_config)
        subscription = await manager.watch("default", EventRecorder())
        await subscription.stop()

        await asyncio.wait_for(subscription.wait(), timeout=0.5)
        assert subscription.state is EnumSubscriptionState.STOPPED
        assert manager.subscriptions == []
        assert inmemory_client.call_counts["list"] == 0

    @pytest.mark.asyncio
    async def test_stopped_subscriptions_are_released(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        manager = ServiceWatchManager(inmemory_client, fast_watch_config)
        for _ in range(20):
            subscription = await manager.watch("default", EventRecorder())
            await asyncio.sleep(0.01)
            await subscription.stop()

        assert manager._subscriptions == set()

    @pytest.mark.asyncio
    async def test_terminal_error_releases_subscription(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        inmemory_client.fail_next("list", InfraAuthenticationError("403 Forbidden"))
        manager = ServiceWatchManager(inmemory_client, fast_watch_config)
        subscription = await manager.watch("default", EventRecorder())

        await asyncio.wait_for(subscription.wait(), timeout=1.0)
        assert manager._subscriptions == set()

    @pytest.mark.asyncio
    async def test_invalid_registration_starts_nothing(
        self,
        inmemory_client: InMemoryResourceClient,
        fast_watch_config: ModelWatchConfig,
    ) -> None:
        manager = ServiceWatchManager(inmemory_client, fast_watch_config)
        with pytest.raises(ProtocolConfigurationError):
            await manager.watch("default", EventRecorder(), label_selector="=x")
        assert manager.subscriptions == []
        assert inmemory_client.call_counts["list"] == 0
