# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Watch Subsystem.

Runs a long-lived list-watch subscription for the resources of one
namespace, optionally narrowed to a single name and/or a label selector,
and hands every change to a caller-supplied handler as a ModelWatchEvent.

Algorithm:
    1. List to get a consistent snapshot and the collection resource version.
    2. Watch from that resource version, delivering events one at a time in
       feed order.
    3. When the feed closes cleanly (server-side timeout, forced close) it
       is re-opened from the last seen resource version.
    4. When the feed errors or the resource version has expired (410), the
       subscription re-lists and then re-watches. Transient errors wait a
       jittered, doubling backoff first.
    5. Re-lists are diffed against a local cache so each store change
       produces exactly one event: unseen -> ADDED, changed resourceVersion
       -> MODIFIED, vanished -> DELETED (with the last known state).

State Transitions:
    CREATED -> LISTING -> WATCHING -> (RECONNECTING -> [LISTING ->] WATCHING)* -> STOPPED

Authentication failures (401/403) are terminal: the error goes to
``on_error`` (or the log) and the subscription stops.

Example:
    ```python
    manager = ServiceWatchManager(client)
    subscription = await manager.watch(
        "default",
        dispatch_to_callbacks(on_add=print, on_delete=print),
        name_filter="my-svc",
    )
    ...
    await subscription.stop()
    ```
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

from resource_liveness.enums import (
    EnumInfraTransportType,
    EnumSubscriptionState,
    EnumWatchEventType,
)
from resource_liveness.errors import (
    InfraAuthenticationError,
    ModelInfraErrorContext,
    ProtocolConfigurationError,
    RuntimeHostError,
    WatchExpiredError,
)
from resource_liveness.models.model_watch_config import ModelWatchConfig
from resource_liveness.models.model_watch_event import ModelWatchEvent, resource_metadata
from resource_liveness.protocols.protocol_resource_client import ProtocolResourceClient
from resource_liveness.utils.util_label_selector import parse_label_selector
from resource_liveness.utils.util_resource_name_validation import (
    validate_namespace,
    validate_resource_name,
)

logger = logging.getLogger(__name__)

WatchHandler = Callable[[ModelWatchEvent], Awaitable[None] | None]
ResourceCallback = Callable[[dict[str, Any]], Awaitable[None] | None]
ErrorHandler = Callable[[RuntimeHostError], Awaitable[None] | None]


def dispatch_to_callbacks(
    on_add: ResourceCallback | None = None,
    on_delete: ResourceCallback | None = None,
    on_modify: ResourceCallback | None = None,
) -> WatchHandler:
    """Adapt three optional per-kind callbacks onto a single WatchHandler.

    Each callback receives the resource dict and may be sync or async. A
    missing callback makes that event kind a no-op.
    """
    callbacks: dict[EnumWatchEventType, ResourceCallback | None] = {
        EnumWatchEventType.ADDED: on_add,
        EnumWatchEventType.DELETED: on_delete,
        EnumWatchEventType.MODIFIED: on_modify,
    }

    async def handler(event: ModelWatchEvent) -> None:
        callback = callbacks[event.event_type]
        if callback is None:
            return
        result = callback(event.resource)
        if inspect.isawaitable(result):
            await result

    return handler


def _resource_name(resource: dict[str, Any]) -> str:
    return str(resource_metadata(resource).get("name", ""))


def _resource_version(resource: dict[str, Any]) -> str | None:
    return resource_metadata(resource).get("resourceVersion")


class WatchSubscription:
    """One list-watch subscription and its background task.

    Attributes:
        reconnect_count: Number of times the feed was re-opened.
        events_delivered: Events handed to the handler without error.
    """

    def __init__(
        self,
        client: ProtocolResourceClient,
        namespace: str,
        handler: WatchHandler,
        *,
        name_filter: str | None = None,
        label_selector: str | None = None,
        on_error: ErrorHandler | None = None,
        config: ModelWatchConfig | None = None,
        on_finished: Callable[[WatchSubscription], None] | None = None,
    ) -> None:
        """Validate the registration and create a subscription in CREATED state.

        ``on_finished`` is called once, when the subscription reaches STOPPED.

        Raises:
            ProtocolConfigurationError: If the namespace, name filter or
                label selector is malformed.
        """
        validate_namespace(namespace)
        if name_filter is not None:
            validate_resource_name(name_filter)
        parse_label_selector(label_selector)

        self._client = client
        self._namespace = namespace
        self._name_filter = name_filter
        self._label_selector = label_selector or None
        self._handler = handler
        self._on_error = on_error
        self._on_finished = on_finished
        self._config = config or ModelWatchConfig()

        self._state = EnumSubscriptionState.CREATED
        self._cache: dict[str, dict[str, Any]] = {}
        self._resource_version: str | None = None
        self._stop_event = asyncio.Event()
        self._stopped = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

        self.reconnect_count = 0
        self.events_delivered = 0

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def name_filter(self) -> str | None:
        return self._name_filter

    @property
    def label_selector(self) -> str | None:
        return self._label_selector

    @property
    def field_selector(self) -> str | None:
        """Server-side field selector: the name filter, or nothing."""
        if self._name_filter is None:
            return None
        return f"metadata.name={self._name_filter}"

    @property
    def state(self) -> EnumSubscriptionState:
        return self._state

    @property
    def resource_version(self) -> str | None:
        return self._resource_version

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _log_extra(self, **fields: object) -> dict[str, object]:
        return {
            "namespace": self._namespace,
            "name_filter": self._name_filter,
            "label_selector": self._label_selector,
            **fields,
        }

    def start(self) -> None:
        """Start the background list-watch task.

        Raises:
            ProtocolConfigurationError: If the subscription was already started
                or has stopped.
        """
        if self._state is not EnumSubscriptionState.CREATED:
            raise ProtocolConfigurationError(
                f"Watch subscription cannot start from state {self._state.value}",
                context=ModelInfraErrorContext.with_correlation(
                    transport_type=EnumInfraTransportType.RUNTIME,
                    operation="start_watch",
                    target_name=self._namespace,
                ),
                state=self._state.value,
            )
        self._state = EnumSubscriptionState.LISTING
        self._task = asyncio.create_task(
            self._run(),
            name=f"watch-{self._namespace}-{self._name_filter or '*'}",
        )

    async def stop(self) -> None:
        """Stop the subscription; no handler runs after this returns.

        Safe to call multiple times, before start, and from inside the handler.
        """
        self._stop_event.set()
        task = self._task
        if task is not None and task is asyncio.current_task():
            return
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A task cancelled before its first step never runs its finally block.
        self._mark_stopped()

    async def wait(self) -> None:
        """Block until the subscription reaches STOPPED."""
        await self._stopped.wait()

    def _mark_stopped(self) -> None:
        if self._stopped.is_set():
            return
        self._state = EnumSubscriptionState.STOPPED
        self._stopped.set()
        if self._on_finished is not None:
            self._on_finished(self)

    async def _deliver(self, event: ModelWatchEvent) -> None:
        if self._stop_event.is_set():
            return
        try:
            result = self._handler(event)
            if inspect.isawaitable(result):
                await result
            self.events_delivered += 1
        except Exception as e:
            logger.error(  # noqa: G201
                f"Watch handler failed for {event.event_type.value} {event.name}",
                extra=self._log_extra(
                    event_type=event.event_type.value,
                    resource_name=event.name,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
                exc_info=True,
            )

    async def _list_and_sync(self) -> None:
        """List, diff against the cache and deliver the differences."""
        self._state = EnumSubscriptionState.LISTING
        snapshot = await self._client.list(
            self._namespace,
            field_selector=self.field_selector,
            label_selector=self._label_selector,
        )

        fresh: dict[str, dict[str, Any]] = {}
        events: list[ModelWatchEvent] = []
        for item in snapshot.items:
            name = _resource_name(item)
            fresh[name] = item
            previous = self._cache.get(name)
            if previous is None:
                events.append(ModelWatchEvent(event_type=EnumWatchEventType.ADDED, resource=item))
            elif _resource_version(previous) != _resource_version(item):
                events.append(
                    ModelWatchEvent(event_type=EnumWatchEventType.MODIFIED, resource=item)
                )
        for name, previous in self._cache.items():
            if name not in fresh:
                events.append(
                    ModelWatchEvent(event_type=EnumWatchEventType.DELETED, resource=previous)
                )

        self._cache = fresh
        self._resource_version = snapshot.resource_version
        logger.debug(
            f"Listed {len(fresh)} resource(s) in {self._namespace}",
            extra=self._log_extra(
                item_count=len(fresh),
                resource_version=self._resource_version,
            ),
        )
        for event in events:
            await self._deliver(event)

    async def _handle_raw_event(self, raw: dict[str, Any]) -> None:
        raw_type = str(raw.get("type", ""))
        resource = raw.get("object")
        if not isinstance(resource, dict):
            resource = {}
        version = _resource_version(resource)

        if raw_type == "BOOKMARK":
            if version:
                self._resource_version = version
            return
        try:
            event_type = EnumWatchEventType(raw_type)
        except ValueError:
            logger.warning(
                f"Ignoring unknown watch event type '{raw_type}'",
                extra=self._log_extra(event_type=raw_type),
            )
            return

        name = _resource_name(resource)
        if event_type is EnumWatchEventType.DELETED:
            self._cache.pop(name, None)
        else:
            # Same reconciliation as an informer store: ADDED for a known
            # object is an update, MODIFIED for an unknown one is an add.
            known = name in self._cache
            if event_type is EnumWatchEventType.ADDED and known:
                event_type = EnumWatchEventType.MODIFIED
            elif event_type is EnumWatchEventType.MODIFIED and not known:
                event_type = EnumWatchEventType.ADDED
            self._cache[name] = resource

        if version:
            self._resource_version = version
        await self._deliver(ModelWatchEvent(event_type=event_type, resource=resource))

    async def _consume_feed(self) -> None:
        self._state = EnumSubscriptionState.WATCHING
        feed = self._client.watch(
            self._namespace,
            resource_version=self._resource_version,
            field_selector=self.field_selector,
            label_selector=self._label_selector,
            timeout_seconds=self._config.watch_timeout_seconds,
        )
        try:
            async for raw in feed:
                if self._stop_event.is_set():
                    break
                await self._handle_raw_event(raw)
        finally:
            aclose = getattr(feed, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _report_terminal(self, error: RuntimeHostError) -> None:
        logger.error(
            f"Watch on {self._namespace} stopped by terminal error",
            extra=self._log_extra(
                error_type=type(error).__name__,
                error_message=str(error),
            ),
        )
        if self._on_error is None:
            return
        try:
            result = self._on_error(error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(  # noqa: G201
                "Watch error handler failed",
                extra=self._log_extra(
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
                exc_info=True,
            )

    async def _backoff(self, delay: float) -> None:
        jittered = delay * (0.5 + random.random())  # noqa: S311
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=jittered)
        except TimeoutError:
            pass

    async def _run(self) -> None:
        initial = self._config.reconnect_backoff_initial_seconds
        backoff = initial
        need_list = True

        logger.info(
            f"Starting watch on {self._namespace}",
            extra=self._log_extra(),
        )
        try:
            while not self._stop_event.is_set():
                try:
                    if need_list:
                        await self._list_and_sync()
                        need_list = False
                    await self._consume_feed()
                    backoff = initial
                    if self._stop_event.is_set():
                        break
                    self.reconnect_count += 1
                    self._state = EnumSubscriptionState.RECONNECTING
                    logger.debug(
                        "Watch feed closed, resuming",
                        extra=self._log_extra(resource_version=self._resource_version),
                    )
                except WatchExpiredError:
                    need_list = True
                    self.reconnect_count += 1
                    self._state = EnumSubscriptionState.RECONNECTING
                    logger.warning(
                        "Watch resource version expired, re-listing",
                        extra=self._log_extra(resource_version=self._resource_version),
                    )
                except InfraAuthenticationError as e:
                    await self._report_terminal(e)
                    break
                except Exception as e:
                    need_list = True
                    self.reconnect_count += 1
                    self._state = EnumSubscriptionState.RECONNECTING
                    logger.warning(
                        f"Watch on {self._namespace} failed, reconnecting",
                        extra=self._log_extra(
                            error_type=type(e).__name__,
                            error_message=str(e),
                            backoff_seconds=backoff,
                        ),
                    )
                    await self._backoff(backoff)
                    backoff = min(backoff * 2, self._config.reconnect_backoff_max_seconds)
        finally:
            self._mark_stopped()
            logger.info(
                f"Watch on {self._namespace} stopped",
                extra=self._log_extra(
                    events_delivered=self.events_delivered,
                    reconnect_count=self.reconnect_count,
                ),
            )


class ServiceWatchManager:
    """Creates, tracks and tears down watch subscriptions."""

    def __init__(
        self,
        client: ProtocolResourceClient,
        config: ModelWatchConfig | None = None,
    ) -> None:
        self._client = client
        self._config = config or ModelWatchConfig()
        self._subscriptions: set[WatchSubscription] = set()

    @property
    def subscriptions(self) -> list[WatchSubscription]:
        return [sub for sub in self._subscriptions if not sub.state.is_terminal()]

    async def watch(
        self,
        namespace: str,
        handler: WatchHandler,
        *,
        name_filter: str | None = None,
        label_selector: str | None = None,
        on_error: ErrorHandler | None = None,
    ) -> WatchSubscription:
        """Register and start a subscription.

        Raises:
            ProtocolConfigurationError: If the registration is invalid; no
                task is started in that case.
        """
        subscription = WatchSubscription(
            self._client,
            namespace,
            handler,
            name_filter=name_filter,
            label_selector=label_selector,
            on_error=on_error,
            config=self._config,
            on_finished=self._subscriptions.discard,
        )
        self._subscriptions.add(subscription)
        subscription.start()
        return subscription

    async def stop_all(self) -> None:
        subscriptions = list(self._subscriptions)
        self._subscriptions.clear()
        await asyncio.gather(*(sub.stop() for sub in subscriptions))

    async def __aenter__(self) -> ServiceWatchManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop_all()


__all__: list[str] = [
    "ErrorHandler",
    "ResourceCallback",
    "ServiceWatchManager",
    "WatchHandler",
    "WatchSubscription",
    "dispatch_to_callbacks",
]
