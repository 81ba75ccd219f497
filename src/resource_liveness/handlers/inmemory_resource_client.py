# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""In-memory resource client for local development and testing.

Implements ProtocolResourceClient against a dict keyed by
``(namespace, name)``, with the parts of API server behavior the liveness
subsystem relies on:

Features:
    - Monotonic resource versions on every write
    - JSON patch (RFC 6902 ``add``/``replace``/``remove``) application
    - Replayable change history; watches resume strictly after a resource
      version and raise WatchExpiredError once it has been trimmed
    - ``metadata.name`` / ``metadata.namespace`` field selectors and
      equality-based label selectors
    - Fault injection: fail the next N calls of an operation, force-close
      or break every open watch feed

Usage:
    ```python
    client = InMemoryResourceClient()
    await client.create({"metadata": {"name": "svc", "namespace": "default"}})
    snapshot = await client.list("default")
    async for event in client.watch("default", resource_version=snapshot.resource_version):
        ...
    ```
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections import Counter, defaultdict, deque
from collections.abc import AsyncIterator
from typing import Any

from resource_liveness.enums import EnumInfraTransportType
from resource_liveness.errors import (
    ModelInfraErrorContext,
    ProtocolConfigurationError,
    ResourceConflictError,
    ResourceNotFoundError,
    RuntimeHostError,
    WatchExpiredError,
)
from resource_liveness.models.model_resource_list import ModelResourceList
from resource_liveness.models.model_watch_event import resource_metadata
from resource_liveness.utils.util_label_selector import (
    parse_label_selector,
    selector_matches,
)

logger = logging.getLogger(__name__)

# Sentinel pushed into feed queues to end the stream cleanly.
_CLOSE = object()


def _context(operation: str, target: str | None = None) -> ModelInfraErrorContext:
    return ModelInfraErrorContext.with_correlation(
        transport_type=EnumInfraTransportType.INMEMORY,
        operation=operation,
        target_name=target,
    )


def _parse_field_selector(selector: str | None) -> dict[str, str]:
    if not selector:
        return {}
    fields: dict[str, str] = {}
    for term in selector.split(","):
        key, sep, value = term.partition("=")
        key = key.strip().rstrip("=")
        if not sep or key not in ("metadata.name", "metadata.namespace"):
            raise ProtocolConfigurationError(
                f"Unsupported field selector '{selector}'",
                context=_context("parse_field_selector"),
            )
        fields[key] = value.strip().lstrip("=")
    return fields


def _unescape_pointer(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _apply_json_patch(target: dict[str, Any], operations: list[dict[str, Any]]) -> None:
    """Apply add/replace/remove operations in place.

    Raises:
        RuntimeHostError: If a path's parent does not exist or an operation
            is unsupported (the API server answers 422 in both cases).
    """
    for operation in operations:
        op = operation.get("op")
        path = str(operation.get("path", ""))
        tokens = [_unescape_pointer(t) for t in path.split("/")[1:]]
        if not tokens:
            raise RuntimeHostError(f"Invalid patch path '{path}'")

        parent: Any = target
        for token in tokens[:-1]:
            if isinstance(parent, list):
                parent = parent[int(token)]
            elif isinstance(parent, dict) and token in parent:
                parent = parent[token]
            else:
                raise RuntimeHostError(
                    f"Patch path '{path}' does not exist",
                    context=_context("patch"),
                )
        leaf = tokens[-1]
        if not isinstance(parent, dict):
            raise RuntimeHostError(
                f"Patch path '{path}' does not address an object member",
                context=_context("patch"),
            )

        if op == "add":
            parent[leaf] = copy.deepcopy(operation.get("value"))
        elif op in ("replace", "remove"):
            if leaf not in parent:
                raise RuntimeHostError(
                    f"Patch path '{path}' does not exist",
                    context=_context("patch"),
                )
            if op == "replace":
                parent[leaf] = copy.deepcopy(operation.get("value"))
            else:
                del parent[leaf]
        else:
            raise RuntimeHostError(
                f"Unsupported patch operation '{op}'",
                context=_context("patch"),
            )


class InMemoryResourceClient:
    """In-memory ProtocolResourceClient.

    Attributes:
        call_counts: Number of calls per operation name, including calls
            that failed through fault injection.
    """

    def __init__(self, max_history: int = 1000) -> None:
        """Initialize an empty store.

        Args:
            max_history: Number of change events retained for watch replay.
                Watches resuming from an older resource version get
                WatchExpiredError.
        """
        self._objects: dict[tuple[str, str], dict[str, Any]] = {}
        self._resource_version = 0
        self._history: deque[tuple[int, str, dict[str, Any]]] = deque(maxlen=max_history)
        self._feeds: set[asyncio.Queue[object]] = set()
        self._failures: dict[str, deque[Exception]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self.call_counts: Counter[str] = Counter()

    # -- fault injection -----------------------------------------------------

    def fail_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``."""
        for _ in range(times):
            self._failures[operation].append(error)

    def close_feeds(self) -> int:
        """End every open watch feed cleanly; return how many were closed."""
        feeds = list(self._feeds)
        for queue in feeds:
            queue.put_nowait(_CLOSE)
        return len(feeds)

    def break_feeds(self, error: Exception) -> int:
        """Make every open watch feed raise ``error``; return how many were broken."""
        feeds = list(self._feeds)
        for queue in feeds:
            queue.put_nowait(error)
        return len(feeds)

    @property
    def open_feed_count(self) -> int:
        return len(self._feeds)

    def _check_failure(self, operation: str) -> None:
        self.call_counts[operation] += 1
        pending = self._failures.get(operation)
        if pending:
            raise pending.popleft()

    # -- internals -----------------------------------------------------------

    def _record(self, event_type: str, obj: dict[str, Any]) -> None:
        """Bump the resource version, append history and fan out. Caller holds the lock."""
        self._resource_version += 1
        resource_metadata(obj)["resourceVersion"] = str(self._resource_version)
        snapshot = copy.deepcopy(obj)
        entry = (self._resource_version, event_type, snapshot)
        self._history.append(entry)
        for queue in self._feeds:
            queue.put_nowait(entry)

    def _require(self, name: str, namespace: str, operation: str) -> dict[str, Any]:
        obj = self._objects.get((namespace, name))
        if obj is None:
            raise ResourceNotFoundError(
                f"Resource {namespace}/{name} not found",
                context=_context(operation, f"{namespace}/{name}"),
            )
        return obj

    @staticmethod
    def _matches(
        obj: dict[str, Any],
        namespace: str,
        fields: dict[str, str],
        labels: list[tuple[str, str, str]],
    ) -> bool:
        metadata = resource_metadata(obj)
        if metadata.get("namespace") != namespace:
            return False
        if "metadata.name" in fields and metadata.get("name") != fields["metadata.name"]:
            return False
        if (
            "metadata.namespace" in fields
            and metadata.get("namespace") != fields["metadata.namespace"]
        ):
            return False
        return selector_matches(labels, metadata.get("labels"))

    # -- ProtocolResourceClient ----------------------------------------------

    async def get(self, name: str, namespace: str) -> dict[str, Any]:
        async with self._lock:
            self._check_failure("get")
            return copy.deepcopy(self._require(name, namespace, "get"))

    async def list(
        self,
        namespace: str,
        *,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> ModelResourceList:
        fields = _parse_field_selector(field_selector)
        labels = parse_label_selector(label_selector)
        async with self._lock:
            self._check_failure("list")
            items = [
                copy.deepcopy(self._objects[key])
                for key in sorted(self._objects)
                if self._matches(self._objects[key], namespace, fields, labels)
            ]
            return ModelResourceList(
                items=items,
                resource_version=str(self._resource_version),
            )

    async def watch(
        self,
        namespace: str,
        *,
        resource_version: str | None,
        field_selector: str | None = None,
        label_selector: str | None = None,
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        fields = _parse_field_selector(field_selector)
        labels = parse_label_selector(label_selector)
        queue: asyncio.Queue[object] = asyncio.Queue()

        async with self._lock:
            self._check_failure("watch")
            start = int(resource_version) if resource_version else self._resource_version
            if self._history and start < self._history[0][0] - 1:
                raise WatchExpiredError(
                    f"Resource version {start} is too old",
                    context=_context("watch", namespace),
                    resource_version=start,
                )
            for entry in self._history:
                if entry[0] > start:
                    queue.put_nowait(entry)
            self._feeds.add(queue)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_seconds if timeout_seconds else None
        try:
            while True:
                if deadline is None:
                    item = await queue.get()
                else:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        return
                    try:
                        item = await asyncio.wait_for(queue.get(), timeout=remaining)
                    except TimeoutError:
                        return
                if item is _CLOSE:
                    return
                if isinstance(item, Exception):
                    raise item
                _, event_type, obj = item  # type: ignore[misc]
                if not self._matches(obj, namespace, fields, labels):
                    continue
                yield {"type": event_type, "object": copy.deepcopy(obj)}
        finally:
            self._feeds.discard(queue)

    async def create(self, body: dict[str, Any]) -> dict[str, Any]:
        metadata = resource_metadata(body)
        name, namespace = metadata.get("name"), metadata.get("namespace")
        if not name or not namespace:
            raise ProtocolConfigurationError(
                "Resource body must set metadata.name and metadata.namespace",
                context=_context("create"),
            )
        async with self._lock:
            self._check_failure("create")
            if (namespace, name) in self._objects:
                raise ResourceConflictError(
                    f"Resource {namespace}/{name} already exists",
                    context=_context("create", f"{namespace}/{name}"),
                )
            obj = copy.deepcopy(body)
            obj.setdefault("metadata", {}).setdefault("annotations", {})
            self._objects[(namespace, name)] = obj
            self._record("ADDED", obj)
            logger.debug(
                f"Created {namespace}/{name}",
                extra={"resource_name": name, "namespace": namespace},
            )
            return copy.deepcopy(obj)

    async def update(self, body: dict[str, Any]) -> dict[str, Any]:
        metadata = resource_metadata(body)
        name, namespace = str(metadata.get("name")), str(metadata.get("namespace"))
        async with self._lock:
            self._check_failure("update")
            current = self._require(name, namespace, "update")
            expected = metadata.get("resourceVersion")
            if expected and expected != resource_metadata(current).get("resourceVersion"):
                raise ResourceConflictError(
                    f"Resource {namespace}/{name} was modified concurrently",
                    context=_context("update", f"{namespace}/{name}"),
                    expected_resource_version=expected,
                )
            obj = copy.deepcopy(body)
            self._objects[(namespace, name)] = obj
            self._record("MODIFIED", obj)
            return copy.deepcopy(obj)

    async def delete(self, name: str, namespace: str) -> None:
        async with self._lock:
            self._check_failure("delete")
            obj = self._require(name, namespace, "delete")
            del self._objects[(namespace, name)]
            self._record("DELETED", obj)

    async def patch(
        self,
        name: str,
        namespace: str,
        body: bytes,
    ) -> dict[str, Any]:
        operations = json.loads(body)
        async with self._lock:
            self._check_failure("patch")
            current = self._require(name, namespace, "patch")
            patched = copy.deepcopy(current)
            _apply_json_patch(patched, operations)
            self._objects[(namespace, name)] = patched
            self._record("MODIFIED", patched)
            return copy.deepcopy(patched)


__all__: list[str] = ["InMemoryResourceClient"]
