# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Client Protocol.

The CRUD collaborator the liveness subsystem depends on. The heartbeat
coordinator only needs ``patch``; the watch subsystem only needs ``list``
and ``watch``; the lifecycle facade uses the rest.

Resources are JSON-shaped dicts (``{"metadata": {...}, "spec": {...}}``).

Watch Feed Contract:
    ``watch()`` returns an async iterator of raw events shaped
    ``{"type": "ADDED" | "MODIFIED" | "DELETED" | "BOOKMARK", "object": {...}}``
    that starts strictly after ``resource_version``. The iterator ends
    when the server closes the feed (e.g. on timeout); closing it with
    ``aclose()`` must release the underlying connection. A resource
    version that is too old raises WatchExpiredError.

Concurrency Safety:
    Implementations MUST be safe for concurrent async access. Heartbeats
    for different resources call ``patch`` concurrently.

Related:
    - HandlerKubernetesServices: Kubernetes Services implementation
    - InMemoryResourceClient: In-process implementation for tests
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from resource_liveness.models.model_resource_list import ModelResourceList


@runtime_checkable
class ProtocolResourceClient(Protocol):
    """Protocol for the generic cluster CRUD collaborator.

    Note:
        Method bodies use ``...`` per PEP 544.
    """

    async def get(self, name: str, namespace: str) -> dict[str, Any]:
        """Return one resource; raise ResourceNotFoundError if absent."""
        ...

    async def list(
        self,
        namespace: str,
        *,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> ModelResourceList:
        """Return matching resources and the collection resource version."""
        ...

    def watch(
        self,
        namespace: str,
        *,
        resource_version: str | None,
        field_selector: str | None = None,
        label_selector: str | None = None,
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Open an incremental change feed after ``resource_version``."""
        ...

    async def create(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a resource; raise ResourceConflictError if it exists."""
        ...

    async def update(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace a resource."""
        ...

    async def delete(self, name: str, namespace: str) -> None:
        """Delete a resource; raise ResourceNotFoundError if absent."""
        ...

    async def patch(
        self,
        name: str,
        namespace: str,
        body: bytes,
    ) -> dict[str, Any]:
        """Apply a JSON patch (RFC 6902) and return the patched resource."""
        ...


@runtime_checkable
class ProtocolPatchFn(Protocol):
    """Async callable issuing one liveness patch for ``(name, namespace)``.

    Raises on failure; the heartbeat coordinator logs and swallows the error.
    """

    async def __call__(self, name: str, namespace: str) -> None: ...


__all__: list[str] = ["ProtocolPatchFn", "ProtocolResourceClient"]
