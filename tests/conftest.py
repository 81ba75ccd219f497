# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pytest configuration and shared fixtures for resource_liveness tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio

from resource_liveness.handlers import InMemoryResourceClient
from resource_liveness.models import ModelWatchConfig

# =============================================================================
# Duck Typing Conformance Helpers
# =============================================================================


def assert_has_methods(
    obj: object,
    required_methods: list[str],
    *,
    protocol_name: str | None = None,
) -> None:
    """Assert that an object has all required methods (duck typing conformance).

    Args:
        obj: The object to check for method presence.
        required_methods: List of method names that must be present and callable.
        protocol_name: Optional protocol name for clearer error messages.

    Raises:
        AssertionError: If any required method is missing or not callable.
    """
    name = protocol_name or obj.__class__.__name__
    for method_name in required_methods:
        assert hasattr(obj, method_name), f"{name} must have '{method_name}' method"
        assert callable(getattr(obj, method_name)), (
            f"{name}.{method_name} must be callable"
        )


RESOURCE_CLIENT_METHODS = ["get", "list", "watch", "create", "update", "delete", "patch"]


# =============================================================================
# Async Helpers
# =============================================================================


async def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.01,
) -> None:
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


def service_body(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    selector: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Minimal JSON-shaped Service object."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": dict(labels or {}),
            "annotations": {},
        },
        "spec": {"selector": dict(selector or {}), "ports": []},
    }


# =============================================================================
# Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def inmemory_client() -> AsyncGenerator[InMemoryResourceClient, None]:
    """Fresh in-memory client; open watch feeds are closed on teardown."""
    client = InMemoryResourceClient()
    yield client
    client.close_feeds()


@pytest.fixture
def fast_watch_config() -> ModelWatchConfig:
    """Watch configuration with short timeouts and backoff for unit tests."""
    return ModelWatchConfig(
        watch_timeout_seconds=30,
        reconnect_backoff_initial_seconds=0.01,
        reconnect_backoff_max_seconds=0.05,
    )
