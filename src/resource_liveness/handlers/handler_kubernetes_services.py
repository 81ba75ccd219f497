# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Kubernetes Services handler.

Implements ProtocolResourceClient for ``v1/Service`` objects on top of the
official ``kubernetes`` client. The client is synchronous, so every call
runs in a worker thread via ``asyncio.to_thread``. The watch response is
opened unbuffered, its lines are pumped from a daemon thread into an
``asyncio.Queue``, and the response is closed when the consumer stops.

Error Mapping:
    ApiException 401/403 -> InfraAuthenticationError
    ApiException 404     -> ResourceNotFoundError
    ApiException 409     -> ResourceConflictError
    ApiException 410     -> WatchExpiredError
    ApiException 429/5xx -> InfraUnavailableError
    urllib3 timeouts     -> InfraTimeoutError
    urllib3 connection   -> InfraConnectionError

Usage:
    ```python
    handler = HandlerKubernetesServices.from_config()
    service = await handler.get("my-svc", "default")
    ```
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import AsyncIterator, Callable
from typing import Any, TypeVar

from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.watch.watch import iter_resp_lines
from urllib3.exceptions import HTTPError, MaxRetryError, ReadTimeoutError

from resource_liveness.enums import EnumInfraTransportType
from resource_liveness.errors import (
    InfraAuthenticationError,
    InfraConnectionError,
    InfraTimeoutError,
    InfraUnavailableError,
    ModelInfraErrorContext,
    ProtocolConfigurationError,
    ResourceConflictError,
    ResourceNotFoundError,
    RuntimeHostError,
    WatchExpiredError,
)
from resource_liveness.models.model_resource_list import ModelResourceList
from resource_liveness.models.model_watch_event import resource_metadata

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Sentinel marking the end of the pumped watch stream.
_END = object()

# Extra seconds granted to the socket read beyond the server-side watch timeout.
_WATCH_READ_GRACE_SECONDS = 5


def map_api_error(
    error: Exception,
    operation: str,
    target_name: str | None = None,
) -> RuntimeHostError:
    """Translate a kubernetes/urllib3 exception into the RuntimeHostError hierarchy."""
    context = ModelInfraErrorContext.with_correlation(
        transport_type=EnumInfraTransportType.KUBERNETES,
        operation=operation,
        target_name=target_name,
    )
    if isinstance(error, ApiException):
        status = error.status or 0
        message = f"Kubernetes API {operation} failed (status={status}): {error.reason}"
        if status in (401, 403):
            return InfraAuthenticationError(message, context=context, status=status)
        if status == 404:
            return ResourceNotFoundError(message, context=context, status=status)
        if status == 409:
            return ResourceConflictError(message, context=context, status=status)
        if status == 410:
            return WatchExpiredError(message, context=context, status=status)
        if status == 429 or status >= 500:
            return InfraUnavailableError(message, context=context, status=status)
        return RuntimeHostError(message, context=context, status=status)
    if isinstance(error, ReadTimeoutError):
        return InfraTimeoutError(
            f"Kubernetes API {operation} timed out",
            context=context,
        )
    if isinstance(error, (MaxRetryError, HTTPError, OSError)):
        return InfraConnectionError(
            f"Kubernetes API {operation} connection failed: {type(error).__name__}",
            context=context,
        )
    return RuntimeHostError(
        f"Kubernetes API {operation} failed: {type(error).__name__}",
        context=context,
    )


class HandlerKubernetesServices:
    """ProtocolResourceClient for Kubernetes Services.

    Attributes:
        core_api: CoreV1Api used for all calls.
    """

    def __init__(
        self,
        core_api: client.CoreV1Api,
        api_client: client.ApiClient | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            core_api: Configured CoreV1Api.
            api_client: ApiClient used to serialize models to dicts;
                defaults to ``core_api.api_client``.
        """
        self.core_api = core_api
        self._api_client = api_client or core_api.api_client

    @classmethod
    def from_config(cls) -> HandlerKubernetesServices:
        """Build a handler from in-cluster config, falling back to kubeconfig.

        Raises:
            ProtocolConfigurationError: If neither configuration is available.
        """
        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes config")
        except config.ConfigException:
            try:
                config.load_kube_config()
                logger.info("Loaded kubeconfig")
            except config.ConfigException as e:
                raise ProtocolConfigurationError(
                    "No Kubernetes configuration available",
                    context=ModelInfraErrorContext.with_correlation(
                        transport_type=EnumInfraTransportType.KUBERNETES,
                        operation="load_config",
                    ),
                ) from e
        return cls(client.CoreV1Api())

    def _to_dict(self, obj: object) -> dict[str, Any]:
        data = self._api_client.sanitize_for_serialization(obj)
        return data if isinstance(data, dict) else {}

    async def _call(
        self,
        operation: str,
        target_name: str | None,
        func: Callable[..., _T],
        **kwargs: Any,
    ) -> _T:
        try:
            return await asyncio.to_thread(func, **kwargs)
        except (ApiException, HTTPError, OSError) as e:
            raise map_api_error(e, operation, target_name) from e

    async def get(self, name: str, namespace: str) -> dict[str, Any]:
        service = await self._call(
            "get",
            f"{namespace}/{name}",
            self.core_api.read_namespaced_service,
            name=name,
            namespace=namespace,
        )
        return self._to_dict(service)

    async def list(
        self,
        namespace: str,
        *,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> ModelResourceList:
        kwargs: dict[str, Any] = {"namespace": namespace}
        if field_selector:
            kwargs["field_selector"] = field_selector
        if label_selector:
            kwargs["label_selector"] = label_selector
        service_list = await self._call(
            "list", namespace, self.core_api.list_namespaced_service, **kwargs
        )
        data = self._to_dict(service_list)
        return ModelResourceList(
            items=list(data.get("items") or []),
            resource_version=(data.get("metadata") or {}).get("resourceVersion"),
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
        kwargs: dict[str, Any] = {
            "namespace": namespace,
            "allow_watch_bookmarks": True,
        }
        if resource_version:
            kwargs["resource_version"] = resource_version
        if field_selector:
            kwargs["field_selector"] = field_selector
        if label_selector:
            kwargs["label_selector"] = label_selector
        if timeout_seconds:
            kwargs["timeout_seconds"] = timeout_seconds
            kwargs["_request_timeout"] = timeout_seconds + _WATCH_READ_GRACE_SECONDS

        resp = await self._call(
            "watch",
            namespace,
            self.core_api.list_namespaced_service,
            watch=True,
            _preload_content=False,
            **kwargs,
        )

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[object] = asyncio.Queue()
        stopping = threading.Event()

        def hand_off(item: object) -> None:
            if loop.is_closed():
                return
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
            except RuntimeError:
                # Loop closed between the check and the call.
                pass

        def pump() -> None:
            try:
                for line in iter_resp_lines(resp):
                    if stopping.is_set():
                        return
                    if line:
                        hand_off(json.loads(line))
                hand_off(_END)
            except Exception as e:
                # Reads fail once the response is closed on stop.
                if not stopping.is_set():
                    hand_off(e)

        thread = threading.Thread(
            target=pump,
            name=f"watch-services-{namespace}",
            daemon=True,
        )
        thread.start()
        logger.debug(
            f"Opened service watch in {namespace}",
            extra={
                "namespace": namespace,
                "resource_version": resource_version,
                "field_selector": field_selector,
            },
        )

        try:
            while True:
                item = await queue.get()
                if item is _END:
                    return
                if isinstance(item, Exception):
                    raise map_api_error(item, "watch", namespace) from item
                event: dict[str, Any] = item  # type: ignore[assignment]
                event_type = str(event.get("type", ""))
                raw = event.get("object")
                if not isinstance(raw, dict):
                    raw = {}
                if event_type == "ERROR":
                    status = raw.get("code", 0)
                    raise map_api_error(
                        ApiException(status=status, reason=raw.get("reason")),
                        "watch",
                        namespace,
                    )
                yield {"type": event_type, "object": raw}
        finally:
            # Closing the response unblocks the pump's read so the thread exits.
            stopping.set()
            resp.close()
            resp.release_conn()

    async def create(self, body: dict[str, Any]) -> dict[str, Any]:
        metadata = resource_metadata(body)
        namespace = str(metadata.get("namespace"))
        service = await self._call(
            "create",
            f"{namespace}/{metadata.get('name')}",
            self.core_api.create_namespaced_service,
            namespace=namespace,
            body=body,
        )
        return self._to_dict(service)

    async def update(self, body: dict[str, Any]) -> dict[str, Any]:
        metadata = resource_metadata(body)
        name, namespace = str(metadata.get("name")), str(metadata.get("namespace"))
        service = await self._call(
            "update",
            f"{namespace}/{name}",
            self.core_api.replace_namespaced_service,
            name=name,
            namespace=namespace,
            body=body,
        )
        return self._to_dict(service)

    async def delete(self, name: str, namespace: str) -> None:
        await self._call(
            "delete",
            f"{namespace}/{name}",
            self.core_api.delete_namespaced_service,
            name=name,
            namespace=namespace,
        )

    async def patch(
        self,
        name: str,
        namespace: str,
        body: bytes,
    ) -> dict[str, Any]:
        # A list body makes the client send application/json-patch+json.
        operations = json.loads(body)
        service = await self._call(
            "patch",
            f"{namespace}/{name}",
            self.core_api.patch_namespaced_service,
            name=name,
            namespace=namespace,
            body=operations,
        )
        return self._to_dict(service)


__all__: list[str] = ["HandlerKubernetesServices", "map_api_error"]
