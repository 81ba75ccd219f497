# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Heartbeat Coordinator.

Keeps resources alive by blind-patching a liveness annotation onto each of
them at a fixed rate, so an external reaper can tell in-use resources from
abandoned ones.

Behavior:
    - One asyncio task per heartbeat; heartbeats for different keys run
      fully in parallel and share only the patch capability.
    - The first tick fires one interval after start (resources are stamped
      when they are created). Ticks are scheduled at a fixed rate; missed
      ticks are skipped rather than burst.
    - A failing tick is logged and counted, never fatal. The only way a
      heartbeat ends by itself is ResourceNotFoundError under
      ``EnumNotFoundPolicy.STOP``.
    - At most one heartbeat per ModelResourceKey: starting another one for
      the same key stops and replaces the previous handle.
    - ``stop()`` cancels the task and awaits it; once it returns no further
      patch is issued for that handle.

Example:
    ```python
    coordinator = ServiceHeartbeatCoordinator(ModelHeartbeatConfig(interval_seconds=30))
    handle = await coordinator.start_heartbeat(key, patch_fn)
    ...
    await handle.stop()
    await coordinator.stop_all()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from resource_liveness.enums import EnumInfraTransportType, EnumNotFoundPolicy
from resource_liveness.errors import (
    ModelInfraErrorContext,
    ProtocolConfigurationError,
    ResourceNotFoundError,
    RuntimeHostError,
)
from resource_liveness.models.model_heartbeat_config import ModelHeartbeatConfig
from resource_liveness.models.model_resource_key import ModelResourceKey
from resource_liveness.protocols.protocol_resource_client import ProtocolPatchFn

logger = logging.getLogger(__name__)


class HeartbeatHandle:
    """One active periodic-patch task.

    Created by ServiceHeartbeatCoordinator.start_heartbeat(); do not
    instantiate directly.

    Attributes:
        key: Resource kept alive by this heartbeat.
        interval_seconds: Tick period.
        tick_count: Ticks attempted so far.
        failure_count: Ticks whose patch raised or timed out.
        last_success_at: Unix time of the last successful patch, if any.
        last_error: ``"<ErrorType>: <message>"`` of the last failed tick.
    """

    def __init__(
        self,
        key: ModelResourceKey,
        interval_seconds: float,
        patch_fn: ProtocolPatchFn,
        config: ModelHeartbeatConfig,
        on_finished: Callable[[HeartbeatHandle], None] | None = None,
    ) -> None:
        self.key = key
        self.interval_seconds = interval_seconds
        self._patch_fn = patch_fn
        self._config = config
        self._on_finished = on_finished
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._finished = False

        self.tick_count = 0
        self.failure_count = 0
        self.last_success_at: float | None = None
        self.last_error: str | None = None

    @property
    def is_active(self) -> bool:
        """True while the background task is running and no stop was requested."""
        return (
            self._task is not None
            and not self._task.done()
            and not self._stop_event.is_set()
        )

    def _start(self) -> None:
        self._task = asyncio.create_task(
            self._heartbeat_loop(),
            name=f"heartbeat-{self.key}",
        )

    async def stop(self) -> None:
        """Stop the heartbeat and wait for its task to finish.

        Safe to call multiple times and from inside the patch function.
        """
        self._stop_event.set()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A task cancelled before its first step never runs its finally block.
        self._finish()

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        if self._on_finished is not None:
            self._on_finished(self)

    async def _tick(self) -> bool:
        """Issue one patch. Returns False when the heartbeat should end."""
        self.tick_count += 1
        name, namespace = self.key.name, self.key.namespace
        try:
            # Runs in this task so stop() from inside the patch is detected.
            async with asyncio.timeout(self._config.patch_timeout_seconds):
                await self._patch_fn(name, namespace)
        except ResourceNotFoundError as e:
            self.failure_count += 1
            self.last_error = f"{type(e).__name__}: {e}"
            if self._config.not_found_policy is EnumNotFoundPolicy.STOP:
                logger.info(
                    f"Resource {self.key} is gone, stopping heartbeat",
                    extra={"resource_name": name, "namespace": namespace},
                )
                return False
            logger.warning(
                f"Heartbeat target {self.key} not found, will retry",
                extra={
                    "resource_name": name,
                    "namespace": namespace,
                    "failure_count": self.failure_count,
                },
            )
        except TimeoutError:
            self.failure_count += 1
            self.last_error = "TimeoutError: patch exceeded deadline"
            logger.warning(
                f"Heartbeat patch for {self.key} timed out",
                extra={
                    "resource_name": name,
                    "namespace": namespace,
                    "timeout_seconds": self._config.patch_timeout_seconds,
                },
            )
        except RuntimeHostError as e:
            self.failure_count += 1
            self.last_error = f"{type(e).__name__}: {e}"
            logger.warning(
                f"Failed to update heartbeat of {self.key}",
                extra={
                    "resource_name": name,
                    "namespace": namespace,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                    "failure_count": self.failure_count,
                },
            )
        except Exception as e:
            self.failure_count += 1
            self.last_error = f"{type(e).__name__}: {e}"
            logger.error(  # noqa: G201
                f"Unexpected error in heartbeat of {self.key}",
                extra={
                    "resource_name": name,
                    "namespace": namespace,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
        else:
            self.last_success_at = time.time()
            logger.debug(
                f"Heartbeat {self.key} ticked",
                extra={
                    "resource_name": name,
                    "namespace": namespace,
                    "tick_count": self.tick_count,
                },
            )
        return True

    async def _heartbeat_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval_seconds
        next_tick = loop.time() + interval

        logger.info(
            f"Starting heartbeat for {self.key}",
            extra={
                "resource_name": self.key.name,
                "namespace": self.key.namespace,
                "interval_seconds": interval,
            },
        )
        try:
            while not self._stop_event.is_set():
                remaining = next_tick - loop.time()
                if remaining > 0:
                    try:
                        await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
                        break
                    except TimeoutError:
                        pass

                if not await self._tick():
                    break

                next_tick += interval
                now = loop.time()
                if next_tick <= now:
                    skipped = int((now - next_tick) // interval) + 1
                    next_tick += skipped * interval
        finally:
            self._stop_event.set()
            logger.info(
                f"Heartbeat stopped for {self.key}",
                extra={
                    "resource_name": self.key.name,
                    "namespace": self.key.namespace,
                    "tick_count": self.tick_count,
                    "failure_count": self.failure_count,
                },
            )
            self._finish()


class ServiceHeartbeatCoordinator:
    """Registry of heartbeats, at most one per resource key.

    Concurrency Safety:
        start/stop calls are serialized by an asyncio.Lock so a replacement
        never leaves two timers running for one key.
    """

    def __init__(self, config: ModelHeartbeatConfig | None = None) -> None:
        self._config = config or ModelHeartbeatConfig()
        self._handles: dict[ModelResourceKey, HeartbeatHandle] = {}
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ModelHeartbeatConfig:
        return self._config

    def active_keys(self) -> list[ModelResourceKey]:
        return [key for key, handle in self._handles.items() if handle.is_active]

    def get_handle(self, key: ModelResourceKey) -> HeartbeatHandle | None:
        return self._handles.get(key)

    def _release(self, handle: HeartbeatHandle) -> None:
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]

    async def start_heartbeat(
        self,
        key: ModelResourceKey,
        patch_fn: ProtocolPatchFn,
        interval_seconds: float | None = None,
    ) -> HeartbeatHandle:
        """Start (or replace) the heartbeat for ``key``.

        Args:
            key: Resource to keep alive.
            patch_fn: Async callable issuing one liveness patch.
            interval_seconds: Tick period; defaults to the configured interval.

        Returns:
            The new, running HeartbeatHandle.

        Raises:
            ProtocolConfigurationError: If the interval is not positive or
                the key is not a ModelResourceKey. Raised before any task
                is created.
        """
        interval = (
            self._config.interval_seconds if interval_seconds is None else interval_seconds
        )
        context = ModelInfraErrorContext.with_correlation(
            transport_type=EnumInfraTransportType.RUNTIME,
            operation="start_heartbeat",
            target_name=str(key),
        )
        if interval <= 0:
            raise ProtocolConfigurationError(
                f"Heartbeat interval must be positive, got {interval}",
                context=context,
                interval_seconds=interval,
            )
        if not isinstance(key, ModelResourceKey):
            raise ProtocolConfigurationError(
                "Heartbeat key must be a ModelResourceKey",
                context=context,
            )

        async with self._lock:
            previous = self._handles.pop(key, None)
            if previous is not None:
                logger.info(
                    f"Replacing existing heartbeat for {key}",
                    extra={"resource_name": key.name, "namespace": key.namespace},
                )
                await previous.stop()

            handle = HeartbeatHandle(
                key=key,
                interval_seconds=interval,
                patch_fn=patch_fn,
                config=self._config,
                on_finished=self._release,
            )
            self._handles[key] = handle
            handle._start()
        return handle

    async def stop_heartbeat(self, key: ModelResourceKey) -> bool:
        """Stop the heartbeat for ``key``. Returns False if none was registered."""
        async with self._lock:
            handle = self._handles.pop(key, None)
        if handle is None:
            return False
        await handle.stop()
        return True

    async def stop_all(self) -> None:
        """Stop every heartbeat (end of session)."""
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        if handles:
            logger.info(
                f"Stopping {len(handles)} heartbeat(s)",
                extra={"count": len(handles)},
            )
        await asyncio.gather(*(handle.stop() for handle in handles))

    async def __aenter__(self) -> ServiceHeartbeatCoordinator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop_all()


__all__: list[str] = ["HeartbeatHandle", "ServiceHeartbeatCoordinator"]
