# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Resource Liveness CLI Commands.

Provides a CLI for keeping a Service alive, watching Services, and
inspecting the liveness patch the heartbeat sends.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from resource_liveness.enums import EnumTimestampFormat
from resource_liveness.errors import ProtocolConfigurationError, RuntimeHostError
from resource_liveness.models import ModelLivenessSettings, ModelWatchEvent
from resource_liveness.protocols import ProtocolResourceClient
from resource_liveness.services import ServiceResourceLifecycle
from resource_liveness.utils import encode_liveness_patch

console = Console()

_EVENT_STYLES = {
    "ADDED": "green",
    "MODIFIED": "yellow",
    "DELETED": "red",
}


def _build_client() -> ProtocolResourceClient:
    """Build the Kubernetes Services client from in-cluster config or kubeconfig."""
    from resource_liveness.handlers import HandlerKubernetesServices

    return HandlerKubernetesServices.from_config()


def _load_settings() -> ModelLivenessSettings:
    try:
        return ModelLivenessSettings.from_env()
    except ProtocolConfigurationError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(2)


async def _run_until(duration: float | None, stop: asyncio.Event | None = None) -> None:
    """Wait for ``duration`` seconds, or forever when None."""
    stop = stop or asyncio.Event()
    try:
        await asyncio.wait_for(stop.wait(), timeout=duration)
    except TimeoutError:
        pass


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Resource liveness CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("patch")
@click.option("--annotation-key", default=None, help="Annotation key to stamp")
@click.option(
    "--format",
    "timestamp_format",
    type=click.Choice([f.value for f in EnumTimestampFormat]),
    default=None,
    help="Timestamp encoding",
)
def patch_cmd(annotation_key: str | None, timestamp_format: str | None) -> None:
    """Print the liveness patch a heartbeat would send now."""
    settings = _load_settings()
    body = encode_liveness_patch(
        annotation_key=annotation_key or settings.heartbeat.annotation_key,
        timestamp_format=EnumTimestampFormat(timestamp_format)
        if timestamp_format
        else settings.heartbeat.timestamp_format,
    )
    click.echo(body.decode("utf-8"))


@cli.command("heartbeat")
@click.option("--name", required=True, help="Service name")
@click.option("--namespace", default=None, help="Namespace (default: LIVENESS_NAMESPACE)")
@click.option("--interval", type=float, default=None, help="Seconds between patches")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until interrupted)",
)
def heartbeat_cmd(
    name: str,
    namespace: str | None,
    interval: float | None,
    duration: float | None,
) -> None:
    """Keep an existing Service alive until interrupted."""
    settings = _load_settings()
    namespace = namespace or settings.namespace

    async def run() -> None:
        client = _build_client()
        async with ServiceResourceLifecycle(
            client,
            heartbeat_config=settings.heartbeat,
            watch_config=settings.watch,
        ) as lifecycle:
            handle = await lifecycle.start_heartbeat(name, namespace, interval)
            await lifecycle.touch(name, namespace)
            console.print(
                f"[bold blue]Heartbeating {namespace}/{name} every "
                f"{handle.interval_seconds}s[/bold blue]"
            )
            await _run_until(duration)
            console.print(
                f"Ticks: {handle.tick_count}, failures: {handle.failure_count}"
            )

    _run_command(run)


@cli.command("watch")
@click.option("--namespace", default=None, help="Namespace (default: LIVENESS_NAMESPACE)")
@click.option("--name", default=None, help="Only this Service")
@click.option("--selector", default=None, help="Label selector, e.g. app=web,tier!=db")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until interrupted)",
)
def watch_cmd(
    namespace: str | None,
    name: str | None,
    selector: str | None,
    duration: float | None,
) -> None:
    """Print Service add/modify/delete events."""
    settings = _load_settings()
    namespace = namespace or settings.namespace

    def show(event: ModelWatchEvent) -> None:
        style = _EVENT_STYLES[event.event_type.value]
        console.print(
            f"[{style}]{event.event_type.value:<8}[/{style}] "
            f"{event.namespace}/{event.name} rv={event.resource_version}"
        )

    async def run() -> None:
        client = _build_client()
        async with ServiceResourceLifecycle(
            client,
            heartbeat_config=settings.heartbeat,
            watch_config=settings.watch,
        ) as lifecycle:
            stopped = asyncio.Event()
            subscription = await lifecycle.watch(
                namespace,
                name_filter=name,
                handler=show,
                label_selector=selector,
                on_error=lambda error: console.print(f"[red]{escape(str(error))}[/red]"),
            )
            waiter = asyncio.create_task(subscription.wait())
            waiter.add_done_callback(lambda _: stopped.set())
            await _run_until(duration, stopped)
            waiter.cancel()
            _print_summary(
                {
                    "state": subscription.state.value,
                    "events": subscription.events_delivered,
                    "reconnects": subscription.reconnect_count,
                }
            )

    _run_command(run)


def _run_command(run: Any) -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
    except ProtocolConfigurationError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(2)
    except RuntimeHostError as e:
        console.print(f"[red]{type(e).__name__}: {escape(e.message)}[/red]")
        raise SystemExit(1)


def _print_summary(values: dict[str, object]) -> None:
    table = Table(title="Watch Summary")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    for key, value in values.items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    cli()
