"""Typer CLI for the license heartbeat client."""

import asyncio
import signal

import typer
from rich.console import Console
from rich.markup import escape

from license_heartbeat.activation.service import ActivationManager
from license_heartbeat.common.config import HeartbeatSettings, get_settings
from license_heartbeat.common.exceptions import HeartbeatClientError
from license_heartbeat.common.logging import setup_logging
from license_heartbeat.fingerprint import get_fingerprint
from license_heartbeat.gateway import LicensingGateway
from license_heartbeat.heartbeat.scheduler import HeartbeatScheduler
from license_heartbeat.lifecycle.coordinator import LifecycleCoordinator
from license_heartbeat.processes.service import ProcessRegistrar

app = typer.Typer(
    name="license-heartbeat",
    help="Activate this machine for a license and keep a process heartbeat alive",
)
console = Console()


def _load_settings() -> HeartbeatSettings:
    try:
        settings = get_settings()
    except RuntimeError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    setup_logging(settings.log_level)
    return settings


def _make_gateway(settings: HeartbeatSettings) -> LicensingGateway:
    return LicensingGateway(settings)


def _notify(style: str, message: str) -> None:
    console.print(f"[{style}]{escape(message)}[/{style}]")


def _install_interrupt(loop: asyncio.AbstractEventLoop, coordinator: LifecycleCoordinator) -> None:
    try:
        loop.add_signal_handler(signal.SIGINT, coordinator.shutdown)
    except NotImplementedError:
        # No loop signal support on this platform; forward from the default handler.
        signal.signal(
            signal.SIGINT,
            lambda _sig, _frame: loop.call_soon_threadsafe(coordinator.shutdown),
        )


async def _run(settings: HeartbeatSettings, key: str) -> int:
    async with _make_gateway(settings) as gateway:
        registrar = ProcessRegistrar(gateway)
        coordinator = LifecycleCoordinator(
            ActivationManager(gateway, registrar),
            registrar,
            HeartbeatScheduler(
                gateway,
                safety_margin=settings.heartbeat_safety_margin,
                min_period=settings.heartbeat_min_period,
            ),
            notify=_notify,
            verbose=settings.debug,
        )
        _install_interrupt(asyncio.get_running_loop(), coordinator)
        status = await coordinator.run(key, get_fingerprint())
        if coordinator.error is not None and settings.debug:
            console.print(repr(coordinator.error))
        return status


@app.command()
def run():
    """Activate this machine, spawn a process and ping it until interrupted."""
    settings = _load_settings()
    key = typer.prompt(typer.style("Enter a license key", fg=typer.colors.CYAN))
    raise typer.Exit(asyncio.run(_run(settings, key)))


@app.command()
def deactivate(
    machine_id: str = typer.Argument(..., help="Machine ID or fingerprint to deactivate"),
):
    """Deactivate a machine, releasing its license seat."""
    settings = _load_settings()
    key = typer.prompt(typer.style("Enter a license key", fg=typer.colors.CYAN))

    async def _deactivate() -> None:
        async with _make_gateway(settings) as gateway:
            await ActivationManager(gateway, ProcessRegistrar(gateway)).deactivate(machine_id, key)

    try:
        asyncio.run(_deactivate())
    except HeartbeatClientError as e:
        console.print(f"[red]An error has occurred:\n{escape(e.message)}[/red]")
        raise typer.Exit(1)
    console.print(f"[yellow]Machine successfully deactivated (machine {machine_id})[/yellow]")


@app.command()
def fingerprint():
    """Print this machine's fingerprint."""
    console.print(get_fingerprint())


if __name__ == "__main__":
    app()
