"""Lifecycle coordinator: activation, process registration, heartbeat, shutdown."""

import asyncio
import enum
from typing import Callable, Optional

from license_heartbeat.activation.service import ActivationManager
from license_heartbeat.common.exceptions import GatewayError, HeartbeatClientError
from license_heartbeat.common.logging import get_logger
from license_heartbeat.common.schemas import Machine, Process
from license_heartbeat.heartbeat.scheduler import CancelHandle, HeartbeatScheduler
from license_heartbeat.processes.service import ProcessRegistrar

logger = get_logger("lifecycle")

Notifier = Callable[[str, str], None]


class LifecycleState(str, enum.Enum):
    IDLE = "idle"
    ACTIVATING = "activating"
    REGISTERING = "registering"
    MONITORING = "monitoring"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"
    FAILED = "failed"


def _silent(style: str, message: str) -> None:
    return None


class LifecycleCoordinator:
    """
    Drives one run of the activation/heartbeat lifecycle.

    run() returns the process exit status. Shutdown is requested through
    shutdown(), which any signal source may call; heartbeat failures never
    trigger it.
    """

    def __init__(
        self,
        activation: ActivationManager,
        registrar: ProcessRegistrar,
        scheduler: HeartbeatScheduler,
        notify: Notifier = _silent,
        verbose: bool = False,
    ):
        self.activation = activation
        self.registrar = registrar
        self.scheduler = scheduler
        self.notify = notify
        self.verbose = verbose
        self.state = LifecycleState.IDLE
        self.machine: Optional[Machine] = None
        self.process: Optional[Process] = None
        self.heartbeat: Optional[CancelHandle] = None
        self.error: Optional[BaseException] = None
        self._shutdown_requested: Optional[asyncio.Event] = None

    def _transition(self, state: LifecycleState) -> None:
        logger.debug("Lifecycle %s -> %s", self.state.value, state.value)
        self.state = state

    def _event(self) -> asyncio.Event:
        if self._shutdown_requested is None:
            self._shutdown_requested = asyncio.Event()
        return self._shutdown_requested

    def shutdown(self) -> None:
        """Request shutdown. Idempotent."""
        self._event().set()

    def _on_ping_error(self, process_id: str, exc: GatewayError) -> None:
        self.notify("red", f"Heartbeat ping failed (process {process_id}): {exc.summary}")

    def _fail(self, exc: BaseException) -> int:
        self.error = exc
        self._transition(LifecycleState.FAILED)
        message = exc.message if isinstance(exc, HeartbeatClientError) else str(exc)
        self.notify("red", f"An error has occurred:\n{message}")
        if self.verbose:
            logger.exception("Lifecycle failed", exc_info=exc)
        else:
            logger.error("Lifecycle failed: %s", message)
        return 1

    async def run(self, key: str, fingerprint: str, pid: Optional[str] = None) -> int:
        shutdown_requested = self._event()
        try:
            self._transition(LifecycleState.ACTIVATING)
            self.machine = await self.activation.activate(fingerprint, key)
            self.notify("green", f"Machine successfully activated (machine {self.machine.id})")

            self._transition(LifecycleState.REGISTERING)
            self.process = await self.registrar.register(self.machine, key, pid=pid)
            self.notify("green", f"Process successfully spawned (process {self.process.id})")
        except HeartbeatClientError as e:
            return self._fail(e)

        self._transition(LifecycleState.MONITORING)
        self.heartbeat = self.scheduler.start(
            self.process.id,
            self.process.interval,
            key,
            on_error=self._on_ping_error,
        )
        self.notify("yellow", f"Heartbeat monitor started... (process {self.process.id})")

        await shutdown_requested.wait()
        return await self._shut_down(key)

    async def _shut_down(self, key: str) -> int:
        self._transition(LifecycleState.SHUTTING_DOWN)
        # Delete first, then cancel; a ping already in flight may still race the delete.
        try:
            await self.registrar.deregister(self.process.id, key)
        except HeartbeatClientError as e:
            self.heartbeat.cancel()
            return self._fail(e)
        self.heartbeat.cancel()
        self.notify("yellow", f"Process successfully killed (process {self.process.id})")

        self._transition(LifecycleState.TERMINATED)
        self.notify("yellow", "Exiting...")
        return 0
