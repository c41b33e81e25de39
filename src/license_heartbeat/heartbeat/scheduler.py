"""
Heartbeat scheduler for registered processes.

Pings are sent ahead of the server's own staleness timeout: the period is the
server-assigned interval minus a safety margin, so one delayed round trip
still lands before the process is considered dead. A failed ping is reported
and the schedule carries on; only cancel() stops it.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from license_heartbeat.common.exceptions import GatewayError
from license_heartbeat.common.logging import get_logger
from license_heartbeat.gateway import LicensingGateway

logger = get_logger("heartbeat")

DEFAULT_SAFETY_MARGIN = 30
DEFAULT_MIN_PERIOD = 1.0

ErrorObserver = Callable[[str, GatewayError], None]
Sleeper = Callable[[float], Awaitable[None]]


def heartbeat_period(
    interval: int,
    safety_margin: int = DEFAULT_SAFETY_MARGIN,
    min_period: float = DEFAULT_MIN_PERIOD,
) -> float:
    """Seconds between pings for a server interval, clamped to min_period."""
    period = interval - safety_margin
    if period < min_period:
        logger.warning(
            "Heartbeat interval %ss does not exceed safety margin %ss; clamping period to %ss",
            interval, safety_margin, min_period,
        )
        return float(min_period)
    return float(period)


class CancelHandle:
    """An active recurring ping bound to one process.

    cancel() is idempotent. An in-flight ping may finish after cancel()
    returns, but no new ping starts.
    """

    def __init__(
        self,
        gateway: LicensingGateway,
        process_id: str,
        key: str,
        period: float,
        on_error: Optional[ErrorObserver] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.gateway = gateway
        self.process_id = process_id
        self.period = period
        self.pings_sent = 0
        self._key = key
        self._on_error = on_error
        self._sleep = sleep
        self._cancelled = False
        self._pinging = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def _start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while not self._cancelled:
            await self._sleep(self.period)
            if self._cancelled:
                break
            self._pinging = True
            try:
                await self.gateway.ping_process(self.process_id, self._key)
            except GatewayError as e:
                logger.error(
                    "Heartbeat ping failed (process %s): %s", self.process_id, e.summary,
                    extra={"process_id": self.process_id},
                )
                if self._on_error is not None:
                    self._on_error(self.process_id, e)
            else:
                self.pings_sent += 1
                logger.info(
                    "Heartbeat ping successfully sent (process %s)", self.process_id,
                    extra={"process_id": self.process_id},
                )
            finally:
                self._pinging = False

    def cancel(self) -> None:
        """Stop all future pings."""
        if self._cancelled:
            return
        self._cancelled = True
        logger.info(
            "Heartbeat monitor stopping (process %s)", self.process_id,
            extra={"process_id": self.process_id},
        )
        # A sleeping loop is woken and stopped; an in-flight ping is left to finish.
        if self._task is not None and not self._task.done() and not self._pinging:
            self._task.cancel()


class HeartbeatScheduler:
    """Starts heartbeat monitors for processes."""

    def __init__(
        self,
        gateway: LicensingGateway,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
        min_period: float = DEFAULT_MIN_PERIOD,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.gateway = gateway
        self.safety_margin = safety_margin
        self.min_period = min_period
        self._sleep = sleep

    def start(
        self,
        process_id: str,
        interval: int,
        key: str,
        on_error: Optional[ErrorObserver] = None,
    ) -> CancelHandle:
        """Begin pinging process_id every interval - safety_margin seconds.

        Must be called from within a running event loop.
        """
        period = heartbeat_period(interval, self.safety_margin, self.min_period)
        handle = CancelHandle(
            self.gateway, process_id, key, period, on_error=on_error, sleep=self._sleep
        )
        handle._start()
        logger.info(
            "Heartbeat monitor started (process %s, every %ss)", process_id, period,
            extra={"process_id": process_id},
        )
        return handle
