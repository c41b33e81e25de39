"""Shared test fixtures for the license heartbeat client."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from license_heartbeat.common.config import HeartbeatSettings
from license_heartbeat.common.schemas import Machine, Process, ValidationCode, ValidationResult
from license_heartbeat.gateway import LicensingGateway


ACCOUNT_ID = "test-account"
LICENSE_KEY = "K"
FINGERPRINT = "fp-test-machine"


class SimulatedClock:
    """Drop-in for asyncio.sleep where time only advances on tick()."""

    def __init__(self):
        self.now = 0.0
        self.periods: list[float] = []
        self._waiters: list[tuple[float, asyncio.Future]] = []

    @staticmethod
    async def settle(rounds: int = 10) -> None:
        """Let pending tasks run up to their next suspension point."""
        for _ in range(rounds):
            await asyncio.sleep(0)

    async def sleep(self, seconds: float) -> None:
        self.periods.append(seconds)
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((seconds, fut))
        await fut
        self.now += seconds

    @property
    def pending(self) -> int:
        return sum(1 for _, fut in self._waiters if not fut.done())

    async def tick(self) -> None:
        """Fire the oldest pending sleep and let the woken task run."""
        await self.settle()
        for seconds, fut in self._waiters:
            if not fut.done():
                fut.set_result(None)
                break
        await self.settle()


@pytest.fixture
def settings():
    return HeartbeatSettings(account_id=ACCOUNT_ID, api_url="https://api.test")


@pytest.fixture
def clock():
    return SimulatedClock()


@pytest.fixture
def gateway():
    gw = AsyncMock(spec=LicensingGateway)
    gw.validate_key.return_value = ValidationResult(
        valid=False, code=ValidationCode.NO_MACHINE, raw_code="NO_MACHINE",
        detail="has no associated machine", license_id="L1",
    )
    gw.create_machine.return_value = Machine(id="M1", fingerprint=FINGERPRINT, license_id="L1")
    gw.retrieve_machine.return_value = Machine(id="M0", fingerprint=FINGERPRINT, license_id="L1")
    gw.create_process.return_value = Process(id="P1", pid="1234", interval=60, machine_id="M1")
    gw.ping_process.return_value = Process(id="P1", pid="1234", interval=60, machine_id="M1")
    gw.delete_process.return_value = None
    gw.delete_machine.return_value = None
    return gw
