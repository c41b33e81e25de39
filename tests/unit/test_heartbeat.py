"""Tests for the heartbeat scheduler under a simulated clock."""

import asyncio
import logging

import httpx
import pytest

from license_heartbeat.common.exceptions import GatewayError
from license_heartbeat.common.schemas import Process
from license_heartbeat.gateway import LicensingGateway
from license_heartbeat.heartbeat.scheduler import HeartbeatScheduler, heartbeat_period


KEY = "K"


@pytest.fixture
def scheduler(gateway, clock):
    return HeartbeatScheduler(gateway, sleep=clock.sleep)


class TestHeartbeatPeriod:
    def test_subtracts_safety_margin(self):
        assert heartbeat_period(60) == 30.0
        assert heartbeat_period(600) == 570.0

    def test_custom_margin(self):
        assert heartbeat_period(600, safety_margin=60) == 540.0

    @pytest.mark.parametrize("interval", [30, 10, 0])
    def test_small_interval_is_clamped(self, interval):
        assert heartbeat_period(interval) == 1.0

    def test_custom_min_period(self):
        assert heartbeat_period(20, min_period=5) == 5.0


class TestSchedule:
    async def test_fires_every_period(self, scheduler, gateway, clock):
        handle = scheduler.start("P1", 60, KEY)

        for _ in range(3):
            await clock.tick()

        assert gateway.ping_process.await_count == 3
        gateway.ping_process.assert_awaited_with("P1", KEY)
        assert clock.now == 90.0
        assert all(p == 30.0 for p in clock.periods)
        assert handle.pings_sent == 3
        handle.cancel()

    async def test_ping_failure_keeps_schedule(self, scheduler, gateway, clock):
        failure = GatewayError([{"title": "Not found", "detail": "process not found"}])
        gateway.ping_process.side_effect = [failure, Process(id="P1", interval=60)]
        observed = []

        handle = scheduler.start("P1", 60, KEY, on_error=lambda pid, exc: observed.append((pid, exc)))
        await clock.tick()
        await clock.tick()

        assert gateway.ping_process.await_count == 2
        assert observed == [("P1", failure)]
        assert handle.pings_sent == 1
        assert not handle.task.done()
        handle.cancel()

    async def test_ping_records_carry_process_id(self, scheduler, clock):
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logger = logging.getLogger("license_heartbeat.heartbeat")
        logger.addHandler(handler)
        previous = logger.level
        logger.setLevel(logging.INFO)
        try:
            handle = scheduler.start("P1", 60, KEY)
            await clock.tick()
            handle.cancel()
        finally:
            logger.removeHandler(handler)
            logger.setLevel(previous)

        messages = [r.getMessage() for r in records]
        assert "Heartbeat ping successfully sent (process P1)" in messages
        assert all(r.process_id == "P1" for r in records)

    async def test_malformed_ping_responses_keep_schedule(self, settings, clock):
        responses = [
            httpx.Response(502, content=b"\x80\x81 bad"),
            httpx.Response(200, json={"meta": {}}),
            httpx.Response(200, json={"data": {"id": "P1", "type": "processes", "attributes": {}}}),
        ]
        observed = []
        gateway = LicensingGateway(
            settings, transport=httpx.MockTransport(lambda request: responses.pop(0))
        )
        scheduler = HeartbeatScheduler(gateway, sleep=clock.sleep)

        handle = scheduler.start("P1", 60, KEY, on_error=lambda pid, exc: observed.append(exc))
        for _ in range(3):
            await clock.tick()
            await clock.settle(100)

        assert len(observed) == 2
        assert all(isinstance(exc, GatewayError) for exc in observed)
        assert handle.pings_sent == 1
        assert not handle.task.done()
        handle.cancel()
        await gateway.close()


class TestCancel:
    async def test_no_fire_after_cancel(self, scheduler, gateway, clock):
        handle = scheduler.start("P1", 60, KEY)
        await clock.tick()
        await clock.settle()
        assert clock.pending == 1

        handle.cancel()
        fires_at_cancel = gateway.ping_process.await_count
        await clock.tick()
        await clock.tick()

        assert gateway.ping_process.await_count - fires_at_cancel == 0
        assert handle.task.done()

    async def test_cancel_before_first_fire(self, scheduler, gateway, clock):
        handle = scheduler.start("P1", 60, KEY)
        handle.cancel()
        await clock.settle()
        await clock.tick()

        gateway.ping_process.assert_not_awaited()
        assert handle.task.done()

    async def test_cancel_is_idempotent(self, scheduler, clock):
        handle = scheduler.start("P1", 60, KEY)
        await clock.settle()
        handle.cancel()
        handle.cancel()
        await clock.settle()
        handle.cancel()
        assert handle.cancelled is True
        assert handle.task.done()

    async def test_in_flight_ping_completes(self, scheduler, gateway, clock):
        release = asyncio.Event()

        async def slow_ping(process_id, key):
            await release.wait()
            return Process(id=process_id, interval=60)

        gateway.ping_process.side_effect = slow_ping
        handle = scheduler.start("P1", 60, KEY)
        await clock.tick()

        handle.cancel()
        release.set()
        await clock.settle()

        assert handle.pings_sent == 1
        assert handle.task.done()
        assert not handle.task.cancelled()
        assert gateway.ping_process.await_count == 1
        assert clock.pending == 0
