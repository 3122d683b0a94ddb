"""Unit tests for the status poller and the startup status reset."""

import asyncio
import logging
from typing import Dict, List, Tuple

import pytest

from conftest import FakeProbe, make_device
from upsnap_core.common.results import ResultHandler
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
)
from upsnap_core.core.application.events.device_events import DeviceStatusChangedEvent
from upsnap_core.core.application.events.event_bus import EventBus
from upsnap_core.core.application.registry.device_registry import DeviceRegistry
from upsnap_core.core.application.use_cases.devices_use_cases import ResetDeviceStatesUseCase
from upsnap_core.core.domain.repositories.devices_repository import DevicesRepository
from upsnap_core.infrastructure.network.probe import ReachabilityProbe
from upsnap_core.infrastructure.poller.status_poller import StatusPoller


class FakeDevicesRepository(DevicesRepository):
    """Keeps devices in a dict and records every status write."""

    def __init__(self, devices, failures: int = 0) -> None:
        self.devices = {device.id: device for device in devices}
        self.writes: List[Tuple[str, str]] = []
        self.failures = failures

    async def get_devices(self):
        return ResultHandler.ok(list(self.devices.values()))

    async def get_device_by_id(self, device_id):
        if device_id not in self.devices:
            return ResultHandler.fail(ApplicationDevicesErrors.DeviceNotFoundError(device_id))
        return ResultHandler.ok(self.devices[device_id])

    async def save_status(self, device_id, status):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("store unavailable")
        self.writes.append((device_id, status))
        self.devices[device_id] = self.devices[device_id].with_status(status)
        return ResultHandler.ok(self.devices[device_id])


class ExplodingProbe(ReachabilityProbe):
    async def is_reachable(self, address: str) -> bool:
        raise RuntimeError("probe crashed")


def build_poller(logger, devices, probe, repository=None, **kwargs):
    registry = DeviceRegistry(logger=logger)
    registry.replace(devices)
    repository = repository or FakeDevicesRepository(devices)
    event_bus = EventBus(logger=logger)
    poller = StatusPoller(
        registry=registry,
        devices_repository=repository,
        probe=probe,
        event_bus=event_bus,
        logger=logger,
        **kwargs,
    )
    return poller, repository, registry, event_bus


@pytest.fixture
def devices():
    return [
        make_device("a", "192.168.1.10"),
        make_device("b", "192.168.1.11"),
        make_device("c", "192.168.1.12"),
    ]


class TestTick:
    """Tests for a single poll tick."""

    @pytest.mark.asyncio
    async def test_three_devices_one_unreachable(self, logger, devices):
        probe = FakeProbe(reachable={"192.168.1.10", "192.168.1.11"})
        poller, repository, registry, _ = build_poller(logger, devices, probe)

        statuses = await poller.tick()

        assert statuses == {"a": "online", "b": "online", "c": "offline"}
        assert sorted(repository.writes) == [("a", "online"), ("b", "online")]
        assert registry.get("a").status == "online"
        assert registry.get("c").status == "offline"

    @pytest.mark.asyncio
    async def test_unchanged_status_is_not_written(self, logger, devices):
        probe = FakeProbe(reachable={"192.168.1.10"})
        poller, repository, _, _ = build_poller(logger, devices, probe)

        await poller.tick()
        await poller.tick()

        assert repository.writes == [("a", "online")]
        assert poller.ticks == 2

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self, logger, devices):
        probe = FakeProbe(delay=0.05)
        poller, _, _, _ = build_poller(logger, devices, probe)

        await poller.tick()

        assert probe.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_probes_in_flight_are_bounded(self, logger):
        """A large registry never has more probes running than the worker limit."""
        devices = [make_device(str(i), f"10.0.{i // 250}.{i % 250 + 1}") for i in range(500)]
        probe = FakeProbe(delay=0.01)
        poller, _, _, _ = build_poller(logger, devices, probe, workers=16)

        statuses = await poller.tick()

        assert len(statuses) == 500
        assert len(probe.calls) == 500
        assert 1 < probe.max_in_flight <= 16

    @pytest.mark.asyncio
    async def test_probe_failures_count_as_offline(self, logger):
        devices = [make_device("a", "192.168.1.10", status="online")]
        poller, repository, _, _ = build_poller(logger, devices, ExplodingProbe())

        statuses = await poller.tick()

        assert statuses == {"a": "offline"}
        assert repository.writes == [("a", "offline")]

    @pytest.mark.asyncio
    async def test_probe_timeout_counts_as_offline(self, logger):
        devices = [make_device("a", "192.168.1.10")]
        probe = FakeProbe(reachable={"192.168.1.10"}, delay=1.0)
        poller, _, _, _ = build_poller(logger, devices, probe, probe_timeout=0.05)

        statuses = await poller.tick()

        assert statuses == {"a": "offline"}

    @pytest.mark.asyncio
    async def test_device_without_address_is_offline(self, logger):
        probe = FakeProbe()
        poller, _, _, _ = build_poller(logger, [make_device("a", "")], probe)

        statuses = await poller.tick()

        assert statuses == {"a": "offline"}
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_empty_registry(self, logger):
        poller, repository, _, _ = build_poller(logger, [], FakeProbe())

        assert await poller.tick() == {}
        assert repository.writes == []


class TestOverlap:
    """Tests for tick serialization."""

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self, logger, devices):
        probe = FakeProbe(delay=0.1)
        poller, _, _, _ = build_poller(logger, devices, probe)

        first, second = await asyncio.gather(poller.tick(), poller.tick())

        assert first is not None
        assert second is None
        assert len(probe.calls) == 3
        assert poller.ticks == 1


class TestWriteFailures:
    """Tests for status write failures."""

    @pytest.mark.asyncio
    async def test_failed_write_is_retried_next_tick(self, logger, devices):
        probe = FakeProbe(reachable={"192.168.1.10"})
        repository = FakeDevicesRepository(devices, failures=1)
        poller, _, registry, _ = build_poller(logger, devices, probe, repository=repository)

        await poller.tick()
        assert repository.writes == []
        assert registry.get("a").status == "offline"

        await poller.tick()
        assert repository.writes == [("a", "online")]


class TestNotifications:
    """Tests for status change notifications."""

    @pytest.mark.asyncio
    async def test_changes_are_published(self, logger, devices):
        probe = FakeProbe(reachable={"192.168.1.11"})
        poller, _, _, event_bus = build_poller(logger, devices, probe)
        received: Dict[str, DeviceStatusChangedEvent] = {}
        event_bus.subscribe(
            DeviceStatusChangedEvent, lambda event: received.update({event.device.id: event})
        )

        await poller.tick()

        assert list(received) == ["b"]
        assert received["b"].device.status == "online"
        assert received["b"].previous == "offline"

    @pytest.mark.asyncio
    async def test_disabled_notifications_publish_nothing(self, logger, devices):
        probe = FakeProbe(reachable={"192.168.1.11"})
        poller, repository, _, event_bus = build_poller(
            logger, devices, probe, notifications=False
        )
        received = []
        event_bus.subscribe(DeviceStatusChangedEvent, received.append)

        await poller.tick()

        assert received == []
        assert repository.writes == [("b", "online")]


class RejectingDevicesRepository(FakeDevicesRepository):
    """Reports every status write as a missing record."""

    async def save_status(self, device_id, status):
        return ResultHandler.fail(ApplicationDevicesErrors.DeviceNotFoundError(device_id))


class TestResetDeviceStates:
    """Tests for the startup reset that seeds the poller's registry."""

    @pytest.mark.asyncio
    async def test_rejected_write_is_logged_and_device_kept(self, logger, caplog):
        devices = [make_device("a", "192.168.1.10", status="online")]
        registry = DeviceRegistry(logger=logger)
        use_case = ResetDeviceStatesUseCase(
            devices_repository=RejectingDevicesRepository(devices),
            registry=registry,
            logger=logger,
        )

        with caplog.at_level(logging.WARNING):
            result = await use_case.execute()

        assert result.success == True
        assert registry.get("a").status == "offline"
        assert "Could not reset device a to offline" in caplog.text
        assert "Device with ID a not found." in caplog.text
