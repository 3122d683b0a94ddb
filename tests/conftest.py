"""Shared fixtures for the upsnap_core test suite."""

import asyncio
import logging
from typing import Dict, Iterable, List

import pytest

from upsnap_core.core.domain.entities.device_entity import DeviceEntity
from upsnap_core.infrastructure.network.probe import ReachabilityProbe


class FakeProbe(ReachabilityProbe):
    """Probe answering from a fixed set of reachable addresses."""

    def __init__(self, reachable: Iterable[str] = (), delay: float = 0.0) -> None:
        self.reachable = set(reachable)
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def is_reachable(self, address: str) -> bool:
        self.calls.append(address)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return address in self.reachable
        finally:
            self.in_flight -= 1


def make_device(device_id: str, ip: str, **fields) -> DeviceEntity:
    """Build a device with sensible defaults for tests."""
    values: Dict = {
        "id": device_id,
        "name": f"device-{device_id}",
        "mac": "AA:BB:CC:DD:EE:FF",
        "ip": ip,
    }
    values.update(fields)
    return DeviceEntity(**values)


@pytest.fixture
def logger() -> logging.Logger:
    test_logger = logging.getLogger("UpSnapTest")
    test_logger.setLevel(logging.DEBUG)
    return test_logger
