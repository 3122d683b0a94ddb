"""
Status Poller
=============

One poll tick takes the current device snapshot, probes the devices
concurrently through a bounded pool of workers and writes back the statuses
that changed. A tick never raises: probe failures degrade to ``offline`` and
failed writes are logged and retried by the next tick, which sees the old
status and evaluates again.
"""

import asyncio
import logging
from typing import Dict, Optional

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.events.device_events import DeviceStatusChangedEvent
from upsnap_core.core.application.events.event_bus import EventBus
from upsnap_core.core.application.registry.device_registry import DeviceRegistry
from upsnap_core.core.domain.entities.device_entity import DeviceEntity, DeviceStatus
from upsnap_core.core.domain.repositories.devices_repository import (
    DevicesRepository,
)
from upsnap_core.infrastructure.network.probe import ReachabilityProbe


class StatusPoller(LoggerMixin):
    """
    Evaluates the reachability of every registered device.

    Args:
        registry (DeviceRegistry): Source of the device snapshot.
        devices_repository (DevicesRepository): Where changed statuses are written.
        probe (ReachabilityProbe): Reachability check for one device.
        event_bus (EventBus): Receives status change notifications.
        logger (logging.Logger): Logger instance for logging.
        probe_timeout (float): Upper bound for a single device probe, in seconds.
        workers (int): Maximum number of probes in flight during one tick.
        notifications (bool): Whether status changes are published.
    """

    _registry: DeviceRegistry
    _devices_repository: DevicesRepository
    _probe: ReachabilityProbe
    _event_bus: EventBus
    _probe_timeout: float
    _workers: int
    _notifications: bool
    _tick_lock: asyncio.Lock
    _ticks: int

    def __init__(
        self,
        *,
        registry: DeviceRegistry,
        devices_repository: DevicesRepository,
        probe: ReachabilityProbe,
        event_bus: EventBus,
        logger: logging.Logger,
        probe_timeout: float = 2.0,
        workers: int = 64,
        notifications: bool = True,
    ) -> None:
        self._registry = registry
        self._devices_repository = devices_repository
        self._probe = probe
        self._event_bus = event_bus
        self._probe_timeout = probe_timeout
        self._workers = workers
        self._notifications = notifications
        self._tick_lock = asyncio.Lock()
        self._ticks = 0
        self._build_logger(logger=logger)

    @property
    def notifications(self) -> bool:
        return self._notifications

    @notifications.setter
    def notifications(self, enabled: bool) -> None:
        self._notifications = enabled

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    async def tick(self) -> Optional[Dict[str, DeviceStatus]]:
        """
        Run one poll tick.

        Returns:
            Optional[Dict[str, DeviceStatus]]: The evaluated status per device id,
            or None when a previous tick was still running and this one was skipped.
        """
        if self._tick_lock.locked():
            self._logger.warning("Previous poll tick still running, skipping")
            return None

        async with self._tick_lock:
            devices = self._registry.snapshot()
            semaphore = asyncio.Semaphore(self._workers)
            statuses = await asyncio.gather(
                *(self._evaluate(device, semaphore) for device in devices)
            )
            self._ticks += 1

        self._logger.debug(f"Poll tick {self._ticks} evaluated {len(devices)} devices")
        return {device.id: status for device, status in zip(devices, statuses)}

    async def _evaluate(
        self, device: DeviceEntity, semaphore: asyncio.Semaphore
    ) -> DeviceStatus:
        async with semaphore:
            reachable = await self._probe_device(device)
        status: DeviceStatus = "online" if reachable else "offline"

        if status != device.status:
            await self._write_status(device, status)

        return status

    async def _probe_device(self, device: DeviceEntity) -> bool:
        if not device.ip:
            return False

        try:
            return await asyncio.wait_for(
                self._probe.is_reachable(device.ip), timeout=self._probe_timeout
            )
        except asyncio.TimeoutError:
            self._logger.debug(f"Probe of {device.ip} timed out")
            return False
        except Exception as e:
            self._logger.debug(f"Probe of {device.ip} failed: {e!r}")
            return False

    async def _write_status(self, device: DeviceEntity, status: DeviceStatus) -> None:
        try:
            result = await self._devices_repository.save_status(device.id, status)
        except Exception:
            self._logger.exception(f"Failed to write status {status} for device {device.id}")
            return

        if result.success == False:
            self._logger.error(
                f"Failed to write status {status} for device {device.id}: {result.error.details}"
            )
            return

        self._registry.update(result.value)
        self._logger.info(f"Device {device.name or device.id} is now {status}")

        if self._notifications:
            self._event_bus.publish(
                DeviceStatusChangedEvent(device=result.value, previous=device.status)
            )
