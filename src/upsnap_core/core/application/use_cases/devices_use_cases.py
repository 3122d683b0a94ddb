"""
Use cases for handling device-related operations in the application layer.

This module defines classes that encapsulate the business logic for device lookup, registry maintenance, waking, shutting down and scanning. Each use case class follows the Command pattern and leverages dependency injection for repositories, network services, event buses and logging.
"""

import logging
from typing import List, Optional, Union

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
    ApplicationPowerErrors,
)
from upsnap_core.core.application.events.device_events import (
    DeviceShutdownSentEvent,
    DeviceWakeSentEvent,
)
from upsnap_core.core.application.events.event_bus import EventBus
from upsnap_core.core.application.registry.device_registry import DeviceRegistry
from upsnap_core.core.domain.entities.device_entity import DeviceEntity
from upsnap_core.core.domain.entities.scan_entity import ScanReportEntity
from upsnap_core.core.domain.repositories.devices_repository import (
    DevicesRepository,
)
from upsnap_core.infrastructure.network.network_scanner import NetworkScanner
from upsnap_core.infrastructure.network.shutdown_dispatcher import ShutdownDispatcher
from upsnap_core.infrastructure.network.wake_sender import WakeSender


class RefreshDeviceRegistryUseCase(LoggerMixin):
    """
    Use case for rebuilding the in-memory device registry from the store.
    """

    _devices_repository: DevicesRepository
    _registry: DeviceRegistry

    def __init__(
        self,
        *,
        devices_repository: DevicesRepository,
        registry: DeviceRegistry,
        logger: logging.Logger,
    ) -> None:
        self._devices_repository = devices_repository
        self._registry = registry
        self._build_logger(logger=logger)

    async def execute(self) -> Result[List[DeviceEntity], None]:
        self._logger.debug("Executing RefreshDeviceRegistryUseCase.")

        result = await self._devices_repository.get_devices()
        if result.success == True:
            self._registry.replace(result.value)
        return result


class ResetDeviceStatesUseCase(LoggerMixin):
    """
    Use case run once at startup: mark every device offline and load the registry.

    The registry is filled with the reset devices so the first poll tick writes
    every device that turns out to be online.
    """

    _devices_repository: DevicesRepository
    _registry: DeviceRegistry

    def __init__(
        self,
        *,
        devices_repository: DevicesRepository,
        registry: DeviceRegistry,
        logger: logging.Logger,
    ) -> None:
        self._devices_repository = devices_repository
        self._registry = registry
        self._build_logger(logger=logger)

    async def execute(self) -> Result[List[DeviceEntity], None]:
        self._logger.debug("Executing ResetDeviceStatesUseCase.")

        result = await self._devices_repository.get_devices()
        if result.success == False:
            return result

        devices: List[DeviceEntity] = []
        for device in result.value:
            saved = await self._devices_repository.save_status(device.id, "offline")
            if saved.success == False:
                self._logger.warning(
                    f"Could not reset device {device.id} to offline: {saved.error.details}"
                )
                devices.append(device.with_status("offline"))
                continue
            devices.append(saved.value)

        self._registry.replace(devices)
        self._logger.info(f"Reset {len(devices)} devices to offline")
        return ResultHandler.ok(devices)


class WakeDeviceUseCase(LoggerMixin):
    """
    Use case for sending a Wake-on-LAN packet to a stored device.

    Args:
        devices_repository (DevicesRepository): Repository for device data access.
        wake_sender (WakeSender): Sends the magic packet.
        event_bus (EventBus): Event bus for publishing domain events.
        logger (logging.Logger): Logger instance for logging operations.
    """

    _devices_repository: DevicesRepository
    _wake_sender: WakeSender
    _event_bus: EventBus

    def __init__(
        self,
        *,
        devices_repository: DevicesRepository,
        wake_sender: WakeSender,
        event_bus: EventBus,
        logger: logging.Logger,
    ) -> None:
        self._devices_repository = devices_repository
        self._wake_sender = wake_sender
        self._event_bus = event_bus
        self._build_logger(logger=logger)

    async def execute(
        self, device_id: str
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationDevicesErrors.DeviceRetrievalError,
            ApplicationDevicesErrors.InvalidAddressError,
            ApplicationPowerErrors.WakeSendError,
        ],
    ]:
        """
        Execute the use case to wake the device with ``device_id``.

        Returns:
            Result[DeviceEntity, ...]: The device the packet was sent for, or the failure.
        """
        self._logger.debug(f"Executing WakeDeviceUseCase with ID: {device_id}")

        lookup = await self._devices_repository.get_device_by_id(device_id)
        if lookup.success == False:
            return lookup

        device = lookup.value
        sent = await self._wake_sender.wake_device(device)
        if sent.success == False:
            return ResultHandler.fail(sent.error)

        self._event_bus.publish(DeviceWakeSentEvent(device=device, target=sent.value))
        return ResultHandler.ok(device)


class ShutdownDeviceUseCase(LoggerMixin):
    """
    Use case for shutting a stored device down over a remote session.
    """

    _devices_repository: DevicesRepository
    _shutdown_dispatcher: ShutdownDispatcher
    _event_bus: EventBus

    def __init__(
        self,
        *,
        devices_repository: DevicesRepository,
        shutdown_dispatcher: ShutdownDispatcher,
        event_bus: EventBus,
        logger: logging.Logger,
    ) -> None:
        self._devices_repository = devices_repository
        self._shutdown_dispatcher = shutdown_dispatcher
        self._event_bus = event_bus
        self._build_logger(logger=logger)

    async def execute(
        self, device_id: str
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationDevicesErrors.DeviceRetrievalError,
            ApplicationPowerErrors.ShutdownNotConfiguredError,
            ApplicationPowerErrors.ConnectError,
            ApplicationPowerErrors.AuthError,
            ApplicationPowerErrors.CommandError,
        ],
    ]:
        """
        Execute the use case to shut down the device with ``device_id``.
        """
        self._logger.debug(f"Executing ShutdownDeviceUseCase with ID: {device_id}")

        lookup = await self._devices_repository.get_device_by_id(device_id)
        if lookup.success == False:
            return lookup

        result = await self._shutdown_dispatcher.shutdown(lookup.value)
        if result.success == True:
            self._event_bus.publish(DeviceShutdownSentEvent(device=result.value))
        return result


class ScanNetworkUseCase(LoggerMixin):
    """
    Use case for sweeping a subnet for candidate devices.

    Falls back to the configured scan range when no subnet is given.
    """

    _scanner: NetworkScanner

    def __init__(
        self,
        *,
        scanner: NetworkScanner,
        logger: logging.Logger,
    ) -> None:
        self._scanner = scanner
        self._build_logger(logger=logger)

    async def execute(
        self, subnet: Optional[str], default_range: str = ""
    ) -> Result[ScanReportEntity, ApplicationDevicesErrors.InvalidAddressError]:
        target = (subnet or "").strip() or default_range
        self._logger.debug(f"Executing ScanNetworkUseCase for {target!r}")

        if not target:
            return ResultHandler.fail(
                ApplicationDevicesErrors.InvalidAddressError(
                    "", "no subnet given and no scan range configured"
                )
            )

        return await self._scanner.scan(target)
