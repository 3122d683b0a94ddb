"""
Adapter module for device records held in a RecordStore.

This module provides an implementation of the DevicesRepository interface on top of the generic record store, focusing on device retrieval, serialization and status write-back.
"""

import logging
from typing import List, Union

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
)
from upsnap_core.core.domain.entities.device_entity import DeviceEntity, DeviceStatus
from upsnap_core.core.domain.repositories.devices_repository import (
    DevicesRepository,
)
from upsnap_core.core.domain.repositories.record_store import (
    DEVICES_COLLECTION,
    RecordStore,
)
from upsnap_core.infrastructure.store.adapters.devices.devices_serializers import (
    DeviceSerializer,
)
from upsnap_core.infrastructure.store.adapters.devices.devices_errors import (
    InvalidDeviceRawEntityError,
)


class StoreDevicesAdapter(DevicesRepository, LoggerMixin):
    """
    Adapter for device records in the record store.
    Implements the DevicesRepository interface. Malformed records are skipped when listing and
    reported as InvalidDeviceRawEntityError when addressed by id.
    """

    _store: RecordStore

    def __init__(self, *, store: RecordStore, logger: logging.Logger) -> None:
        """
        Initialize the StoreDevicesAdapter.

        Args:
            store (RecordStore): The record store holding the ``devices`` collection.
            logger (logging.Logger): Logger instance for logging.
        """
        self._store = store
        self._build_logger(logger=logger)

    @property
    def store(self) -> RecordStore:
        return self._store

    async def get_devices(
        self,
    ) -> Result[List[DeviceEntity], None]:
        """
        Retrieve every device record.

        Returns:
            Result[List[DeviceEntity], None]: Result containing the valid devices.
        """
        raw_devices = await self._store.find_all(DEVICES_COLLECTION)
        devices: List[DeviceEntity] = []

        for raw_device in raw_devices:
            result = DeviceSerializer.from_raw(raw_device)

            if result.success == True:
                devices.append(result.value)
            else:
                self._logger.warning(
                    f"Failed to serialize device: {result.error.details}"
                )

        return ResultHandler.ok(devices)

    async def get_device_by_id(
        self, device_id: str
    ) -> Result[
        DeviceEntity,
        Union[ApplicationDevicesErrors.DeviceNotFoundError, InvalidDeviceRawEntityError],
    ]:
        """
        Retrieve a device by its ID.

        Args:
            device_id (str): The ID of the device to retrieve.
        """
        raw_device = await self._store.find_by_id(DEVICES_COLLECTION, device_id)
        if raw_device is None:
            return ResultHandler.fail(
                ApplicationDevicesErrors.DeviceNotFoundError(device_id)
            )

        response = DeviceSerializer.from_raw(raw_device)

        if response.success == False:
            self._logger.warning(response.error.details)
            return ResultHandler.fail(response.error)

        return ResultHandler.ok(response.value)

    async def save_status(
        self, device_id: str, status: DeviceStatus
    ) -> Result[
        DeviceEntity,
        Union[ApplicationDevicesErrors.DeviceNotFoundError, InvalidDeviceRawEntityError],
    ]:
        """
        Write ``status`` into the stored device record.

        Args:
            device_id (str): The ID of the device.
            status (DeviceStatus): The new status.
        """
        raw_device = await self._store.find_by_id(DEVICES_COLLECTION, device_id)
        if raw_device is None:
            return ResultHandler.fail(
                ApplicationDevicesErrors.DeviceNotFoundError(device_id)
            )

        raw_device["status"] = status
        saved = await self._store.save(DEVICES_COLLECTION, raw_device)

        response = DeviceSerializer.from_raw(saved)

        if response.success == False:
            self._logger.warning(response.error.details)
            return ResultHandler.fail(response.error)

        return ResultHandler.ok(response.value)
