"""
Port for reading device records and writing back their power status.
"""

from abc import ABC, abstractmethod
from typing import List

from upsnap_core.common.results import Result
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
)
from upsnap_core.core.domain.entities.device_entity import DeviceEntity, DeviceStatus


class DevicesRepository(ABC):
    """
    Device persistence as seen by the use cases and the poller.

    The core only ever writes ``status``; every other device field belongs to
    the owner editing the records.
    """

    @abstractmethod
    async def get_devices(self) -> Result[List[DeviceEntity], None]:
        """Every valid device record, in store order."""
        ...

    @abstractmethod
    async def get_device_by_id(
        self, device_id: str
    ) -> Result[DeviceEntity, ApplicationDevicesErrors.DeviceRetrievalError]:
        """
        Look a single device up.

        Returns:
            Result[DeviceEntity, DeviceRetrievalError]: The device, or not found, or
            a record too malformed to map.
        """
        ...

    @abstractmethod
    async def save_status(
        self, device_id: str, status: DeviceStatus
    ) -> Result[DeviceEntity, ApplicationDevicesErrors.DeviceRetrievalError]:
        """
        Persist a new status for the device, leaving every other field untouched.

        Returns:
            Result[DeviceEntity, DeviceRetrievalError]: The device as stored after the write.
        """
        ...
