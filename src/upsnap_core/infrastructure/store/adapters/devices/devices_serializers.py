"""
Serializers for converting raw device records into domain entities and scan reports into response payloads.
"""

from typing import Any, Dict, List

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.core.domain.entities.device_entity import (
    DEFAULT_SHUTDOWN_COMMAND,
    DEFAULT_SSH_PORT,
    DEFAULT_WOL_PORT,
    DeviceEntity,
)
from upsnap_core.core.domain.entities.scan_entity import ScanReportEntity
from upsnap_core.infrastructure.store.adapters.devices.devices_errors import (
    InvalidDeviceRawEntityError,
)


def _int_or(value: Any, default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


class DeviceSerializer:
    """
    Serializer class for converting raw device records into DeviceEntity objects.
    """

    @staticmethod
    def from_raw(
        raw_device: Dict[str, Any],
    ) -> Result[DeviceEntity, InvalidDeviceRawEntityError]:
        """
        Converts a raw device record to a DeviceEntity object.
        Validates required fields and returns a Result containing the entity or an error.

        Args:
            raw_device (Dict[str, Any]): The raw device record.
        Returns:
            Result[DeviceEntity, InvalidDeviceRawEntityError]:
                Success with DeviceEntity or failure with InvalidDeviceRawEntityError.
        """
        required_fields = ["id", "mac"]

        for field in required_fields:
            if field not in raw_device:
                return ResultHandler.fail(InvalidDeviceRawEntityError(raw_device, field))

        return ResultHandler.ok(
            DeviceEntity(
                id=str(raw_device["id"]),
                name=str(raw_device.get("name") or ""),
                mac=str(raw_device.get("mac") or ""),
                ip=str(raw_device.get("ip") or ""),
                netmask=str(raw_device.get("netmask") or ""),
                broadcast=str(raw_device.get("broadcast") or ""),
                wol_port=_int_or(raw_device.get("wol_port"), DEFAULT_WOL_PORT),
                status="online" if raw_device.get("status") == "online" else "offline",
                ssh_user=str(raw_device.get("ssh_user") or ""),
                ssh_port=_int_or(raw_device.get("ssh_port"), DEFAULT_SSH_PORT),
                ssh_key=str(raw_device.get("ssh_key") or ""),
                shutdown_cmd=str(raw_device.get("shutdown_cmd") or DEFAULT_SHUTDOWN_COMMAND),
            )
        )


class ScanSerializer:
    """
    Serializer for the JSON body returned by the scan operation.
    """

    @staticmethod
    def to_raw(report: ScanReportEntity) -> List[Dict[str, str]]:
        """Return the discovered hosts as ``{"address": ..., "mac": ...}`` dictionaries."""
        return [{"address": host.address, "mac": host.mac} for host in report.hosts]
