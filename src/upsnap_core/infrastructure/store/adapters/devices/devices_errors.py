"""
Error for device records that cannot be mapped onto a DeviceEntity.
"""

from typing import Any, Dict

from upsnap_core.common.results import DevicesErrorCodes
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
)


class InvalidDeviceRawEntityError(
    ApplicationDevicesErrors.DeviceRetrievalError[
        DevicesErrorCodes.INVALID_DEVICE_RAW_ENTITY
    ],
):
    """A stored device record is missing a required field."""

    code = DevicesErrorCodes.INVALID_DEVICE_RAW_ENTITY
    details: str

    def __init__(self, record: Dict[str, Any], missing: str) -> None:
        record_id = record.get("id") or "<unsaved>"
        self.details = f"Device record {record_id} has no {missing!r} field"
