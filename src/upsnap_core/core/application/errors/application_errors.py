"""
Application Errors
==================

This module defines application-level error classes returned by the device power, scan and settings operations. Each error carries a stable code and a human readable ``details`` string so the HTTP layer can serialize it without inspecting the type.
"""

from abc import ABC
from typing import Generic, TypeVar

from upsnap_core.common.results import (
    BaseError,
    DevicesErrorCodes,
    PowerErrorCodes,
    SettingsErrorCodes,
)

DevicesErrorCode = TypeVar("DevicesErrorCode", bound=DevicesErrorCodes)
PowerErrorCode = TypeVar("PowerErrorCode", bound=PowerErrorCodes)
SettingsErrorCode = TypeVar("SettingsErrorCode", bound=SettingsErrorCodes)


class ApplicationDevicesErrors:
    class DeviceRetrievalError(
        Generic[DevicesErrorCode], BaseError[str, DevicesErrorCode], ABC
    ):
        """Base class for errors related to device lookup and addressing."""

    class DeviceNotFoundError(DeviceRetrievalError[DevicesErrorCodes.DEVICE_NOT_FOUND]):
        """Error raised when a device is not found."""

        code = DevicesErrorCodes.DEVICE_NOT_FOUND
        details: str

        def __init__(self, device_id: str) -> None:
            self.details = f"Device with ID {device_id} not found."

    class InvalidAddressError(DeviceRetrievalError[DevicesErrorCodes.INVALID_ADDRESS]):
        """Error raised when a MAC address, IP address or subnet cannot be parsed."""

        code = DevicesErrorCodes.INVALID_ADDRESS
        details: str

        def __init__(self, address: str, reason: str = "malformed address") -> None:
            self.details = f"Invalid address {address!r}: {reason}"


class ApplicationPowerErrors:
    class PowerError(Generic[PowerErrorCode], BaseError[str, PowerErrorCode], ABC):
        """Base class for wake and shutdown failures."""

    class WakeSendError(PowerError[PowerErrorCodes.WAKE_SEND_FAILED]):
        """Error raised when the local socket refuses to send the magic packet."""

        code = PowerErrorCodes.WAKE_SEND_FAILED
        details: str

        def __init__(self, target: str, reason: str) -> None:
            self.details = f"Failed to send magic packet to {target}: {reason}"

    class ShutdownNotConfiguredError(
        PowerError[PowerErrorCodes.SHUTDOWN_NOT_CONFIGURED]
    ):
        """Error raised when a device lacks an address or remote login."""

        code = PowerErrorCodes.SHUTDOWN_NOT_CONFIGURED
        details: str

        def __init__(self, device_id: str, missing: str) -> None:
            self.details = f"Device {device_id} cannot be shut down: missing {missing}."

    class ConnectError(PowerError[PowerErrorCodes.CONNECT_ERROR]):
        """Error raised when the remote session cannot be opened or times out."""

        code = PowerErrorCodes.CONNECT_ERROR
        details: str

        def __init__(self, host: str, reason: str) -> None:
            self.details = f"Could not connect to {host}: {reason}"

    class AuthError(PowerError[PowerErrorCodes.AUTH_ERROR]):
        """Error raised when the remote host rejects the credentials."""

        code = PowerErrorCodes.AUTH_ERROR
        details: str

        def __init__(self, host: str, user: str) -> None:
            self.details = f"Authentication rejected by {host} for user {user}."

    class CommandError(PowerError[PowerErrorCodes.COMMAND_ERROR]):
        """Error raised when the remote shutdown command exits non-zero."""

        code = PowerErrorCodes.COMMAND_ERROR
        details: str
        exit_status: int

        def __init__(self, host: str, exit_status: int, output: str = "") -> None:
            self.exit_status = exit_status
            self.details = f"Shutdown command on {host} exited with {exit_status}"
            if output:
                self.details += f": {output}"


class ApplicationSettingsErrors:
    class SettingsError(
        Generic[SettingsErrorCode], BaseError[str, SettingsErrorCode], ABC
    ):
        """Base class for settings errors."""

    class ConfigError(SettingsError[SettingsErrorCodes.CONFIG_ERROR]):
        """Error raised when an override or stored setting cannot be parsed."""

        code = SettingsErrorCodes.CONFIG_ERROR
        details: str

        def __init__(self, name: str, value: str, reason: str) -> None:
            self.details = f"Invalid value {value!r} for {name}: {reason}"
