"""
Result values returned by the request operations and the repositories.

A request never raises for an expected failure; it returns ``Error`` wrapping a
typed application error whose ``code`` is stable and whose ``details`` is
human readable, so the HTTP layer can answer without inspecting the type.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, Literal, TypeVar, Union

Details = TypeVar("Details")
S = TypeVar("S")
E = TypeVar("E")


class DevicesErrorCodes(Enum):
    """Codes for device record and addressing failures."""

    DEVICE_NOT_FOUND = "device_not_found"
    INVALID_DEVICE_RAW_ENTITY = "invalid_device_raw_entity"
    INVALID_ADDRESS = "invalid_address"


class PowerErrorCodes(Enum):
    """Codes for wake and shutdown failures."""

    WAKE_SEND_FAILED = "wake_send_failed"
    SHUTDOWN_NOT_CONFIGURED = "shutdown_not_configured"
    CONNECT_ERROR = "connect_error"
    AUTH_ERROR = "auth_error"
    COMMAND_ERROR = "command_error"


class SettingsErrorCodes(Enum):
    """Codes for settings resolution failures."""

    CONFIG_ERROR = "config_error"


Code = TypeVar(
    "Code",
    bound=Union[DevicesErrorCodes, PowerErrorCodes, SettingsErrorCodes],
)


class BaseError(ABC, Generic[Details, Code]):
    """Base class for all application errors."""

    code: Code
    details: Details

    def __init__(self, code: Code, details: Details) -> None:
        self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Details | str]:
        """Return the ``{"code", "details"}`` body used in error responses."""
        return {"code": self.code.value, "details": self.details}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value!r}, details={self.details!r})"


@dataclass(frozen=True)
class Success(Generic[S]):
    value: S
    success: Literal[True] = True


@dataclass(frozen=True)
class Error(Generic[E]):
    error: E
    success: Literal[False] = False


# Either outcome; callers branch on ``result.success``.
Result = Union[Success[S], Error[E]]


class ResultHandler:
    """Factory for Result values."""

    @staticmethod
    def ok(value: S) -> Success[S]:
        return Success(value)

    @staticmethod
    def fail(error: E) -> Error[E]:
        return Error(error)
