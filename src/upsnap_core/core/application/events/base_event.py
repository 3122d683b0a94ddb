"""
Base type for everything published on the EventBus or passed to record store hooks.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True, kw_only=True)
class BaseEvent(ABC):
    """
    Immutable event stamped with its creation time in UTC.
    """

    _timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @property
    def name(self) -> str:
        """The event class name, used in log lines."""
        return type(self).__name__
