from dataclasses import dataclass

from upsnap_core.core.application.events.base_event import BaseEvent
from upsnap_core.core.domain.entities.device_entity import DeviceEntity, DeviceStatus


@dataclass(init=True, kw_only=True, frozen=True)
class DeviceStatusChangedEvent(BaseEvent):
    """
    Event triggered when a poll tick writes a new status for a device.

    Only published while notifications are enabled in the settings.

    Attributes:
        device (DeviceEntity): The device carrying its new status.
        previous (DeviceStatus): The status before the change.
    """

    device: DeviceEntity
    previous: DeviceStatus


@dataclass(init=True, kw_only=True, frozen=True)
class DeviceWakeSentEvent(BaseEvent):
    """
    Event triggered after a magic packet was sent for a device.

    Attributes:
        device (DeviceEntity): The device being woken.
        target (str): Broadcast address and port the packet was sent to.
    """

    device: DeviceEntity
    target: str


@dataclass(init=True, kw_only=True, frozen=True)
class DeviceShutdownSentEvent(BaseEvent):
    """
    Event triggered after a remote shutdown command completed successfully.

    Attributes:
        device (DeviceEntity): The device being shut down.
    """

    device: DeviceEntity
