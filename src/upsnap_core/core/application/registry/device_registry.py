"""
In-memory mirror of the device records.

The registry holds one immutable snapshot (a tuple of frozen entities). Writers
replace the whole snapshot; readers receive the tuple itself, so a reader never
observes a partially rebuilt list.
"""

import logging
import threading
from typing import Iterable, Optional, Tuple

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.domain.entities.device_entity import DeviceEntity


class DeviceRegistry(LoggerMixin):
    """
    Thread-safe holder of the current device snapshot.

    Attributes:
        _snapshot (Tuple[DeviceEntity, ...]): Devices in store order.
        _lock (threading.Lock): Guards replacement and reads of ``_snapshot``.
    """

    _snapshot: Tuple[DeviceEntity, ...]
    _lock: threading.Lock

    def __init__(self, *, logger: logging.Logger) -> None:
        self._snapshot = ()
        self._lock = threading.Lock()
        self._build_logger(logger=logger)

    def replace(self, devices: Iterable[DeviceEntity]) -> None:
        """
        Replace the snapshot wholesale.

        Args:
            devices (Iterable[DeviceEntity]): The complete new device list.
        """
        snapshot = tuple(devices)
        with self._lock:
            self._snapshot = snapshot
        self._logger.debug(f"Device registry refreshed with {len(snapshot)} devices")

    def update(self, device: DeviceEntity) -> bool:
        """
        Swap in a newer version of one device, matched by id.

        Returns:
            bool: False when the device is no longer in the snapshot.
        """
        with self._lock:
            ids = [d.id for d in self._snapshot]
            if device.id not in ids:
                return False
            snapshot = list(self._snapshot)
            snapshot[ids.index(device.id)] = device
            self._snapshot = tuple(snapshot)
        return True

    def snapshot(self) -> Tuple[DeviceEntity, ...]:
        """Return the current snapshot."""
        with self._lock:
            return self._snapshot

    def get(self, device_id: str) -> Optional[DeviceEntity]:
        """Return the device with the given id from the current snapshot."""
        for device in self.snapshot():
            if device.id == device_id:
                return device
        return None

    def __len__(self) -> int:
        return len(self.snapshot())
