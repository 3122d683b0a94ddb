"""
record_store.py

Defines the RecordStore abstract base class, the contract for the external record store that persists device and settings records. The core never persists anything itself; it reads and writes plain record dictionaries through this interface and subscribes to its change notifications.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from upsnap_core.core.application.events.record_events import RecordChangedEvent

RecordHook = Callable[[RecordChangedEvent], Awaitable[None]]

DEVICES_COLLECTION = "devices"
SETTINGS_COLLECTION = "settings"


class RecordStore(ABC):
    """
    Abstract base class for a generic record store.

    Implementations must call every subscribed hook after each successful
    create, update or delete, with the affected collection and record.
    """

    @abstractmethod
    async def find_all(self, collection: str) -> List[Dict[str, Any]]:
        """
        Retrieve every record of a collection.

        Args:
            collection (str): Collection name.

        Returns:
            List[Dict[str, Any]]: Records in store order.
        """
        ...

    @abstractmethod
    async def find_by_id(
        self, collection: str, record_id: str
    ) -> Optional[Dict[str, Any]]:
        """
        Retrieve a single record, or None when it does not exist.
        """
        ...

    @abstractmethod
    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create the record when it has no ``id``, update it otherwise.

        Returns:
            Dict[str, Any]: The stored record including its identifier.
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> bool:
        """
        Delete a record. Returns False when nothing was deleted.
        """
        ...

    @abstractmethod
    def subscribe(self, hook: RecordHook) -> Callable[[], None]:
        """
        Register a change hook called after every mutation.

        Returns:
            Callable[[], None]: Detaches the hook; calling it again is harmless.
        """
        ...
