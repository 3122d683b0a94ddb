"""
In-memory implementation of the RecordStore contract.

Records are kept per collection in insertion order. Hooks are awaited in
registration order after every mutation, outside the lock that guards the data.
"""

import asyncio
import copy
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.events.record_events import (
    RecordAction,
    RecordChangedEvent,
)
from upsnap_core.core.domain.repositories.record_store import RecordHook, RecordStore


class InMemoryRecordStore(RecordStore, LoggerMixin):
    """Dictionary-backed record store."""

    _collections: Dict[str, Dict[str, Dict[str, Any]]]
    _hooks: List[RecordHook]
    _lock: asyncio.Lock

    def __init__(self, *, logger: logging.Logger) -> None:
        self._collections = {}
        self._hooks = []
        self._lock = asyncio.Lock()
        self._build_logger(logger=logger)

    async def find_all(self, collection: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    async def find_by_id(
        self, collection: str, record_id: str
    ) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._collections.get(collection, {}).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(record)
        action: RecordAction = "update"

        async with self._lock:
            records = self._collections.setdefault(collection, {})
            if not stored.get("id"):
                stored["id"] = uuid.uuid4().hex[:15]
                action = "create"
            elif stored["id"] not in records:
                action = "create"
            records[stored["id"]] = stored
            saved = copy.deepcopy(stored)

        await self._notify(action, collection, saved)
        return saved

    async def delete(self, collection: str, record_id: str) -> bool:
        async with self._lock:
            record = self._collections.get(collection, {}).pop(record_id, None)

        if record is None:
            return False

        await self._notify("delete", collection, record)
        return True

    def subscribe(self, hook: RecordHook) -> Callable[[], None]:
        self._hooks.append(hook)

        def unsubscribe() -> None:
            if hook in self._hooks:
                self._hooks.remove(hook)

        return unsubscribe

    async def _notify(
        self, action: RecordAction, collection: str, record: Dict[str, Any]
    ) -> None:
        event = RecordChangedEvent(action=action, collection=collection, record=record)
        for hook in list(self._hooks):
            await hook(event)
