"""
Adapter module for the singleton settings record held in a RecordStore.
"""

import logging
from typing import Any, Dict, Optional

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.domain.entities.settings_entity import SettingsEntity
from upsnap_core.core.domain.repositories.record_store import (
    SETTINGS_COLLECTION,
    RecordStore,
)
from upsnap_core.core.domain.repositories.settings_repository import (
    SettingsRepository,
)


class StoreSettingsAdapter(SettingsRepository, LoggerMixin):
    """
    Implements SettingsRepository on the first record of the ``settings`` collection.
    """

    _store: RecordStore

    def __init__(self, *, store: RecordStore, logger: logging.Logger) -> None:
        self._store = store
        self._build_logger(logger=logger)

    async def get_raw_settings(self) -> Optional[Dict[str, Any]]:
        records = await self._store.find_all(SETTINGS_COLLECTION)
        if len(records) > 1:
            self._logger.warning(
                f"Found {len(records)} settings records, using the first one"
            )
        return records[0] if records else None

    async def save_settings(self, settings: SettingsEntity) -> SettingsEntity:
        record: Dict[str, Any] = {}
        if settings.id:
            record = await self._store.find_by_id(SETTINGS_COLLECTION, settings.id) or {
                "id": settings.id
            }

        record.update(
            interval=settings.interval,
            notifications=settings.notifications,
            scan_range=settings.scan_range,
        )
        saved = await self._store.save(SETTINGS_COLLECTION, record)

        return SettingsEntity(
            id=str(saved.get("id") or ""),
            interval=settings.interval,
            notifications=settings.notifications,
            scan_range=settings.scan_range,
        )
