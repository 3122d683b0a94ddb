"""
settings_repository.py

Defines the SettingsRepository abstract base class for reading and persisting the singleton settings record.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from upsnap_core.core.domain.entities.settings_entity import SettingsEntity


class SettingsRepository(ABC):
    """
    Abstract base class for settings repository operations.
    """

    @abstractmethod
    async def get_raw_settings(self) -> Optional[Dict[str, Any]]:
        """
        Retrieve the first settings record as stored, or None when none exists yet.

        The raw form is returned because fields may be missing or malformed and
        resolution decides what to do with them.
        """
        ...

    @abstractmethod
    async def save_settings(self, settings: SettingsEntity) -> SettingsEntity:
        """
        Persist the effective settings, creating the record when needed.

        Returns:
            SettingsEntity: The saved settings including the record identifier.
        """
        ...
