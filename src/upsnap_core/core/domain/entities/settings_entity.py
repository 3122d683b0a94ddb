"""
Defines the SettingsEntity class, the singleton configuration record consumed by the scheduler.
"""

from dataclasses import dataclass

DEFAULT_INTERVAL = "@every 3s"
DEFAULT_NOTIFICATIONS = True
DEFAULT_SCAN_RANGE = ""


@dataclass(frozen=True, kw_only=True)
class SettingsEntity:
    """
    Effective settings after environment, stored and default values were resolved.

    Attributes:
        id (str): Store-assigned identifier, empty until first saved.
        interval (str): Schedule expression for the poll job.
        notifications (bool): Whether status transitions are published.
        scan_range (str): Subnet scanned when a scan request names none.
    """

    id: str = ""
    interval: str = DEFAULT_INTERVAL
    notifications: bool = DEFAULT_NOTIFICATIONS
    scan_range: str = DEFAULT_SCAN_RANGE
