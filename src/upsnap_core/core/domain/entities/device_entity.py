"""
Defines the DeviceEntity class, representing a LAN device whose power state is tracked and controlled.
"""

from dataclasses import dataclass, replace
from typing import Literal

DeviceStatus = Literal["online", "offline"]

DEFAULT_WOL_PORT = 9
DEFAULT_SSH_PORT = 22
DEFAULT_SHUTDOWN_COMMAND = "sudo shutdown -h now"


@dataclass(frozen=True, kw_only=True)
class DeviceEntity:
    """
    Represents a device record mirrored from the record store.

    Only ``status`` is written back by the core; every other field is
    owner-authored configuration.

    Attributes:
        id (str): Store-assigned identifier.
        name (str): Display name.
        mac (str): MAC address, six octets.
        ip (str): IP address or hostname used for probing and remote commands.
        netmask (str): Optional netmask used to derive a directed broadcast.
        broadcast (str): Optional explicit broadcast target for wake packets.
        wol_port (int): UDP port for wake packets.
        status (DeviceStatus): Last known power state.
        ssh_user (str): Remote login for shutdown; empty when not configured.
        ssh_port (int): Remote login port.
        ssh_key (str): Optional identity file for the remote login.
        shutdown_cmd (str): Command issued on the remote session.
    """

    id: str
    name: str
    mac: str
    ip: str
    netmask: str = ""
    broadcast: str = ""
    wol_port: int = DEFAULT_WOL_PORT
    status: DeviceStatus = "offline"
    ssh_user: str = ""
    ssh_port: int = DEFAULT_SSH_PORT
    ssh_key: str = ""
    shutdown_cmd: str = DEFAULT_SHUTDOWN_COMMAND

    def with_status(self, status: DeviceStatus) -> "DeviceEntity":
        """Return a copy of the device carrying the given status."""
        return replace(self, status=status)
