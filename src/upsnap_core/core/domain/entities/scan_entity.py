"""
Entities produced by a network scan.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, kw_only=True)
class ScannedHostEntity:
    """
    A host that answered the reachability probe.

    Attributes:
        address (str): IP address of the host.
        mac (str): Resolved MAC address, empty when the neighbor table had no entry.
    """

    address: str
    mac: str = ""


@dataclass(frozen=True, kw_only=True)
class ScanReportEntity:
    """
    Outcome of a scan over one subnet.

    Attributes:
        subnet (str): The scanned network in CIDR notation.
        hosts (List[ScannedHostEntity]): Responding hosts, sorted by address.
        timed_out (bool): True when the total timeout expired before every probe finished.
    """

    subnet: str
    hosts: List[ScannedHostEntity] = field(default_factory=list)
    timed_out: bool = False
