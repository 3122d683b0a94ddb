"""
Network scanner.

Sweeps a subnet with a bounded number of concurrent reachability probes and
resolves the MAC address of every responding host from the local neighbor
table. The sweep has a total timeout; whatever finished by then is returned
and the report is flagged as timed out.
"""

import asyncio
import ipaddress
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import AddressUtils, LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
)
from upsnap_core.core.domain.entities.scan_entity import (
    ScanReportEntity,
    ScannedHostEntity,
)
from upsnap_core.infrastructure.network.probe import ReachabilityProbe

PROC_NET_ARP = Path("/proc/net/arp")
INCOMPLETE_MAC = "00:00:00:00:00:00"

_MAC_SEARCH = re.compile(r"([0-9A-Fa-f]{1,2}[:-]){5}[0-9A-Fa-f]{1,2}")

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class NeighborTable(LoggerMixin):
    """
    Resolves IP addresses to MAC addresses from the kernel neighbor cache.

    Reads ``/proc/net/arp`` where it exists and falls back to ``arp -n``.
    """

    _arp_path: Path
    _timeout: float

    def __init__(
        self,
        *,
        logger: logging.Logger,
        arp_path: Path = PROC_NET_ARP,
        timeout: float = 2.0,
    ) -> None:
        self._arp_path = arp_path
        self._timeout = timeout
        self._build_logger(logger=logger)

    async def lookup(self, address: str) -> str:
        """Return the MAC for ``address``, or an empty string when unknown."""
        if self._arp_path.exists():
            table = await asyncio.to_thread(self._read_arp_file)
            return table.get(address, "")
        return await self._lookup_with_arp(address)

    def _read_arp_file(self) -> Dict[str, str]:
        table: Dict[str, str] = {}
        try:
            lines = self._arp_path.read_text().splitlines()
        except OSError as e:
            self._logger.debug(f"Cannot read {self._arp_path}: {e}")
            return table

        # IP address  HW type  Flags  HW address  Mask  Device
        for line in lines[1:]:
            fields = line.split()
            if len(fields) < 4:
                continue
            mac = fields[3].upper()
            if mac != INCOMPLETE_MAC and AddressUtils.is_valid_mac(mac):
                table[fields[0]] = mac
        return table

    async def _lookup_with_arp(self, address: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                "arp",
                "-n",
                address,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self._logger.debug(f"Cannot run arp: {e}")
            return ""

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            process.kill()
            return ""

        for line in stdout.decode(errors="replace").splitlines():
            if address not in line:
                continue
            match = _MAC_SEARCH.search(line)
            if match:
                # macOS prints single-digit octets
                octets = re.split(r"[:-]", match.group())
                return ":".join(octet.zfill(2) for octet in octets).upper()
        return ""


class NetworkScanner(LoggerMixin):
    """
    Discovers hosts on a subnet.

    Args:
        probe (ReachabilityProbe): Probe used for every candidate address.
        neighbor_table (NeighborTable): MAC resolution for responding hosts.
        logger (logging.Logger): Logger instance for logging.
        workers (int): Maximum number of probes in flight.
        timeout (float): Total time budget for one scan, in seconds.
        max_hosts (int): Largest range accepted.
    """

    _probe: ReachabilityProbe
    _neighbor_table: NeighborTable
    _workers: int
    _timeout: float
    _max_hosts: int

    def __init__(
        self,
        *,
        probe: ReachabilityProbe,
        neighbor_table: NeighborTable,
        logger: logging.Logger,
        workers: int = 64,
        timeout: float = 30.0,
        max_hosts: int = 4096,
    ) -> None:
        self._probe = probe
        self._neighbor_table = neighbor_table
        self._workers = workers
        self._timeout = timeout
        self._max_hosts = max_hosts
        self._build_logger(logger=logger)

    def parse_subnet(
        self, subnet: str
    ) -> Result[IPNetwork, ApplicationDevicesErrors.InvalidAddressError]:
        """Parse ``subnet`` and check it is small enough to sweep."""
        try:
            network = ipaddress.ip_network(subnet.strip(), strict=False)
        except ValueError as e:
            return ResultHandler.fail(
                ApplicationDevicesErrors.InvalidAddressError(subnet, str(e))
            )

        if network.num_addresses > self._max_hosts + 2:
            return ResultHandler.fail(
                ApplicationDevicesErrors.InvalidAddressError(
                    subnet,
                    f"range has {network.num_addresses} addresses, limit is {self._max_hosts}",
                )
            )

        return ResultHandler.ok(network)

    @staticmethod
    def candidates(network: IPNetwork) -> List[str]:
        """Return the host addresses of ``network``."""
        hosts = list(network.hosts()) or [network.network_address]
        return [str(host) for host in hosts]

    async def scan(
        self, subnet: str
    ) -> Result[ScanReportEntity, ApplicationDevicesErrors.InvalidAddressError]:
        """
        Sweep ``subnet``.

        Returns:
            Result[ScanReportEntity, InvalidAddressError]: Responding hosts sorted by
            address, with ``timed_out`` set when the time budget ran out.
        """
        parsed = self.parse_subnet(subnet)
        if parsed.success == False:
            self._logger.warning(parsed.error.details)
            return ResultHandler.fail(parsed.error)

        network = parsed.value
        addresses = self.candidates(network)
        semaphore = asyncio.Semaphore(self._workers)
        found: Dict[str, ScannedHostEntity] = {}

        self._logger.info(f"Scanning {network} ({len(addresses)} hosts)")

        async def scan_one(address: str) -> None:
            async with semaphore:
                reachable = await self._probe.is_reachable(address)
            if not reachable:
                return
            found[address] = ScannedHostEntity(address=address)
            mac = await self._neighbor_table.lookup(address)
            if mac:
                found[address] = ScannedHostEntity(address=address, mac=mac)

        tasks = [asyncio.create_task(scan_one(address)) for address in addresses]
        timed_out = False

        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=self._timeout)
            if pending:
                timed_out = True
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                self._logger.warning(
                    f"Scan of {network} timed out with {len(pending)} probes unfinished"
                )
            for task in done:
                error: Optional[BaseException] = task.exception()
                if error is not None:
                    self._logger.debug(f"Probe failed during scan: {error!r}")

        hosts = sorted(found.values(), key=lambda host: ipaddress.ip_address(host.address))
        self._logger.info(f"Scan of {network} found {len(hosts)} hosts")

        return ResultHandler.ok(
            ScanReportEntity(subnet=str(network), hosts=hosts, timed_out=timed_out)
        )
