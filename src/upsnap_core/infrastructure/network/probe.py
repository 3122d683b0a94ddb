"""
Reachability probes used by the status poller and the network scanner.
"""

import asyncio
import logging
import math
import platform
from abc import ABC, abstractmethod
from typing import List

from upsnap_core.common.utility import LoggerMixin


class ReachabilityProbe(ABC):
    """Contract for a single-host reachability check."""

    @abstractmethod
    async def is_reachable(self, address: str) -> bool:
        """
        Return True when the host answered within the probe's own timeout.

        Implementations must not raise for unreachable or unknown hosts.
        """
        ...


class PingProbe(ReachabilityProbe, LoggerMixin):
    """
    Probe a host with one ICMP echo request through the system ``ping`` binary.

    The subprocess is killed when the probe times out or its task is cancelled,
    so cancelling a scan never leaves stray ``ping`` processes behind.
    """

    _timeout: float
    _system: str

    def __init__(self, *, logger: logging.Logger, timeout: float = 1.0) -> None:
        self._timeout = timeout
        self._system = platform.system()
        self._build_logger(logger=logger)

    def _command(self, address: str) -> List[str]:
        match self._system:
            case "Windows":
                return ["ping", "-n", "1", "-w", str(int(self._timeout * 1000)), address]
            case "Darwin":
                return ["ping", "-c", "1", "-t", str(max(1, math.ceil(self._timeout))), address]
            case _:
                return ["ping", "-c", "1", "-W", str(max(1, math.ceil(self._timeout))), address]

    async def is_reachable(self, address: str) -> bool:
        if not address:
            return False

        try:
            process = await asyncio.create_subprocess_exec(
                *self._command(address),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self._logger.warning(f"Cannot run ping for {address}: {e}")
            return False

        try:
            returncode = await asyncio.wait_for(
                process.wait(), timeout=self._timeout + 1.0
            )
        except asyncio.TimeoutError:
            self._logger.debug(f"Probe of {address} timed out")
            return False
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass

        return returncode == 0
