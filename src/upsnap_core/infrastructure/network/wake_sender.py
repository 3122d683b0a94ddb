"""
Wake-on-LAN sender.

Builds the magic packet (six ``0xFF`` bytes followed by the MAC address repeated
sixteen times) and sends it as one UDP broadcast datagram. Delivery is never
acknowledged, so a successful send is the only success signal available.
"""

import asyncio
import ipaddress
import logging
import socket
from abc import ABC, abstractmethod
from typing import Tuple, Union

from wakeonlan import create_magic_packet  # type: ignore

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import AddressUtils, LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
    ApplicationPowerErrors,
)
from upsnap_core.core.domain.entities.device_entity import (
    DEFAULT_WOL_PORT,
    DeviceEntity,
)

GLOBAL_BROADCAST = "255.255.255.255"
MAGIC_PACKET_SIZE = 102


def build_magic_packet(mac: str) -> bytes:
    """
    Build the 102-byte magic packet for a colon or hyphen separated MAC address.

    Raises:
        ValueError: If the MAC address is malformed.
    """
    if not AddressUtils.is_valid_mac(mac):
        raise ValueError(f"malformed MAC address {mac!r}")
    return create_magic_packet(AddressUtils.normalize_mac(mac))


def broadcast_for(device: DeviceEntity) -> str:
    """
    Resolve the broadcast target for a device.

    Uses the explicit ``broadcast`` field when set, else the directed broadcast
    of ``ip/netmask``, else the limited broadcast address.
    """
    if device.broadcast:
        return device.broadcast

    if device.ip and device.netmask:
        try:
            network = ipaddress.IPv4Network(f"{device.ip}/{device.netmask}", strict=False)
            return str(network.broadcast_address)
        except ValueError:
            pass

    return GLOBAL_BROADCAST


class DatagramTransport(ABC):
    """Contract for sending one connectionless datagram."""

    @abstractmethod
    async def send(self, payload: bytes, address: Tuple[str, int]) -> None:
        """
        Send the payload to the address.

        Raises:
            OSError: If the local socket refuses the send.
        """
        ...


class UdpBroadcastTransport(DatagramTransport):
    """Sends datagrams from a fresh broadcast-enabled UDP endpoint."""

    async def send(self, payload: bytes, address: Tuple[str, int]) -> None:
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol,
            family=socket.AF_INET,
            allow_broadcast=True,
        )
        try:
            transport.sendto(payload, address)
        finally:
            transport.close()


class WakeSender(LoggerMixin):
    """
    Sends Wake-on-LAN magic packets through a datagram transport.

    Args:
        logger (logging.Logger): Logger instance for logging.
        transport (DatagramTransport): Transport used for the broadcast, UDP by default.
    """

    _transport: DatagramTransport

    def __init__(
        self,
        *,
        logger: logging.Logger,
        transport: DatagramTransport | None = None,
    ) -> None:
        self._transport = transport or UdpBroadcastTransport()
        self._build_logger(logger=logger)

    async def wake(
        self,
        mac: str,
        broadcast: str = GLOBAL_BROADCAST,
        port: int = DEFAULT_WOL_PORT,
    ) -> Result[
        str,
        Union[
            ApplicationDevicesErrors.InvalidAddressError,
            ApplicationPowerErrors.WakeSendError,
        ],
    ]:
        """
        Send a magic packet for ``mac`` to ``broadcast:port``.

        Returns:
            Result[str, ...]: The ``address:port`` the packet went to, or
            InvalidAddressError (nothing sent) or WakeSendError.
        """
        try:
            packet = build_magic_packet(mac)
        except ValueError as e:
            self._logger.warning(f"Refusing to wake {mac!r}: {e}")
            return ResultHandler.fail(
                ApplicationDevicesErrors.InvalidAddressError(mac, str(e))
            )

        try:
            ipaddress.IPv4Address(broadcast)
        except ValueError:
            return ResultHandler.fail(
                ApplicationDevicesErrors.InvalidAddressError(
                    broadcast, "broadcast target must be an IPv4 address"
                )
            )

        target = f"{broadcast}:{port}"
        try:
            await self._transport.send(packet, (broadcast, port))
        except OSError as e:
            self._logger.error(f"Failed to send magic packet to {target}: {e}")
            return ResultHandler.fail(ApplicationPowerErrors.WakeSendError(target, str(e)))

        self._logger.info(f"Sent magic packet for {AddressUtils.normalize_mac(mac)} to {target}")
        return ResultHandler.ok(target)

    async def wake_device(
        self, device: DeviceEntity
    ) -> Result[
        str,
        Union[
            ApplicationDevicesErrors.InvalidAddressError,
            ApplicationPowerErrors.WakeSendError,
        ],
    ]:
        """Wake a device using its own broadcast target and port."""
        return await self.wake(device.mac, broadcast_for(device), device.wol_port)
