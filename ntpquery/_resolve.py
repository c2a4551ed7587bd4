from __future__ import annotations

import ipaddress
import logging
from typing import Union

import trio

from ._exceptions import ResolutionFailure
from ._packet import NTP_PORT

__all__ = ["DEFAULT_DNS_TIMEOUT", "resolve_hostname", "reverse_resolve"]

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_DNS_TIMEOUT = 5.0

LOGGER = logging.getLogger("ntpquery.resolve")


async def resolve_hostname(
    name: str, *, timeout: float = DEFAULT_DNS_TIMEOUT, family: int = 0
) -> IPAddress:
    """Look up the address of an NTP server.

    Goes through :func:`trio.socket.getaddrinfo`, so a custom hostname
    resolver installed with :func:`trio.socket.set_custom_hostname_resolver`
    is honored. If the name has several addresses, the first one wins.

    Raises:
      ResolutionFailure: if the lookup fails, returns nothing usable, or
          takes longer than ``timeout`` seconds.

    """
    infos = None
    with trio.move_on_after(timeout):
        # Non-ASCII names that fail IDNA encoding raise UnicodeError
        try:
            infos = await trio.socket.getaddrinfo(
                name, NTP_PORT, family=family, type=trio.socket.SOCK_DGRAM
            )
        except (OSError, UnicodeError) as exc:
            raise ResolutionFailure(f"unable to resolve {name!r}: {exc}") from exc
    if infos is None:
        raise ResolutionFailure(
            f"timed out after {timeout} seconds resolving {name!r}"
        )

    addresses: list[IPAddress] = []
    for *_, sockaddr in infos:
        address = ipaddress.ip_address(sockaddr[0])
        if address not in addresses:
            addresses.append(address)
    if not addresses:
        raise ResolutionFailure(f"no addresses found for {name!r}")
    if len(addresses) > 1:
        LOGGER.warning(
            "%s has multiple addresses (%s), using %s",
            name,
            ", ".join(str(a) for a in addresses),
            addresses[0],
        )
    return addresses[0]


async def reverse_resolve(
    address: IPAddress | str, *, timeout: float = DEFAULT_DNS_TIMEOUT
) -> str:
    """Find the host name for an address.

    Raises:
      ResolutionFailure: if there's no name on record, or the lookup takes
          longer than ``timeout`` seconds.

    """
    address = ipaddress.ip_address(address)
    sockaddr = (str(address), 0)
    if address.version == 6:
        sockaddr += (0, 0)
    with trio.move_on_after(timeout):
        try:
            hostname, _ = await trio.socket.getnameinfo(
                sockaddr, trio.socket.NI_NAMEREQD
            )
        except OSError as exc:
            raise ResolutionFailure(f"no name found for {address}: {exc}") from exc
        return hostname
    raise ResolutionFailure(f"timed out after {timeout} seconds looking up {address}")
