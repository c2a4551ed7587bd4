# The reference identifier is 4 bytes whose meaning depends on the stratum
# (and, for secondary servers, on the protocol version):
#
# - stratum 0 (and the reserved 17-255) and 1: a 4 character ASCII code,
#   like "GPS" or "PPS", or a kiss code for stratum 0
# - stratum 2-15, NTPv3: the IPv4 address of the server we synced to
# - stratum 2-15, NTPv4: the low order bits of the last update's timestamp
#   (RFC 2030 section 4)
#
# decode_reference_id() does the pure part. resolve_reference_id() also
# tries to put a host name on an address, which needs the network.

from __future__ import annotations

import datetime
import ipaddress
import logging
from typing import Optional, Union

import attr
import idna
import trio

from ._exceptions import ResolutionFailure
from ._packet import NTPPacket, Stratum
from ._resolve import DEFAULT_DNS_TIMEOUT, reverse_resolve
from ._timestamp import NTP_EPOCH, decode_timestamp

__all__ = [
    "AsciiReference",
    "AddressReference",
    "TimestampReference",
    "NotApplicable",
    "ReferenceIdentifier",
    "decode_reference_id",
    "resolve_reference_id",
]

LOGGER = logging.getLogger("ntpquery.refid")


@attr.frozen
class AsciiReference:
    code: str

    def __str__(self):
        return self.code


@attr.frozen
class AddressReference:
    address: ipaddress.IPv4Address
    hostname: Optional[str] = None

    def __str__(self):
        if self.hostname is None:
            return str(self.address)
        return f"{self.hostname} ({self.address})"


@attr.frozen
class TimestampReference:
    timestamp: datetime.datetime

    def __str__(self):
        # 5 digits of fractional seconds
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-1]


@attr.frozen
class NotApplicable:
    def __str__(self):
        return "N/A"


ReferenceIdentifier = Union[
    AsciiReference, AddressReference, TimestampReference, NotApplicable
]


def _era_seconds(when):
    # Whole seconds since 1900, wrapped into one 32 bit era
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    seconds = (when - NTP_EPOCH) // datetime.timedelta(seconds=1)
    return (seconds % 2**32).to_bytes(4, "big")


def decode_reference_id(packet: NTPPacket) -> ReferenceIdentifier | None:
    """Interpret ``packet.reference_id`` according to its stratum and
    version.

    Returns None for strata that don't carry a reference (unsynchronized
    servers).

    """
    raw = bytes(packet.reference_id)
    tier = packet.stratum_tier
    if tier in (Stratum.UNSPECIFIED, Stratum.PRIMARY_REFERENCE):
        # Taken byte for byte, printable or not.
        return AsciiReference(raw.decode("latin-1"))
    elif tier == Stratum.SECONDARY_REFERENCE:
        if packet.version == 3:
            return AddressReference(ipaddress.IPv4Address(raw))
        elif packet.version == 4:
            # The reference id is read as the seconds half of a timestamp,
            # and the seconds half of the reference timestamp that follows
            # it on the wire as the fraction.
            following = packet.reference_seconds
            if following is None:
                following = _era_seconds(packet.reference_timestamp)
            return TimestampReference(decode_timestamp(raw + bytes(following)))
        else:
            return NotApplicable()
    else:
        return None


def _display_name(hostname):
    try:
        return idna.decode(hostname)
    except idna.IDNAError:
        return hostname


async def resolve_reference_id(
    packet: NTPPacket, *, timeout: float = DEFAULT_DNS_TIMEOUT
) -> ReferenceIdentifier | None:
    """Like :func:`decode_reference_id`, but also look up a host name for
    an address reference.

    The name is cosmetic: if the reverse lookup fails, the bare address is
    returned and the failure is only logged.

    """
    reference = decode_reference_id(packet)
    if not isinstance(reference, AddressReference):
        await trio.lowlevel.checkpoint()
        return reference
    try:
        hostname = await reverse_resolve(reference.address, timeout=timeout)
    except ResolutionFailure as exc:
        LOGGER.debug("showing bare reference address: %s", exc)
        return reference
    return attr.evolve(reference, hostname=_display_name(hostname))
