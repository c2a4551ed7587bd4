# https://tools.ietf.org/html/rfc5905#page-19
# https://tools.ietf.org/html/rfc2030#section-4

from __future__ import annotations

import datetime
import enum
import struct
from typing import Optional

import attr

from ._exceptions import MalformedPacket
from ._timestamp import (
    NTP_EPOCH,
    decode_short,
    decode_timestamp,
    encode_short,
    encode_timestamp,
)

__all__ = [
    "PACKET_SIZE",
    "NTP_PORT",
    "LeapIndicator",
    "Mode",
    "Stratum",
    "NTPPacket",
    "pack_first_byte",
    "unpack_first_byte",
    "build_request",
    "stamp_transmit",
    "decode_packet",
    "encode_packet",
    "is_valid",
]

# Packets are always 48 bytes long, unless you're using extension fields or
# a MAC, which we aren't.
PACKET_SIZE = 48

NTP_PORT = 123

# The first byte contains 3 subfields:
# first 2 bits: leap indicator
# next 3 bits: version number
# last 3 bits: mode
LEAP_MASK = 0b11000000
LEAP_SHIFT = 6
VERSION_MASK = 0b00111000
VERSION_SHIFT = 3
MODE_MASK = 0b00000111

# Requests go out as version 3, so their first byte is 0x1B. Anything else
# built from an NTPPacket defaults to version 4.
REQUEST_VERSION = 3
DEFAULT_VERSION = 4

# Offsets of the fields we need to touch directly in a raw buffer.
OFFSET_REFERENCE_ID = 12
OFFSET_TRANSMIT_TIMESTAMP = 40

# - 1 byte leap/version/mode
# - 1 byte stratum (unsigned)
# - 1 byte poll exponent (signed)
# - 1 byte precision exponent (signed)
# - 4 bytes root delay (Q16.16)
# - 4 bytes root dispersion (Q16.16)
# - 4 bytes reference identifier
# - 4 x 8 bytes reference, originate, receive and transmit timestamps
PACKET = struct.Struct("!BBbb4s4s4s8s8s8s8s")
assert PACKET.size == PACKET_SIZE


class LeapIndicator(enum.IntEnum):
    NO_WARNING = 0
    LAST_MINUTE_61 = 1
    LAST_MINUTE_59 = 2
    ALARM = 3


class Mode(enum.IntEnum):
    # 0, 6 and 7 are reserved (or control/private, which we don't speak)
    UNKNOWN = 0
    SYMMETRIC_ACTIVE = 1
    SYMMETRIC_PASSIVE = 2
    CLIENT = 3
    SERVER = 4
    BROADCAST = 5


class Stratum(enum.IntEnum):
    UNSPECIFIED = 0
    PRIMARY_REFERENCE = 1
    # 2-15
    SECONDARY_REFERENCE = 2
    UNSYNCHRONIZED = 16


def _mode_from_bits(value):
    try:
        return Mode(value)
    except ValueError:
        return Mode.UNKNOWN


def _stratum_tier(level):
    if level == 0:
        return Stratum.UNSPECIFIED
    if level == 1:
        return Stratum.PRIMARY_REFERENCE
    if level <= 15:
        return Stratum.SECONDARY_REFERENCE
    if level == 16:
        return Stratum.UNSYNCHRONIZED
    # 17-255 are reserved. These get lumped in with "unspecified", which
    # means their reference id is shown as ASCII. That's a bit odd, but it's
    # what existing tools report, so we keep it.
    return Stratum.UNSPECIFIED


def pack_first_byte(leap, version, mode):
    return (
        ((leap << LEAP_SHIFT) & LEAP_MASK)
        | ((version << VERSION_SHIFT) & VERSION_MASK)
        | (mode & MODE_MASK)
    )


def unpack_first_byte(value):
    """Split byte 0 into its raw (leap, version, mode) bit fields."""
    return (
        (value & LEAP_MASK) >> LEAP_SHIFT,
        (value & VERSION_MASK) >> VERSION_SHIFT,
        value & MODE_MASK,
    )


@attr.frozen
class NTPPacket:
    """The informational fields of a decoded NTP packet.

    Timestamps are aware UTC datetimes with millisecond precision; root
    delay and root dispersion are in seconds. ``stratum``, ``poll`` and
    ``precision`` are the raw values off the wire.

    """

    leap_indicator: LeapIndicator = LeapIndicator.NO_WARNING
    version: int = DEFAULT_VERSION
    mode: Mode = Mode.CLIENT
    stratum: int = 0
    poll: int = 0
    precision: int = 0
    root_delay: float = 0.0
    root_dispersion: float = 0.0
    reference_id: bytes = attr.ib(default=bytes(4), repr=lambda b: b.hex())
    reference_timestamp: datetime.datetime = NTP_EPOCH
    originate_timestamp: datetime.datetime = NTP_EPOCH
    receive_timestamp: datetime.datetime = NTP_EPOCH
    transmit_timestamp: datetime.datetime = NTP_EPOCH
    # Bytes 16-19 as received (the seconds half of the reference timestamp).
    # None for packets that weren't decoded off the wire.
    reference_seconds: Optional[bytes] = attr.ib(default=None, repr=False, eq=False)

    @property
    def stratum_tier(self):
        return _stratum_tier(self.stratum)

    @property
    def poll_interval(self) -> float:
        """Maximum interval between successive messages, in seconds."""
        return 2.0**self.poll


def build_request() -> bytearray:
    """Construct a fresh client request: version 3, client mode, no leap
    warning, every other field zero.

    The caller owns the returned buffer. The transmit timestamp is left
    empty; see :func:`stamp_transmit`.

    """
    packet = bytearray(PACKET_SIZE)
    packet[0] = pack_first_byte(LeapIndicator.NO_WARNING, REQUEST_VERSION, Mode.CLIENT)
    return packet


def stamp_transmit(packet: bytearray, when: datetime.datetime) -> None:
    """Write ``when`` into the transmit timestamp field of a request."""
    packet[OFFSET_TRANSMIT_TIMESTAMP : OFFSET_TRANSMIT_TIMESTAMP + 8] = (
        encode_timestamp(when)
    )


def decode_packet(data: bytes) -> NTPPacket:
    """Decode the fixed 48 byte header of an NTP packet.

    Anything past the first 48 bytes is ignored. Every 48 byte buffer
    decodes to *something*; whether it's an acceptable reply is up to
    :func:`is_valid`.

    Raises:
      MalformedPacket: if ``data`` is shorter than 48 bytes.

    """
    if len(data) < PACKET_SIZE:
        raise MalformedPacket(
            f"NTP packet must be at least {PACKET_SIZE} bytes, got {len(data)}"
        )
    (
        first,
        stratum,
        poll,
        precision,
        root_delay,
        root_dispersion,
        reference_id,
        reference_ts,
        originate_ts,
        receive_ts,
        transmit_ts,
    ) = PACKET.unpack_from(bytes(data))
    leap, version, mode = unpack_first_byte(first)
    return NTPPacket(
        leap_indicator=LeapIndicator(leap),
        version=version,
        mode=_mode_from_bits(mode),
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=decode_short(root_delay),
        root_dispersion=decode_short(root_dispersion),
        reference_id=reference_id,
        reference_timestamp=decode_timestamp(reference_ts),
        originate_timestamp=decode_timestamp(originate_ts),
        receive_timestamp=decode_timestamp(receive_ts),
        transmit_timestamp=decode_timestamp(transmit_ts),
        reference_seconds=reference_ts[:4],
    )


def encode_packet(packet: NTPPacket) -> bytes:
    return PACKET.pack(
        pack_first_byte(packet.leap_indicator, packet.version, packet.mode),
        packet.stratum,
        packet.poll,
        packet.precision,
        encode_short(packet.root_delay),
        encode_short(packet.root_dispersion),
        bytes(packet.reference_id),
        encode_timestamp(packet.reference_timestamp),
        encode_timestamp(packet.originate_timestamp),
        encode_timestamp(packet.receive_timestamp),
        encode_timestamp(packet.transmit_timestamp),
    )


def is_valid(packet: NTPPacket, byte_length: int) -> bool:
    """Return True if ``packet`` (``byte_length`` bytes on the wire) is an
    acceptable reply from a time server.

    """
    return byte_length >= PACKET_SIZE and packet.mode == Mode.SERVER
