# NTP timestamps are described here:
#   https://tools.ietf.org/html/rfc5905#page-13
#
# A timestamp is a 32 bit count of whole seconds since 1900-01-01 (ignoring
# leap seconds), followed by a 32 bit binary fraction of a second. The
# fraction has a resolution of about 233 picoseconds, but we only carry
# milliseconds, which is plenty for an informational query.

from __future__ import annotations

import datetime
import struct

from ._exceptions import OutOfRange

__all__ = [
    "NTP_EPOCH",
    "decode_timestamp",
    "encode_timestamp",
    "decode_short",
    "encode_short",
]

NTP_EPOCH = datetime.datetime(1900, 1, 1, tzinfo=datetime.timezone.utc)

TIMESTAMP = struct.Struct("!II")
SHORT = struct.Struct("!I")

_FRACTION_SCALE = 2**32
_SHORT_SCALE = 0x10000
_MAX_SECONDS = 2**32 - 1


def decode_timestamp(data: bytes) -> datetime.datetime:
    """Convert an 8 byte NTP timestamp into an aware UTC datetime,
    truncated to the millisecond.

    """
    seconds, fraction = TIMESTAMP.unpack(bytes(data))
    # Integer arithmetic only: dividing the fraction as a float would lose
    # the bottom bits on large second counts.
    milliseconds = seconds * 1000 + (fraction * 1000) // _FRACTION_SCALE
    return NTP_EPOCH + datetime.timedelta(milliseconds=milliseconds)


def encode_timestamp(when: datetime.datetime) -> bytes:
    """Convert a datetime into an 8 byte NTP timestamp.

    Naive datetimes are assumed to be in UTC. Anything below a millisecond
    is dropped.

    Raises:
      OutOfRange: if ``when`` is before the NTP epoch, or too late to fit
          in 32 bits of seconds.

    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    delta = when - NTP_EPOCH
    if delta < datetime.timedelta(0):
        raise OutOfRange(f"{when.isoformat()} is before the NTP epoch")
    microseconds = (delta.days * 86400 + delta.seconds) * 10**6 + delta.microseconds
    milliseconds = microseconds // 1000
    seconds, remainder = divmod(milliseconds, 1000)
    if seconds > _MAX_SECONDS:
        raise OutOfRange(f"{when.isoformat()} is past the end of NTP era 0")
    # Round the fraction up, so that decode_timestamp() lands back on the
    # same millisecond instead of the one before it.
    fraction = -((-remainder * _FRACTION_SCALE) // 1000)
    return TIMESTAMP.pack(seconds, fraction)


def decode_short(data: bytes) -> float:
    """Decode a 4 byte unsigned Q16.16 value (root delay, root dispersion)
    into seconds.

    """
    (value,) = SHORT.unpack(bytes(data))
    return value / float(_SHORT_SCALE)


def encode_short(seconds: float) -> bytes:
    value = round(seconds * _SHORT_SCALE)
    if not 0 <= value <= 0xFFFFFFFF:
        raise OutOfRange(f"{seconds!r} seconds doesn't fit in NTP short format")
    return SHORT.pack(value)
