"""ntpquery - ask an NTP server what time it is, with trio
"""

# General layout:
#
# ntpquery/_timestamp.py, _packet.py and _clock.py are pure: they turn bytes
# into values and back, and do the offset/delay arithmetic. They never touch
# the network.
#
# ntpquery/_resolve.py, _refid.py, _exchange.py and _report.py do the I/O,
# on top of trio.socket.
#
# This file pulls together the public API.
#
# Uses `from x import y as y` for compatibility with `pyright --verifytypes`

from ._version import __version__

from ._exceptions import (
    NTPError as NTPError,
    MalformedPacket as MalformedPacket,
    OutOfRange as OutOfRange,
    InvalidResponse as InvalidResponse,
    QueryTimeout as QueryTimeout,
    ResolutionFailure as ResolutionFailure,
)

from ._timestamp import (
    NTP_EPOCH as NTP_EPOCH,
    decode_timestamp as decode_timestamp,
    encode_timestamp as encode_timestamp,
)

from ._packet import (
    PACKET_SIZE as PACKET_SIZE,
    NTP_PORT as NTP_PORT,
    LeapIndicator as LeapIndicator,
    Mode as Mode,
    Stratum as Stratum,
    NTPPacket as NTPPacket,
    build_request as build_request,
    decode_packet as decode_packet,
    encode_packet as encode_packet,
    is_valid as is_valid,
)

from ._clock import (
    round_trip_delay as round_trip_delay,
    clock_offset as clock_offset,
)

from ._refid import (
    AsciiReference as AsciiReference,
    AddressReference as AddressReference,
    TimestampReference as TimestampReference,
    NotApplicable as NotApplicable,
    decode_reference_id as decode_reference_id,
    resolve_reference_id as resolve_reference_id,
)

from ._resolve import (
    resolve_hostname as resolve_hostname,
    reverse_resolve as reverse_resolve,
)

from ._exchange import ExchangeResult as ExchangeResult, query as query

from ._report import (
    Report as Report,
    build_report as build_report,
    format_report as format_report,
)

from ._config import QueryConfig as QueryConfig
