class NTPError(Exception):
    """Base class for all errors raised by ntpquery."""


class MalformedPacket(NTPError):
    """Raised when a received buffer is too short to hold an NTP packet.

    A datagram of the wrong size is a protocol violation by the peer. We
    never try to recover one by padding it or guessing at the missing
    fields.

    """


class OutOfRange(NTPError, ValueError):
    """Raised when a time can't be represented as an NTP timestamp.

    NTP era 0 covers 1900-01-01T00:00:00Z through early 2036. Converting
    anything outside that window (for example, a date before 1900) is a
    caller error.

    """


class InvalidResponse(NTPError):
    """Raised by :meth:`ExchangeResult.ensure_valid` if the server's reply
    was well-formed but not an acceptable answer to our request (wrong
    length or not in server mode).

    """


class QueryTimeout(NTPError):
    """Raised by :func:`query` if no response arrives before the timeout
    expires.

    """


class ResolutionFailure(NTPError):
    """Raised when a forward or reverse DNS lookup fails or times out."""
