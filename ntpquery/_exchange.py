from __future__ import annotations

import datetime
import ipaddress
import logging
from typing import Callable, Optional

import attr
import trio

from ._clock import clock_offset, round_trip_delay
from ._exceptions import InvalidResponse, QueryTimeout
from ._packet import (
    NTP_PORT,
    PACKET_SIZE,
    NTPPacket,
    build_request,
    decode_packet,
    is_valid,
    stamp_transmit,
)
from ._resolve import DEFAULT_DNS_TIMEOUT, resolve_hostname
from ._timestamp import decode_timestamp, encode_timestamp

__all__ = ["DEFAULT_TIMEOUT", "ExchangeResult", "query"]

DEFAULT_TIMEOUT = 20.0

LOGGER = logging.getLogger("ntpquery.exchange")


def utc_now():
    return datetime.datetime.now(datetime.timezone.utc)


@attr.frozen
class ExchangeResult:
    """Everything observed during one request/response exchange.

    ``originate`` (T1) and ``destination`` (T4) come from our own clock;
    ``receive`` (T2) and ``transmit`` (T3) come from the server's reply.

    """

    source: str
    address: str
    originate: datetime.datetime
    destination: datetime.datetime
    packet: NTPPacket
    byte_length: int = PACKET_SIZE

    @property
    def receive(self):
        return self.packet.receive_timestamp

    @property
    def transmit(self):
        return self.packet.transmit_timestamp

    @property
    def is_valid(self) -> bool:
        return is_valid(self.packet, self.byte_length)

    @property
    def round_trip_delay(self) -> datetime.timedelta:
        return round_trip_delay(
            self.originate, self.receive, self.transmit, self.destination
        )

    @property
    def clock_offset(self) -> datetime.timedelta:
        return clock_offset(self.originate, self.receive, self.transmit, self.destination)

    def ensure_valid(self) -> ExchangeResult:
        """Return self, or raise :exc:`InvalidResponse` if the reply didn't
        pass the acceptance check.

        """
        if not self.is_valid:
            raise InvalidResponse(
                f"invalid response from {self.source}: mode {self.packet.mode.name}, "
                f"{self.byte_length} bytes"
            )
        return self


async def query(
    source: str,
    *,
    address: Optional[str] = None,
    port: int = NTP_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    dns_timeout: float = DEFAULT_DNS_TIMEOUT,
    clock: Callable[[], datetime.datetime] = utc_now,
) -> ExchangeResult:
    """Ask one NTP server for the time.

    Sends a single client-mode request and waits for a single reply. If
    ``address`` is given, it's used as-is and ``source`` is only a label;
    otherwise ``source`` is looked up with :func:`resolve_hostname`.

    ``clock`` supplies the local timestamps T1 and T4, as aware UTC
    datetimes.

    A reply that decodes but isn't an acceptable server response is still
    returned -- check :attr:`ExchangeResult.is_valid`, or call
    :meth:`ExchangeResult.ensure_valid`.

    Raises:
      QueryTimeout: if nothing comes back within ``timeout`` seconds.
      MalformedPacket: if the reply is shorter than an NTP packet.
      ResolutionFailure: if ``source`` can't be resolved.

    """
    if address is None:
        ip = await resolve_hostname(source, timeout=dns_timeout)
    else:
        ip = ipaddress.ip_address(address)
    if ip.version == 6:
        family = trio.socket.AF_INET6
    else:
        family = trio.socket.AF_INET
    destination_addr = (str(ip), port)

    # Both buffers belong to this call alone, and go away with it.
    request = build_request()
    response = bytearray(PACKET_SIZE)

    with trio.socket.socket(family=family, type=trio.socket.SOCK_DGRAM) as sock:
        try:
            with trio.fail_after(timeout):
                # Stamp as late as possible, so T1 is close to wire time.
                t1 = clock()
                stamp_transmit(request, t1)
                LOGGER.debug("sending request to %s (%s:%d)", source, ip, port)
                await sock.sendto(request, destination_addr)
                nbytes, sender = await sock.recvfrom_into(response)
                t4 = clock()
        except trio.TooSlowError as exc:
            raise QueryTimeout(
                f"no response from {source} ({ip}) within {timeout} seconds"
            ) from exc

    LOGGER.debug("received %d bytes from %s", nbytes, sender)
    if (ipaddress.ip_address(sender[0]), sender[1]) != (ip, port):
        # Accepted anyway, like the originate check below
        LOGGER.warning(
            "reply for %s came from %s:%d, not %s:%d",
            source,
            sender[0],
            sender[1],
            ip,
            port,
        )
    packet = decode_packet(response[:nbytes])
    result = ExchangeResult(
        source=source,
        address=str(ip),
        originate=t1,
        destination=t4,
        packet=packet,
        byte_length=nbytes,
    )
    if not result.is_valid:
        LOGGER.warning(
            "invalid response from %s: mode %s", source, packet.mode.name
        )
    elif packet.originate_timestamp != decode_timestamp(encode_timestamp(t1)):
        # Doesn't affect validity, but usually means the reply belongs to
        # somebody else's request.
        LOGGER.warning(
            "%s echoed originate timestamp %s, expected %s",
            source,
            packet.originate_timestamp.isoformat(),
            t1.isoformat(),
        )
    return result
