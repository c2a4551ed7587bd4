# A pretend network with NTP servers on it, for testing code that calls
# ntpquery.query() without touching the real internet.
#
# It plugs into trio's customization hooks, so it only affects the trio.run()
# it's enabled in.

from __future__ import annotations

import datetime
import errno
import ipaddress
import math
import os
import socket as _stdlib_socket
from typing import Any, Callable, Optional

import attr
import trio

from .._packet import Mode, NTPPacket, decode_packet, encode_packet

__all__ = ["FakeNTPNet", "UDPPacket", "server_reply"]

# A handler gets the raw request payload and returns the raw reply, or None
# to drop the request on the floor.
Handler = Callable[[bytes], Optional[bytes]]


def _fake_err(code):
    raise OSError(code, os.strerror(code))


def _gai_err(code, message):
    raise _stdlib_socket.gaierror(code, message)


def _normalize(sockaddr):
    ip, port = sockaddr[:2]
    return (ipaddress.ip_address(ip).compressed, int(port))


@attr.frozen
class UDPPacket:
    source: tuple
    destination: tuple
    payload: bytes = attr.ib(repr=lambda p: p.hex())


def server_reply(
    receive: datetime.datetime,
    transmit: Optional[datetime.datetime] = None,
    **fields: Any,
) -> Handler:
    """Make a handler that answers like a well-behaved server.

    The reply echoes the request's transmit timestamp as its originate
    timestamp and reports ``receive`` and ``transmit`` (defaults to
    ``receive``) as T2 and T3. Any other :class:`NTPPacket` field can be
    overridden with a keyword argument; the mode defaults to server.

    """
    if transmit is None:
        transmit = receive
    fields.setdefault("mode", Mode.SERVER)

    def handler(request):
        packet = NTPPacket(
            originate_timestamp=decode_packet(request).transmit_timestamp,
            receive_timestamp=receive,
            transmit_timestamp=transmit,
            **fields,
        )
        return encode_packet(packet)

    return handler


@attr.frozen
class FakeSocketFactory(trio.abc.SocketFactory):
    fake_net: FakeNTPNet

    def socket(self, family: int, type: int, proto: int) -> FakeSocket:  # type: ignore[override]
        return FakeSocket(self.fake_net, family, type, proto)


@attr.frozen
class FakeHostnameResolver(trio.abc.HostnameResolver):
    fake_net: FakeNTPNet

    async def getaddrinfo(
        self,
        host: bytes | str | None,
        port: bytes | str | int | None,
        family: int = 0,
        type: int = 0,
        proto: int = 0,
        flags: int = 0,
    ) -> list[tuple[Any, Any, int, str, tuple[str, int]]]:
        await trio.lowlevel.checkpoint()
        if isinstance(host, bytes):
            host = host.decode("ascii")
        if host in self.fake_net.hung_names:
            await trio.sleep_forever()
        addresses = self.fake_net.hosts.get(host)
        if not addresses:
            _gai_err(_stdlib_socket.EAI_NONAME, "Name or service not known")
        if isinstance(port, bytes):
            port = port.decode("ascii")
        port = int(port or 0)
        results = []
        for address in addresses:
            ip = ipaddress.ip_address(address)
            if ip.version == 6:
                ip_family = trio.socket.AF_INET6
            else:
                ip_family = trio.socket.AF_INET
            if family and family != ip_family:
                continue
            results.append(
                (
                    ip_family,
                    trio.socket.SOCK_DGRAM,
                    trio.socket.IPPROTO_UDP,
                    "",
                    (ip.compressed, port),
                )
            )
        return results

    async def getnameinfo(self, sockaddr: Any, flags: int) -> tuple[str, str]:
        await trio.lowlevel.checkpoint()
        ip, port = _normalize(sockaddr)
        if ip in self.fake_net.hung_names:
            await trio.sleep_forever()
        try:
            return self.fake_net.reverse[ip], str(port)
        except KeyError:
            _gai_err(_stdlib_socket.EAI_NONAME, "Name or service not known")


class FakeNTPNet:
    """Fake UDP network and DNS for one ``trio.run``.

    Attributes:
      hosts (dict): host name -> list of addresses, for forward lookups.
      reverse (dict): address -> host name, for reverse lookups.
      hung_names (set): names and addresses whose lookups never finish.
      sent (list): every :class:`UDPPacket` sent through the network.

    """

    def __init__(self) -> None:
        self._auto_port_iter = iter(range(50000, 65535))
        self._servers: dict[tuple[str, int], Handler] = {}
        self._bound: dict[tuple[str, int], FakeSocket] = {}
        self.hosts: dict[str, list[str]] = {}
        self.reverse: dict[str, str] = {}
        self.hung_names: set[str] = set()
        self.sent: list[UDPPacket] = []

    def enable(self) -> None:
        trio.socket.set_custom_socket_factory(FakeSocketFactory(self))
        trio.socket.set_custom_hostname_resolver(FakeHostnameResolver(self))

    def add_server(self, address: str, handler: Handler, *, port: int = 123) -> None:
        self._servers[_normalize((address, port))] = handler

    def send_packet(self, packet: UDPPacket) -> None:
        self.sent.append(packet)
        handler = self._servers.get(packet.destination)
        if handler is None:
            # Nobody's listening, so it's dropped
            return
        reply = handler(packet.payload)
        if reply is None:
            return
        self.deliver_packet(
            UDPPacket(
                source=packet.destination, destination=packet.source, payload=reply
            )
        )

    def deliver_packet(self, packet: UDPPacket) -> None:
        sock = self._bound.get(packet.destination)
        if sock is not None:
            sock._deliver_packet(packet)

    def _bind(self, binding, sock):
        if binding in self._bound:
            _fake_err(errno.EADDRINUSE)
        self._bound[binding] = sock


class FakeSocket:
    def __init__(self, fake_net, family, type, proto):
        if type != trio.socket.SOCK_DGRAM:
            raise NotImplementedError(f"FakeNTPNet doesn't support type={type}")
        self._fake_net = fake_net
        self.family = family
        self.type = type
        self.proto = proto
        self._closed = False
        self._binding: tuple[str, int] | None = None
        self._packet_sender, self._packet_receiver = trio.open_memory_channel(
            math.inf
        )

    def _check_closed(self):
        if self._closed:
            _fake_err(errno.EBADF)

    def _deliver_packet(self, packet):
        try:
            self._packet_sender.send_nowait(packet)
        except trio.BrokenResourceError:
            # sending to a closed socket -- UDP packets get dropped
            pass

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self._binding is not None:
            del self._fake_net._bound[self._binding]
        self._packet_receiver.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    async def bind(self, address):
        self._check_closed()
        await trio.lowlevel.checkpoint()
        if self._binding is not None:
            _fake_err(errno.EINVAL)
        ip, port = _normalize(address)
        # Binds to the wildcard address become binds to localhost
        if ip == "0.0.0.0":
            ip = "127.0.0.1"
        elif ip == "::":
            ip = "::1"
        if port == 0:
            port = next(self._fake_net._auto_port_iter)
        binding = (ip, port)
        self._fake_net._bind(binding, self)
        self._binding = binding

    async def sendto(self, data, address):
        self._check_closed()
        await trio.lowlevel.checkpoint()
        if self._binding is None:
            if self.family == trio.socket.AF_INET6:
                await self.bind(("::", 0))
            else:
                await self.bind(("0.0.0.0", 0))
        assert self._binding is not None
        payload = bytes(data)
        self._fake_net.send_packet(
            UDPPacket(
                source=self._binding,
                destination=_normalize(address),
                payload=payload,
            )
        )
        return len(payload)

    async def recvfrom_into(self, buf, nbytes=0):
        self._check_closed()
        packet = await self._packet_receiver.receive()
        # Like a real datagram socket, anything that doesn't fit is lost
        written = min(len(packet.payload), nbytes or len(buf))
        buf[:written] = packet.payload[:written]
        return written, packet.source

