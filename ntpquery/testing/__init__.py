# Uses `from x import y as y` for compatibility with `pyright --verifytypes`

from ._fake_net import (
    FakeNTPNet as FakeNTPNet,
    UDPPacket as UDPPacket,
    server_reply as server_reply,
)
