"""Offset and delay from the classic four-timestamp exchange.

The four timestamps are:

* T1 (originate): client sends the request, client clock
* T2 (receive): server receives the request, server clock
* T3 (transmit): server sends the reply, server clock
* T4 (destination): client receives the reply, client clock

See https://tools.ietf.org/html/rfc5905#section-8

Each call works on exactly one sample. There's no filtering, averaging or
outlier rejection here -- that's what a full NTP daemon is for.

"""

from __future__ import annotations

import datetime

__all__ = ["round_trip_delay", "clock_offset"]


def round_trip_delay(
    t1: datetime.datetime,
    t2: datetime.datetime,
    t3: datetime.datetime,
    t4: datetime.datetime,
) -> datetime.timedelta:
    """Time spent on the network, excluding the server's processing time.

    The result can come out negative if one of the clocks stepped during
    the exchange. That's reported as-is, so callers can see the sample is
    inconsistent.

    """
    return (t4 - t1) - (t3 - t2)


def clock_offset(
    t1: datetime.datetime,
    t2: datetime.datetime,
    t3: datetime.datetime,
    t4: datetime.datetime,
) -> datetime.timedelta:
    """How far the server's clock is ahead of ours (negative if behind),
    assuming the outbound and return paths take equally long.

    """
    return ((t2 - t1) + (t3 - t4)) / 2
