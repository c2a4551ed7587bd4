from __future__ import annotations

import datetime
from typing import Optional

import attr

from ._exchange import ExchangeResult
from ._packet import LeapIndicator, Mode, Stratum
from ._refid import ReferenceIdentifier, resolve_reference_id
from ._resolve import DEFAULT_DNS_TIMEOUT

__all__ = ["Report", "build_report", "format_report"]


@attr.frozen
class Report:
    """A read-only snapshot of one query: every decoded field, plus the
    computed offset and delay.

    """

    source: str
    address: str
    valid: bool
    mode: Mode
    leap_indicator: LeapIndicator
    version: int
    stratum: Stratum
    stratum_level: int
    reference: Optional[ReferenceIdentifier]
    reference_timestamp: datetime.datetime
    originate_timestamp: datetime.datetime
    receive_timestamp: datetime.datetime
    transmit_timestamp: datetime.datetime
    destination_timestamp: datetime.datetime
    precision: int
    poll_interval: float
    root_delay: float
    root_dispersion: float
    round_trip_delay: datetime.timedelta
    clock_offset: datetime.timedelta


async def build_report(
    result: ExchangeResult, *, dns_timeout: float = DEFAULT_DNS_TIMEOUT
) -> Report:
    packet = result.packet
    reference = await resolve_reference_id(packet, timeout=dns_timeout)
    return Report(
        source=result.source,
        address=result.address,
        valid=result.is_valid,
        mode=packet.mode,
        leap_indicator=packet.leap_indicator,
        version=packet.version,
        stratum=packet.stratum_tier,
        stratum_level=packet.stratum,
        reference=reference,
        reference_timestamp=packet.reference_timestamp,
        originate_timestamp=result.originate,
        receive_timestamp=result.receive,
        transmit_timestamp=result.transmit,
        destination_timestamp=result.destination,
        precision=packet.precision,
        poll_interval=packet.poll_interval,
        root_delay=packet.root_delay,
        root_dispersion=packet.root_dispersion,
        round_trip_delay=result.round_trip_delay,
        clock_offset=result.clock_offset,
    )


def _format_time(when):
    return when.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def _format_seconds(seconds):
    return f"{seconds:.6f} s"


def _format_duration(duration):
    # str(timedelta) renders negative durations as "-1 day, 23:59:59.9",
    # which is no good for offsets.
    return f"{duration.total_seconds():+.6f} s"


def format_report(report: Report) -> str:
    """Render a report as the human-readable block printed by the CLI."""
    if report.reference is None:
        reference = ""
    else:
        reference = str(report.reference)
    lines = [
        f"Source: {report.source}",
        f"Source IP Address: {report.address}",
        f"Source Server Role: {report.mode.name}",
        f"Leap Indicator: {report.leap_indicator.name}",
        f"Version: {report.version}",
        f"Stratum: {report.stratum.name} ({report.stratum_level})",
        f"Reference ID: {reference}",
        f"Reference time (UTC): {_format_time(report.reference_timestamp)}",
        f"Transmit time (UTC): {_format_time(report.transmit_timestamp)}",
        f"Precision: {report.precision} (2**{report.precision} s)",
        f"Poll Interval: {_format_seconds(report.poll_interval)}",
        f"Root Delay: {_format_seconds(report.root_delay)}",
        f"Root Dispersion: {_format_seconds(report.root_dispersion)}",
        f"Round Trip Delay: {_format_duration(report.round_trip_delay)}",
        f"Local Clock Offset: {_format_duration(report.clock_offset)}",
    ]
    return "\n".join(lines) + "\n"
