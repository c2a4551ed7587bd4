"""Query an NTP server and print what it says.

Usage:

.. code-block:: shell

   python -m ntpquery hostname
   python -m ntpquery ipaddress hostname

The second form skips DNS and sends the request straight to *ipaddress*,
using *hostname* only as a label.

Timeouts and the port can also be set with the ``NTPQUERY_TIMEOUT``,
``NTPQUERY_DNS_TIMEOUT`` and ``NTPQUERY_PORT`` environment variables;
command line options win.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import trio

from ._config import QueryConfig
from ._exceptions import InvalidResponse, NTPError
from ._exchange import query
from ._report import build_report, format_report

LOGGER = logging.getLogger("ntpquery")


def make_parser():
    parser = argparse.ArgumentParser(
        prog="ntpquery",
        description="Ask an NTP server for the time and show its reply.",
        epilog="Example: ntpquery pool.ntp.org",
    )
    parser.add_argument(
        "target",
        nargs="+",
        metavar="[ipaddress] hostname",
        help="server to query; give an address first to skip the DNS lookup",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="seconds to wait for the reply (default: 20)",
    )
    parser.add_argument(
        "--dns-timeout",
        type=float,
        help="seconds to wait for each DNS lookup (default: 5)",
    )
    parser.add_argument("--port", type=int, help="server port (default: 123)")
    parser.add_argument(
        "--log-level",
        choices=["error", "warning", "info", "debug"],
        default="warning",
    )
    return parser


async def run_query(hostname, address, config):
    result = await query(
        hostname,
        address=address,
        port=config.port,
        timeout=config.timeout,
        dns_timeout=config.dns_timeout,
    )
    try:
        result.ensure_valid()
    except InvalidResponse as exc:
        LOGGER.info("%s", exc)
        print("Invalid NTP Server response.")
        return 1
    report = await build_report(result, dns_timeout=config.dns_timeout)
    print(f"NTP Server response:\n{format_report(report)}", end="")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = make_parser()
    args = parser.parse_args(argv)

    targets = [t.strip() for t in args.target]
    if len(targets) > 2 or not targets[-1]:
        parser.error("expected 'hostname' or 'ipaddress hostname'")
    hostname = targets[-1]
    address = targets[0] if len(targets) == 2 else None

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = QueryConfig.from_environ()
        overrides = {
            "timeout": args.timeout,
            "dns_timeout": args.dns_timeout,
            "port": args.port,
        }
        config = QueryConfig(
            **{
                name: getattr(config, name) if value is None else value
                for name, value in overrides.items()
            }
        )
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return trio.run(run_query, hostname, address, config)
    except NTPError as exc:
        print(f"ntpquery: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        # e.g. a malformed ipaddress argument
        print(f"ntpquery: {exc}", file=sys.stderr)
        return 1
    except Exception:
        LOGGER.exception("unhandled exception while querying %s", hostname)
        return 1


if __name__ == "__main__":
    sys.exit(main())
