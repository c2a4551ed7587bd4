from __future__ import annotations

import os
from typing import Mapping, Optional

import attr

from ._exchange import DEFAULT_TIMEOUT
from ._packet import NTP_PORT
from ._resolve import DEFAULT_DNS_TIMEOUT

__all__ = ["QueryConfig"]

ENV_PREFIX = "NTPQUERY_"


def _positive(instance, attribute, value):
    if value <= 0:
        raise ValueError(f"{attribute.name} must be positive, not {value!r}")


def _valid_port(instance, attribute, value):
    if not 0 < value <= 0xFFFF:
        raise ValueError(f"{attribute.name} must be between 1 and 65535, not {value!r}")


@attr.frozen
class QueryConfig:
    """Process-wide settings for a query.

    Attributes:
      timeout (float): Seconds to wait for the server's reply.
      dns_timeout (float): Seconds to wait for each DNS lookup.
      port (int): UDP port the server listens on.

    """

    timeout: float = attr.ib(
        default=DEFAULT_TIMEOUT, converter=float, validator=_positive
    )
    dns_timeout: float = attr.ib(
        default=DEFAULT_DNS_TIMEOUT, converter=float, validator=_positive
    )
    port: int = attr.ib(default=NTP_PORT, converter=int, validator=_valid_port)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> QueryConfig:
        """Build a config from ``NTPQUERY_TIMEOUT``, ``NTPQUERY_DNS_TIMEOUT``
        and ``NTPQUERY_PORT``, falling back to the defaults for anything
        unset.

        Raises:
          ValueError: if a variable is set to something unusable.

        """
        if environ is None:
            environ = os.environ
        kwargs = {}
        for field in attr.fields(cls):
            value = environ.get(ENV_PREFIX + field.name.upper())
            if value is not None and value.strip():
                kwargs[field.name] = value.strip()
        return cls(**kwargs)
