"""
CIDR prefix helpers.

Prefixes are plain ``ipaddress`` network objects so they hash, sort and
compare without any wrapper.
"""

from __future__ import annotations

import ipaddress
from typing import Iterable, Union

Prefix = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def parse_prefix(text: str | Prefix) -> Prefix:
    """
    Parse a CIDR string such as ``"10.0.0.0/24"``.

    Host bits must be zero; ``"10.0.0.1/24"`` is rejected with ValueError.
    """
    if isinstance(text, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return text
    return ipaddress.ip_network(text, strict=True)


def covers(outer: Prefix, inner: Prefix) -> bool:
    """True if ``outer`` contains or equals ``inner``."""
    if outer.version != inner.version:
        return False
    return inner.subnet_of(outer)


def is_more_specific(inner: Prefix, outer: Prefix) -> bool:
    """
    Strict "more specific than" order used for sub-prefix hijacks.

    ``inner`` lies inside ``outer`` and has a longer mask.
    """
    return covers(outer, inner) and inner.prefixlen > outer.prefixlen


def longest_match(target: Prefix, candidates: Iterable[Prefix]) -> Prefix | None:
    """
    Most specific prefix among ``candidates`` that covers ``target``.
    """
    best: Prefix | None = None
    for prefix in candidates:
        if not covers(prefix, target):
            continue
        if best is None or prefix.prefixlen > best.prefixlen:
            best = prefix
    return best


def first_half(prefix: Prefix) -> Prefix:
    """The lower of the two subnets one bit longer than ``prefix``."""
    if prefix.prefixlen >= prefix.max_prefixlen:
        raise ValueError(f"Prefix {prefix} has no more specific subnet")
    return next(prefix.subnets(prefixlen_diff=1))
