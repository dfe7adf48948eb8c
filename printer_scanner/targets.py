from __future__ import annotations

import ipaddress
from typing import Iterator


class InvalidNetworkError(ValueError):
    """Raised when a network descriptor can't be parsed as an IPv4 range."""


def parse_network(descriptor: str) -> ipaddress.IPv4Network:
    """
    Supports:
      - CIDR: "192.168.1.0/24" (host bits are masked off)
      - Single IP: "192.168.1.20" (treated as /32)
    IPv6 ranges are rejected.
    """
    descriptor = (descriptor or "").strip()
    if not descriptor:
        raise InvalidNetworkError("Empty network descriptor")

    try:
        return ipaddress.IPv4Network(descriptor, strict=False)
    except ValueError as e:
        raise InvalidNetworkError(f"Invalid network '{descriptor}': {e}") from e


def expand_targets(descriptor: str) -> Iterator[ipaddress.IPv4Address]:
    # parse up front so a bad descriptor fails here, not on first next()
    net = parse_network(descriptor)
    # hosts() excludes network + broadcast (and handles /31, /32)
    return net.hosts()


def count_targets(descriptor: str) -> int:
    net = parse_network(descriptor)
    if net.prefixlen >= 31:
        return net.num_addresses
    return net.num_addresses - 2
