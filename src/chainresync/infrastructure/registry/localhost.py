"""
Local machine detection.

The remote registry transports cannot address the local machine the same way
as a remote one, so the gateway refuses such targets.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Callable, Iterable, Optional, Union

logger = logging.getLogger(__name__)

LOCALHOST_PATTERNS = frozenset({"localhost", "127.0.0.1", "::1", ".", "(local)"})

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
Resolver = Callable[[str], Iterable[str]]


def resolve_addresses(name: str) -> set[str]:
    """Addresses ``name`` resolves to. Raises OSError when it does not resolve."""
    return {info[4][0] for info in socket.getaddrinfo(name, None)}


def _parse_address(text: str) -> Optional[IPAddress]:
    try:
        address = ipaddress.ip_address(text.split("%", 1)[0])
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def _local_names() -> set[str]:
    names: set[str] = set()
    try:
        hostname = socket.gethostname().lower()
        names.update({hostname, hostname.split(".")[0]})
        fqdn = socket.getfqdn().lower()
        names.update({fqdn, fqdn.split(".")[0]})
    except OSError as exc:
        logger.debug("Could not read local host name: %s", exc)
    return names


def _local_addresses(names: Iterable[str], resolve: Resolver) -> set[IPAddress]:
    addresses: set[IPAddress] = set()
    for name in names:
        try:
            resolved = resolve(name)
        except OSError:
            continue
        addresses.update(a for a in map(_parse_address, resolved) if a is not None)
    return addresses


def _is_local_address(address: IPAddress, local_addresses: set[IPAddress]) -> bool:
    return address.is_loopback or address.is_unspecified or address in local_addresses


def is_local_host(
    host: str,
    local_names: Optional[Iterable[str]] = None,
    resolve: Resolver = resolve_addresses,
) -> bool:
    """
    Return True when ``host`` names the machine this process runs on.

    Matches localhost aliases, loopback addresses (IPv4-mapped included), the
    local host name (short or fully qualified, with or without the DNS root
    dot) and any name or address that resolves to an address of this
    machine. A name that does not resolve is not local. ``local_names``
    overrides the detected host names; ``resolve`` replaces DNS lookup.
    """
    raw = host.lower().strip().lstrip("\\")
    if raw in LOCALHOST_PATTERNS:
        return True
    candidate = raw.rstrip(".")
    if not candidate:
        return False
    if candidate in LOCALHOST_PATTERNS:
        return True

    address = _parse_address(candidate)
    if address is not None and (address.is_loopback or address.is_unspecified):
        return True

    names = set(n.lower().rstrip(".") for n in local_names) if local_names is not None else _local_names()
    if candidate in names:
        return True

    local_addresses = _local_addresses(names, resolve)
    if address is not None:
        return address in local_addresses

    try:
        resolved = resolve(candidate)
    except OSError as exc:
        logger.debug("%s does not resolve: %s", candidate, exc)
        return False
    for text in resolved:
        target = _parse_address(text)
        if target is not None and _is_local_address(target, local_addresses):
            logger.debug("%s resolves to local address %s", candidate, target)
            return True
    return False
