"""
Host name resolution for caller-supplied targets.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

_NAME_ATTRIBUTES = ("dns_host_name", "DNSHostName", "name", "Name")


def resolve_host_name(target: Any) -> str:
    """
    Map a string or a directory-style computer object to a host name.

    Objects are inspected for ``dns_host_name``, ``DNSHostName``, ``name``
    or ``Name``, in that order.
    """
    if isinstance(target, str):
        name = target
    else:
        name = ""
        for attribute in _NAME_ATTRIBUTES:
            candidate = getattr(target, attribute, None)
            if candidate:
                name = str(candidate)
                break
    name = name.strip()
    if not name:
        raise ValueError(f"Cannot resolve a host name from {target!r}")
    return name


def resolve_host_names(targets: Iterable[Any]) -> list[str]:
    return [resolve_host_name(target) for target in targets]


def read_hosts_file(path: Path) -> list[str]:
    """Read one host per line; blank lines and ``#`` comments are skipped."""
    hosts = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            entry = line.split("#", 1)[0].strip()
            if entry:
                hosts.append(entry)
    return hosts
