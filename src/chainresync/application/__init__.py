"""
Application layer: gateway, batch execution and host resolution.
"""

from .batch import BatchRunner
from .gateway import RegistryValueGateway, default_strategies
from .host_resolver import read_hosts_file, resolve_host_name, resolve_host_names

__all__ = [
    "BatchRunner",
    "RegistryValueGateway",
    "default_strategies",
    "read_hosts_file",
    "resolve_host_name",
    "resolve_host_names",
]
