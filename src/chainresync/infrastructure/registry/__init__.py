"""
Registry transport strategies.

Exports the three interchangeable transports along with local machine
detection.
"""

from .base import RegistryStrategy
from .direct import DirectRegistryStrategy
from .localhost import is_local_host
from .powershell import PowerShellResult, PowerShellRunner
from .remote_exec import RemoteExecStrategy
from .wmi import ManagementQueryStrategy

__all__ = [
    "RegistryStrategy",
    "DirectRegistryStrategy",
    "ManagementQueryStrategy",
    "RemoteExecStrategy",
    "PowerShellResult",
    "PowerShellRunner",
    "is_local_host",
]
