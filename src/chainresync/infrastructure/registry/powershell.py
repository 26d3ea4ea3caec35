"""
Local Windows PowerShell runner.

Writes a script to a temp file and runs it with ``-File`` so that every
argument is bound to a script parameter instead of being parsed as code.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from chainresync.domain.errors import RemoteFaultError, TransportTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PowerShellResult:
    """Captured output of one PowerShell process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


class PowerShellRunner:
    """Run fixed PowerShell scripts with bound arguments."""

    def __init__(self, executable: str = "powershell.exe") -> None:
        self.executable = executable

    def run_file(
        self,
        script: str,
        args: Sequence[str],
        timeout: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
        host: Optional[str] = None,
    ) -> PowerShellResult:
        """
        Execute ``script`` with ``args``.

        Args:
            script: PowerShell script content
            args: Arguments appended after ``-File <path>``
            timeout: Seconds before the process is killed
            env: Extra environment variables for the child process
            host: Remote host the script targets, used in errors

        Raises:
            TransportTimeoutError: the process did not finish in time
            RemoteFaultError: PowerShell could not be started
        """
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".ps1", delete=False, encoding="utf-8"
        ) as handle:
            handle.write(script)
            script_path = handle.name

        child_env = dict(os.environ)
        if env:
            child_env.update(env)

        cmd = [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
            script_path,
            *args,
        ]
        logger.debug("Executing: %s -File %s (%d args)", self.executable, script_path, len(args))

        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=child_env,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise TransportTimeoutError(f"PowerShell timed out after {timeout}s", host=host) from exc
        except OSError as exc:
            raise RemoteFaultError(f"Cannot start {self.executable}: {exc}", host=host) from exc
        finally:
            try:
                os.unlink(script_path)
            except OSError as exc:
                logger.debug("Failed to remove %s: %s", script_path, exc)

        return PowerShellResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
