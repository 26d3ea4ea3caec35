"""
chainresync CLI.

Commands:
    get     Read ChainCacheResyncFiletime from each host
    set     Write it (default: now)
    delete  Remove it

Exit codes: 0 all hosts complete, 1 any host failed, 2 usage or config error.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from chainresync.application import (
    BatchRunner,
    RegistryValueGateway,
    read_hosts_file,
    resolve_host_names,
)
from chainresync.domain import AccessMethod, Credential, FileTime, GatewaySettings, Operation
from chainresync.infrastructure.config import SettingsRepository
from chainresync.infrastructure.logging_config import setup_logging

from .formatters import render_outcomes

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="chainresync",
    help="Manage the certificate chain cache resync timestamp on remote Windows hosts.",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@dataclass
class CliState:
    settings: GatewaySettings
    json_output: bool = False


HostsArgument = typer.Argument(None, help="Target host names.", show_default=False)
HostsFileOption = typer.Option(
    None, "--hosts-file", "-f", exists=True, dir_okay=False, help="File with one host per line."
)
MethodOption = typer.Option(
    None, "--method", "-m", case_sensitive=False, help="Transport (default from config: wmi)."
)
TimeoutOption = typer.Option(None, "--timeout", "-t", min=0.1, help="Per-host timeout in seconds.")
WorkersOption = typer.Option(None, "--max-workers", "-w", min=1, help="Hosts processed concurrently.")
UsernameOption = typer.Option(
    None, "--username", "-u", help="Explicit account; the password is prompted. Default: current identity."
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings file (default ./chainresync.json)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write a debug log to this file."),
    json_output: bool = typer.Option(False, "--json", help="Print one JSON object per host."),
):
    """
    Read, write or delete [bold]ChainCacheResyncFiletime[/bold] under
    HKLM\\SOFTWARE\\Microsoft\\Cryptography\\OID\\EncodingType 0\\CertDllCreateCertificateChainEngine\\Config.

    The local machine is not a supported target.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, str(log_file) if log_file else None)
    try:
        settings = SettingsRepository(config).load()
    except ValueError as e:
        err_console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(2)
    ctx.obj = CliState(settings=settings, json_output=json_output)


@app.command("get")
def get_command(
    ctx: typer.Context,
    hosts: Optional[List[str]] = HostsArgument,
    hosts_file: Optional[Path] = HostsFileOption,
    method: Optional[AccessMethod] = MethodOption,
    timeout: Optional[float] = TimeoutOption,
    max_workers: Optional[int] = WorkersOption,
    username: Optional[str] = UsernameOption,
):
    """Read the resync timestamp from each host."""
    _execute(ctx, Operation.GET, hosts, hosts_file, method, timeout, max_workers, username)


@app.command("set")
def set_command(
    ctx: typer.Context,
    hosts: Optional[List[str]] = HostsArgument,
    timestamp: str = typer.Option(
        "now", "--timestamp", "-T",
        help="ISO 8601 time (naive = local time), 'now', or raw FILETIME ticks.",
    ),
    hosts_file: Optional[Path] = HostsFileOption,
    method: Optional[AccessMethod] = MethodOption,
    timeout: Optional[float] = TimeoutOption,
    max_workers: Optional[int] = WorkersOption,
    username: Optional[str] = UsernameOption,
):
    """Write the resync timestamp on each host."""
    try:
        value = parse_timestamp(timestamp)
    except ValueError as e:
        err_console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(2)
    _execute(ctx, Operation.SET, hosts, hosts_file, method, timeout, max_workers, username, value)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    hosts: Optional[List[str]] = HostsArgument,
    hosts_file: Optional[Path] = HostsFileOption,
    method: Optional[AccessMethod] = MethodOption,
    timeout: Optional[float] = TimeoutOption,
    max_workers: Optional[int] = WorkersOption,
    username: Optional[str] = UsernameOption,
):
    """Remove the resync timestamp from each host."""
    _execute(ctx, Operation.DELETE, hosts, hosts_file, method, timeout, max_workers, username)


def parse_timestamp(text: str) -> FileTime:
    """Parse 'now', raw FILETIME ticks, or an ISO 8601 datetime."""
    text = text.strip()
    if text.lower() == "now":
        return FileTime.now()
    if text.isdigit():
        return FileTime(int(text))
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return FileTime.from_datetime(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValueError(f"Invalid timestamp '{text}': {e}") from e


def _execute(
    ctx: typer.Context,
    operation: Operation,
    hosts: Optional[List[str]],
    hosts_file: Optional[Path],
    method: Optional[AccessMethod],
    timeout: Optional[float],
    max_workers: Optional[int],
    username: Optional[str],
    timestamp: Optional[FileTime] = None,
) -> None:
    state: CliState = ctx.obj

    targets = list(hosts or [])
    if hosts_file is not None:
        targets.extend(read_hosts_file(hosts_file))
    try:
        targets = resolve_host_names(targets)
    except ValueError as e:
        err_console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(2)
    if not targets:
        err_console.print("[red]❌ Error:[/red] no target hosts given")
        raise typer.Exit(2)

    credential = None
    if username:
        password = typer.prompt(f"Password for {username}", hide_input=True)
        credential = Credential(username=username, password=password)

    gateway = RegistryValueGateway(state.settings)
    runner = BatchRunner(gateway, max_workers=max_workers)
    outcomes = runner.run(
        targets, operation, method,
        timestamp=timestamp, timeout=timeout, credential=credential,
    )
    render_outcomes(outcomes, console, json_output=state.json_output)

    if any(not outcome.succeeded for outcome in outcomes):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
