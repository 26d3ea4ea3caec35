"""
Outcome rendering: rich table for people, JSON lines for scripts.
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.table import Table

from chainresync.domain.enums import Operation, OutcomeStatus
from chainresync.domain.models import OperationOutcome

STATUS_STYLES = {
    OutcomeStatus.COMPLETE.value: "[green]✓ complete[/green]",
    OutcomeStatus.FAILED.value: "[red]✗ failed[/red]",
}


def describe_value(outcome: OperationOutcome) -> str:
    """Human-readable value column."""
    if not outcome.succeeded:
        return ""
    if outcome.operation == Operation.GET.value and not outcome.value_present:
        return "[dim]not set[/dim]"
    if outcome.operation == Operation.DELETE.value:
        return "[dim]removed[/dim]"
    if outcome.timestamp is not None:
        return outcome.timestamp.isoformat()
    if outcome.filetime is not None:
        return f"FILETIME {outcome.filetime}"
    return ""


def build_table(outcomes: Sequence[OperationOutcome]) -> Table:
    table = Table(title="ChainCacheResyncFiletime", show_lines=False)
    table.add_column("Host", style="bold")
    table.add_column("Method")
    table.add_column("Operation")
    table.add_column("Status")
    table.add_column("Timestamp (UTC)")
    table.add_column("FILETIME", justify="right")
    table.add_column("Error")

    for outcome in outcomes:
        error = ""
        if outcome.error_kind:
            error = f"[red]{outcome.error_kind}[/red]: {outcome.error_detail or ''}"
        table.add_row(
            outcome.host,
            str(outcome.method),
            str(outcome.operation),
            STATUS_STYLES.get(outcome.status, str(outcome.status)),
            describe_value(outcome),
            str(outcome.filetime) if outcome.filetime is not None else "",
            error,
        )
    return table


def render_outcomes(
    outcomes: Sequence[OperationOutcome], console: Console, json_output: bool = False
) -> None:
    """Print one record per host."""
    if json_output:
        for outcome in outcomes:
            console.out(outcome.model_dump_json(), highlight=False)
        return
    console.print(build_table(outcomes))
    failed = sum(1 for o in outcomes if not o.succeeded)
    if failed:
        console.print(f"[red]{failed} of {len(outcomes)} host(s) failed[/red]")
