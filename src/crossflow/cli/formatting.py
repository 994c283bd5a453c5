"""Rich formatting helpers for the Crossflow CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from crossflow.models.stats import IntegrationStats
    from crossflow.storage.schema import EffectRunRow, IntegrationEventRow

_STATUS_STYLES = {
    "actions_succeeded": "green",
    "partial": "yellow",
    "no_action_needed": "dim",
    "already_applied": "dim",
    "failed": "red",
    "dead_letter": "red",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _styled(status: str) -> str:
    style = _STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


def format_stats(stats: IntegrationStats, console: Console, top: int = 5) -> None:
    """Display an IntegrationStats snapshot."""
    if stats.total_events == 0:
        console.print("[dim]No events recorded.[/dim]")
        return

    rate = stats.success_rate
    if rate >= 90:
        color = "green"
    elif rate >= 70:
        color = "yellow"
    else:
        color = "red"

    console.print(f"Events:         {stats.total_events} (window {stats.window})")
    console.print(f"Actions:        [green]{stats.automated_actions}[/green]")
    if stats.failed_actions:
        console.print(f"Failed actions: [red]{stats.failed_actions}[/red]")
    console.print(f"Success rate:   [{color}]{rate:.1f}%[/{color}]")

    if stats.outcomes:
        console.print()
        console.print("[bold]Outcomes:[/bold]")
        for status, count in sorted(stats.outcomes.items(), key=lambda kv: -kv[1]):
            console.print(f"  {_styled(status)}: {count}")

    patterns = stats.top_patterns(top)
    if patterns:
        console.print()
        table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
        table.add_column("Entity", style="cyan")
        table.add_column("Effect")
        table.add_column("Count", justify="right", style="green")
        for p in patterns:
            table.add_row(escape(p.entity), escape(p.effect), str(p.count))
        console.print("[bold]Top patterns:[/bold]")
        console.print(table)


def format_events(rows: Sequence[IntegrationEventRow], console: Console) -> None:
    """Display event log rows, most recent first."""
    if not rows:
        console.print("[dim]No events.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Time", style="dim")
    table.add_column("Entity", style="cyan")
    table.add_column("Record")
    table.add_column("Handler")
    table.add_column("Status")
    table.add_column("Effects")

    for row in rows:
        effects = ", ".join(a["effect"] for a in row.actions_json or [])
        if row.failures_json:
            failed = ", ".join(f["effect"] for f in row.failures_json)
            effects = f"{effects} [red]x {escape(failed)}[/red]".strip()
        table.add_row(
            row.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            escape(row.entity),
            escape(row.record_id or "-"),
            escape(row.handler),
            _styled(row.status),
            effects,
        )

    console.print(table)


def format_failures(runs: Sequence[EffectRunRow], console: Console) -> None:
    """Display failed and dead-lettered effect runs."""
    if not runs:
        console.print("[dim]No failed effects.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Key", style="yellow")
    table.add_column("Target", style="cyan")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Error")

    for run in runs:
        table.add_row(
            escape(run.idempotency_key),
            escape(run.target),
            _styled(run.status),
            str(run.attempts),
            escape(run.error_message or ""),
        )

    console.print(table)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
