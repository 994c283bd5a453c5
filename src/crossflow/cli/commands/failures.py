"""crossflow failures -- show failed and dead-lettered effects."""

from __future__ import annotations

import click

from crossflow.cli.formatting import format_failures


@click.command()
@click.option(
    "--status",
    "status_filter",
    default="all",
    type=click.Choice(["failed", "dead_letter", "all"], case_sensitive=False),
    help="Which runs to list.",
)
@click.option("-n", "--limit", default=50, type=int, help="Maximum number of runs per status.")
@click.pass_context
def failures(ctx: click.Context, status_filter: str, limit: int) -> None:
    """List effect runs that did not complete."""
    from crossflow.cli import _store_session
    from crossflow.storage.sqlite import SqliteEffectRunRepository

    statuses = ["failed", "dead_letter"] if status_filter == "all" else [status_filter]
    with _store_session(ctx) as (session, console):
        repo = SqliteEffectRunRepository(session)
        runs = [run for status in statuses for run in repo.by_status(status, limit=limit)]
        format_failures(runs, console)
