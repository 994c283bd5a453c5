"""crossflow events -- show the integration event log."""

from __future__ import annotations

import click

from crossflow.cli.formatting import format_events


@click.command()
@click.option("-n", "--limit", default=20, type=int, help="Maximum number of events to show.")
@click.option("--entity", default=None, help="Only events of this entity (e.g. business_trips).")
@click.pass_context
def events(ctx: click.Context, limit: int, entity: str | None) -> None:
    """Show recorded handler results, most recent first."""
    from crossflow.cli import _store_session
    from crossflow.storage.sqlite import SqliteEventLogRepository

    with _store_session(ctx) as (session, console):
        rows = SqliteEventLogRepository(session).recent(limit=limit, entity=entity)
        format_events(rows, console)
