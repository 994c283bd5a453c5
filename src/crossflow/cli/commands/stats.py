"""crossflow stats -- integration statistics over the recent event log."""

from __future__ import annotations

import click

from crossflow.cli.formatting import format_stats


@click.command()
@click.option("-w", "--window", default=100, type=click.IntRange(min=1), help="Number of recent events to analyse.")
@click.option("--top", default=5, type=click.IntRange(min=1), help="Number of patterns to show.")
@click.pass_context
def stats(ctx: click.Context, window: int, top: int) -> None:
    """Show success rate, action counts, and the most frequent patterns."""
    from crossflow.cli import _store_session
    from crossflow.reporting.reporter import IntegrationReporter
    from crossflow.storage.sqlite import SqliteEventLogRepository

    with _store_session(ctx) as (session, console):
        reporter = IntegrationReporter(SqliteEventLogRepository(session), session)
        format_stats(reporter.compute_stats(window), console, top=top)
