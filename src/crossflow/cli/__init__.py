"""Crossflow CLI -- read-only monitoring of the integration event log.

This module is NEVER imported from crossflow/__init__.py.
It is only loaded via the ``crossflow`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install crossflow[cli]"
    ) from None

from click.core import ParameterSource
from dotenv import load_dotenv

from crossflow.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console
    from sqlalchemy.orm import Session


@click.group()
@click.option(
    "--db",
    default="crossflow.db",
    envvar="CROSSFLOW_DB",
    help="Path to the crossflow event log database.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log to the terminal.")
@click.pass_context
def cli(ctx: click.Context, db: str, verbose: bool) -> None:
    """Crossflow: cross-module automation monitor."""
    load_dotenv()
    if ctx.get_parameter_source("db") is ParameterSource.DEFAULT:
        db = os.environ.get("CROSSFLOW_DB", db)
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(rich_tracebacks=True)],
        )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db


@contextmanager
def _store_session(ctx: click.Context) -> Iterator[tuple[Session, Console]]:
    """Open the event log read-only, yield (session, console), and clean up.

    Formats exceptions as CLI errors.
    """
    from crossflow.storage.engine import create_crossflow_engine, create_session_factory

    console = get_console()
    db_path = ctx.obj["db_path"]
    if not os.path.exists(db_path):
        format_error(f"Database not found: {db_path}", console)
        raise SystemExit(1)

    try:
        engine = create_crossflow_engine(db_path)
        try:
            session = create_session_factory(engine)()
            try:
                yield session, console
            finally:
                session.close()
        finally:
            engine.dispose()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from crossflow.cli.commands.events import events  # noqa: E402
from crossflow.cli.commands.failures import failures  # noqa: E402
from crossflow.cli.commands.stats import stats  # noqa: E402

cli.add_command(stats)
cli.add_command(events)
cli.add_command(failures)
