"""Database setup for the integration event log and effect-run ledger.

``create_crossflow_engine`` builds the engine for a SQLite file, an
in-memory database or any SQLAlchemy URL; ``init_db`` creates the three
Crossflow tables and stamps the schema version on first use.
"""

from __future__ import annotations

from sqlalchemy import Engine, create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from crossflow.storage.schema import Base, CrossflowMetaRow

SCHEMA_VERSION = "1"

_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA synchronous=NORMAL",
)


def _sqlite_url(db_path: str) -> str:
    return "sqlite://" if db_path == ":memory:" else f"sqlite:///{db_path}"


def create_crossflow_engine(db_path: str = ":memory:", *, url: str | None = None) -> Engine:
    """Engine for the event log at *db_path*, or at *url* when given.

    SQLite connections get the WAL / busy-timeout pragmas; other
    backends are used as configured.
    """
    engine = create_engine(url or _sqlite_url(db_path), echo=False)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def apply_pragmas(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_conn.cursor()
            for pragma in _SQLITE_PRAGMAS:
                cursor.execute(pragma)
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory with expire_on_commit=False."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the Crossflow tables and record the schema version for new databases."""
    Base.metadata.create_all(engine)

    with create_session_factory(engine)() as session:
        stamped = session.execute(
            select(CrossflowMetaRow).where(CrossflowMetaRow.key == "schema_version")
        ).scalar_one_or_none()
        if stamped is None:
            session.add(CrossflowMetaRow(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
