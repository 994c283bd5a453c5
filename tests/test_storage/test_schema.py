"""Tests for the SQLAlchemy ORM schema.

Covers:
- All tables are created
- init_db records the schema version once
- File databases get the WAL pragma
- IntegrationEventRow round-trip with JSON columns
- EffectRunRow primary key is the idempotency key
- Indexes exist on expected columns
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, inspect, select, text
from sqlalchemy.exc import IntegrityError

from crossflow.storage.engine import SCHEMA_VERSION, create_crossflow_engine, init_db
from crossflow.storage.schema import CrossflowMetaRow, EffectRunRow, IntegrationEventRow


def _run(key: str = "h:T-1:budget", status: str = "completed") -> EffectRunRow:
    now = datetime.now(timezone.utc)
    return EffectRunRow(
        idempotency_key=key,
        kind="budget_update",
        target="budget",
        effect="budget_updated",
        action_json={"kind": "budget_update", "amount": 10.0},
        status=status,
        attempts=1,
        created_at=now,
        updated_at=now,
    )


class TestTableCreation:
    def test_all_tables_exist(self, engine):
        table_names = set(inspect(engine).get_table_names())
        assert {"integration_events", "effect_runs", "_crossflow_meta"} <= table_names

    def test_meta_has_schema_version(self, session):
        row = session.execute(
            select(CrossflowMetaRow).where(CrossflowMetaRow.key == "schema_version")
        ).scalar_one_or_none()
        assert row is not None
        assert row.value == SCHEMA_VERSION

    def test_init_db_is_repeatable(self, engine, session):
        init_db(engine)
        count = session.execute(select(func.count()).select_from(CrossflowMetaRow)).scalar_one()
        assert count == 1

    def test_indexes(self, engine):
        inspector = inspect(engine)
        event_indexes = {ix["name"] for ix in inspector.get_indexes("integration_events")}
        run_indexes = {ix["name"] for ix in inspector.get_indexes("effect_runs")}
        assert "ix_integration_events_entity_time" in event_indexes
        assert "ix_effect_runs_status" in run_indexes


    def test_file_database_uses_wal(self, tmp_path):
        eng = create_crossflow_engine(str(tmp_path / "events.db"))
        init_db(eng)
        with eng.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
        eng.dispose()

class TestIntegrationEventRow:
    def test_round_trip(self, session):
        row = IntegrationEventRow(
            event_id="e1",
            entity="documents",
            operation="inserted",
            record_id="D-1",
            handler="document_uploaded",
            status="actions_succeeded",
            actions_json=[{"target": "documents", "effect": "document_categorized"}],
            failures_json=[],
            category="payroll",
            created_at=datetime.now(timezone.utc),
        )
        session.add(row)
        session.flush()

        loaded = session.get(IntegrationEventRow, row.id)
        assert loaded.actions_json[0]["effect"] == "document_categorized"
        assert loaded.skipped == 0
        assert loaded.duration_ms == 0.0
        assert loaded.category == "payroll"


class TestEffectRunRow:
    def test_duplicate_key_rejected(self, session):
        session.add(_run())
        session.flush()
        session.expunge_all()
        session.add(_run())
        with pytest.raises(IntegrityError):
            session.flush()
