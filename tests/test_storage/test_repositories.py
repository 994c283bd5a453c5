"""Tests for the SQLite repositories.

Covers:
- Event log: append, recent() ordering, entity/since filters, count,
  recent_events() windows by change event
- Effect runs: get, save as upsert, by_status ordering and limit
"""

from datetime import datetime, timedelta, timezone

from crossflow.storage.schema import EffectRunRow, IntegrationEventRow

T0 = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


def _event_row(entity: str = "documents", *, at: datetime = T0, handler: str = "h") -> IntegrationEventRow:
    return IntegrationEventRow(
        event_id=f"{entity}-{at.isoformat()}",
        entity=entity,
        operation="inserted",
        handler=handler,
        status="actions_succeeded",
        actions_json=[],
        created_at=at,
    )


def _run(key: str, status: str = "failed", *, at: datetime = T0) -> EffectRunRow:
    return EffectRunRow(
        idempotency_key=key,
        kind="notification_send",
        target="notifications",
        effect="managers_notified",
        action_json={"kind": "notification_send"},
        status=status,
        attempts=1,
        created_at=at,
        updated_at=at,
    )


class TestEventLogRepository:
    def test_recent_is_newest_first(self, event_log):
        for i in range(3):
            event_log.append(_event_row(handler=f"h{i}", at=T0 + timedelta(minutes=i)))
        assert [r.handler for r in event_log.recent()] == ["h2", "h1", "h0"]

    def test_limit(self, event_log):
        for i in range(5):
            event_log.append(_event_row(at=T0 + timedelta(minutes=i)))
        assert len(event_log.recent(limit=2)) == 2
        assert event_log.count() == 5

    def test_entity_filter(self, event_log):
        event_log.append(_event_row("documents"))
        event_log.append(_event_row("business_trips"))
        rows = event_log.recent(entity="business_trips")
        assert [r.entity for r in rows] == ["business_trips"]

    def test_since_filter(self, event_log):
        event_log.append(_event_row(at=T0))
        event_log.append(_event_row(at=T0 + timedelta(hours=2), handler="late"))
        rows = event_log.recent(since=T0 + timedelta(hours=1))
        assert [r.handler for r in rows] == ["late"]

    def test_recent_events_keeps_whole_events(self, event_log):
        event_log.append(_event_row(at=T0, handler="old"))
        for handler in ("a", "b"):
            row = _event_row(at=T0 + timedelta(minutes=1), handler=handler)
            row.event_id = "fanned"
            event_log.append(row)

        rows = event_log.recent_events(limit=1)

        assert {r.event_id for r in rows} == {"fanned"}
        assert sorted(r.handler for r in rows) == ["a", "b"]
        assert len(event_log.recent_events(limit=5)) == 3

    def test_empty(self, event_log):
        assert event_log.recent() == []
        assert event_log.count() == 0


class TestEffectRunRepository:
    def test_get_missing(self, run_repo):
        assert run_repo.get("nope") is None

    def test_save_updates_existing(self, run_repo):
        run_repo.save(_run("k1"))
        run = run_repo.get("k1")
        run.status = "completed"
        run.attempts = 2
        run_repo.save(run)

        loaded = run_repo.get("k1")
        assert loaded.status == "completed"
        assert loaded.attempts == 2

    def test_by_status_oldest_first(self, run_repo):
        run_repo.save(_run("late", at=T0 + timedelta(minutes=5)))
        run_repo.save(_run("early", at=T0))
        run_repo.save(_run("done", status="completed"))

        assert [r.idempotency_key for r in run_repo.by_status("failed")] == ["early", "late"]
        assert [r.idempotency_key for r in run_repo.by_status("failed", limit=1)] == ["early"]
        assert run_repo.by_status("dead_letter") == []
