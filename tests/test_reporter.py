"""Tests for IntegrationReporter.

Covers:
- build_notice() levels and titles per result status
- record(): event log row contents, notice history, observers
- compute_stats(): totals, success rate, outcome counts, ranked patterns
- Fanned-out events count once; the window counts events, not rows
- Unreadable log keeps the previous snapshot
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from crossflow.models.events import ChangeEvent
from crossflow.models.results import (
    ActionFailure,
    ActionRecord,
    AutomationResult,
    ResultStatus,
)
from crossflow.reporting.reporter import IntegrationReporter, build_notice
from crossflow.storage.repositories import EventLogRepository


def _result(status: ResultStatus, *effects: str, failed: tuple[str, ...] = (), handler: str = "h") -> AutomationResult:
    return AutomationResult(
        handler=handler,
        status=status,
        actions=tuple(ActionRecord(target="calendar", effect=e) for e in effects),
        failures=tuple(ActionFailure(target="budget", effect=f, error="down") for f in failed),
        error="; ".join(f"{f}: down" for f in failed) or None,
    )


def _event(entity: str = "business_trips") -> ChangeEvent:
    return ChangeEvent.inserted(entity, {"id": "T-1"})


class BrokenLog(EventLogRepository):
    """Event log whose reads fail."""

    def append(self, row):
        raise SQLAlchemyError("disk full")

    def recent(self, limit=100, *, entity=None, since=None):
        raise SQLAlchemyError("disk I/O error")

    def recent_events(self, limit=100):
        raise SQLAlchemyError("disk I/O error")

    def count(self):
        return 0


@pytest.fixture
def reporter(event_log, session):
    return IntegrationReporter(event_log, session, history=3)


# ---------------------------------------------------------------------------
# Notices
# ---------------------------------------------------------------------------


class TestBuildNotice:
    def test_success(self):
        notice = build_notice(
            _event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "budget_updated", "calendar_synced")
        )
        assert notice.level == "success"
        assert notice.title == "Event fully processed"
        assert notice.description == "business_trips: budget_updated, calendar_synced"

    def test_partial(self):
        notice = build_notice(
            _event(), _result(ResultStatus.PARTIAL, "calendar_synced", failed=("budget_updated",))
        )
        assert notice.level == "warning"
        assert notice.title == "Event partially processed (1 of 2 actions)"
        assert "budget_updated" in notice.description

    def test_failed(self):
        notice = build_notice(_event(), AutomationResult.failure("h", "timeout"))
        assert notice.level == "error"
        assert notice.description == "timeout"

    @pytest.mark.parametrize(
        "status", [ResultStatus.NO_ACTION_NEEDED, ResultStatus.ALREADY_APPLIED]
    )
    def test_no_op_results_have_no_notice(self, status):
        assert build_notice(_event(), _result(status)) is None


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecord:
    def test_appends_row(self, reporter, event_log):
        event = _event()
        reporter.record(
            event, _result(ResultStatus.PARTIAL, "calendar_synced", failed=("budget_updated",))
        )
        (row,) = event_log.recent()
        assert row.event_id == event.event_id
        assert row.operation == "inserted"
        assert row.record_id == "T-1"
        assert row.status == "partial"
        assert row.actions_json == [{"target": "calendar", "effect": "calendar_synced"}]
        assert row.failures_json[0]["effect"] == "budget_updated"

    def test_no_op_is_logged_without_notice(self, reporter, event_log):
        assert reporter.record(_event(), _result(ResultStatus.NO_ACTION_NEEDED)) is None
        assert event_log.count() == 1
        assert reporter.notices == []

    def test_observers_receive_notices(self, reporter):
        seen = []
        unsubscribe = reporter.subscribe(seen.append)
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))
        unsubscribe()
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))
        assert len(seen) == 1
        assert len(reporter.notices) == 2

    def test_failing_observer_does_not_block_others(self, reporter):
        seen = []

        def explode(notice):
            raise RuntimeError("observer bug")

        reporter.subscribe(explode)
        reporter.subscribe(seen.append)
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))
        assert len(seen) == 1

    def test_history_is_bounded(self, reporter):
        for _ in range(5):
            reporter.record(_event(), AutomationResult.failure("h", "boom"))
        assert len(reporter.notices) == 3

    def test_log_write_error_still_publishes(self):
        reporter = IntegrationReporter(BrokenLog())
        notice = reporter.record(_event(), AutomationResult.failure("h", "boom"))
        assert notice.level == "error"


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class TestComputeStats:
    def test_empty_log(self, reporter):
        stats = reporter.compute_stats()
        assert stats.total_events == 0
        assert stats.success_rate == 0.0
        assert stats.patterns == ()

    def test_totals_and_success_rate(self, reporter):
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "budget_updated", "calendar_synced"))
        reporter.record(_event(), _result(ResultStatus.NO_ACTION_NEEDED))
        reporter.record(_event(), _result(ResultStatus.PARTIAL, "calendar_synced", failed=("budget_updated",)))
        reporter.record(_event(), AutomationResult.failure("h", "boom"))

        stats = reporter.compute_stats()

        assert stats.total_events == 4
        assert stats.automated_actions == 3
        assert stats.failed_actions == 1
        assert stats.success_rate == 75.0
        assert stats.outcomes == {
            "actions_succeeded": 1,
            "no_action_needed": 1,
            "partial": 1,
            "failed": 1,
        }
        assert reporter.stats is stats

    def test_patterns_ranked_by_frequency(self, reporter):
        reporter.record(_event("documents"), _result(ResultStatus.ACTIONS_SUCCEEDED, "document_categorized"))
        for _ in range(2):
            reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))

        stats = reporter.compute_stats()

        assert [(p.entity, p.effect, p.count) for p in stats.patterns] == [
            ("business_trips", "calendar_synced", 2),
            ("documents", "document_categorized", 1),
        ]
        assert stats.top_patterns(1)[0].effect == "calendar_synced"

    def test_fanned_out_event_counts_once(self, reporter):
        event = _event()
        reporter.record(event, _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced", handler="a"))
        reporter.record(event, _result(ResultStatus.ACTIONS_SUCCEEDED, "budget_updated", handler="b"))
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))

        stats = reporter.compute_stats()

        assert stats.total_events == 2
        assert stats.automated_actions == 3
        assert stats.outcomes == {"actions_succeeded": 3}

    def test_event_with_one_failed_handler_is_unresolved(self, reporter):
        event = _event()
        reporter.record(event, _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced", handler="a"))
        reporter.record(event, AutomationResult.failure("b", "boom"))
        reporter.record(_event(), _result(ResultStatus.NO_ACTION_NEEDED))

        stats = reporter.compute_stats()

        assert stats.total_events == 2
        assert stats.success_rate == 50.0

    def test_window_counts_events_not_rows(self, reporter):
        old = _event()
        reporter.record(old, AutomationResult.failure("h", "old"))
        fanned = _event()
        reporter.record(fanned, _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced", handler="a"))
        reporter.record(fanned, _result(ResultStatus.ACTIONS_SUCCEEDED, "budget_updated", handler="b"))

        stats = reporter.compute_stats(window_size=1)

        assert stats.total_events == 1
        assert stats.automated_actions == 2
        assert stats.success_rate == 100.0

    def test_window_uses_most_recent_rows(self, reporter):
        reporter.record(_event(), AutomationResult.failure("h", "old"))
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))

        stats = reporter.compute_stats(window_size=2)

        assert stats.total_events == 2
        assert stats.success_rate == 100.0
        assert stats.window == 2

    def test_unreadable_log_keeps_previous_snapshot(self, reporter):
        reporter.record(_event(), _result(ResultStatus.ACTIONS_SUCCEEDED, "calendar_synced"))
        before = reporter.compute_stats()

        reporter._log = BrokenLog()
        after = reporter.compute_stats()

        assert after is before
        assert after.total_events == 1

    def test_never_computed_snapshot(self):
        reporter = IntegrationReporter(BrokenLog())
        stats = reporter.compute_stats()
        assert stats.computed_at is None
        assert stats.total_events == 0
