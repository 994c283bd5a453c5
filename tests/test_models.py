"""Tests for the Crossflow data model.

Covers:
- ChangeEvent freezing, record_id, inserted/updated constructors
- Action discriminated union: dict -> concrete model, unknown kind rejected
- Every action kind maps to a target module
- AutomationResult.from_outcomes status rules
- EngineConfig defaults and from_env()
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from crossflow.models.actions import (
    ACTION_KINDS,
    ACTION_TYPES,
    AbsenceRecordCreate,
    ActionOutcome,
    BudgetUpdate,
    CalendarSync,
    NotificationSend,
    action_from_dict,
    action_to_dict,
)
from crossflow.models.config import EngineConfig
from crossflow.models.events import ChangeEvent, Operation
from crossflow.models.results import AutomationResult, ResultStatus


def _budget(**kw) -> BudgetUpdate:
    values = dict(
        effect="budget_updated",
        idempotency_key="k:budget",
        cost_center="sales",
        amount=100.0,
        reference_id="T-1",
    )
    values.update(kw)
    return BudgetUpdate(**values)


def _notify(**kw) -> NotificationSend:
    values = dict(
        effect="managers_notified",
        idempotency_key="k:notify",
        recipients=("m1",),
        title="t",
        message="m",
        notification_type="info",
        module="absence",
    )
    values.update(kw)
    return NotificationSend(**values)


# ---------------------------------------------------------------------------
# ChangeEvent
# ---------------------------------------------------------------------------


class TestChangeEvent:
    def test_inserted_has_no_previous_state(self):
        event = ChangeEvent(
            entity="documents",
            operation="inserted",
            new_state={"id": 7},
            previous_state={"id": 7},
        )
        assert event.operation is Operation.INSERTED
        assert event.previous_state is None

    def test_record_id_is_string(self):
        event = ChangeEvent.inserted("documents", {"id": 42})
        assert event.record_id == "42"

    def test_record_id_missing(self):
        assert ChangeEvent.inserted("documents", {"title": "x"}).record_id is None

    def test_states_are_read_only(self):
        source = {"id": "T-1", "status": "pending"}
        event = ChangeEvent.updated("business_trips", source, {"id": "T-1"})
        source["status"] = "approved"
        assert event.new_state["status"] == "pending"
        with pytest.raises(TypeError):
            event.new_state["status"] = "x"  # type: ignore[index]

    def test_event_ids_are_unique(self):
        a = ChangeEvent.inserted("documents", {"id": 1})
        b = ChangeEvent.inserted("documents", {"id": 1})
        assert a.event_id != b.event_id


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class TestActions:
    def test_union_selects_concrete_type(self):
        data = action_to_dict(_budget(mode="release"))
        restored = action_from_dict(data)
        assert isinstance(restored, BudgetUpdate)
        assert restored.mode == "release"

    def test_calendar_dates_survive_json(self):
        sync = CalendarSync(
            effect="calendar_synced",
            idempotency_key="k:cal",
            user_id="u1",
            title="Trip",
            start=datetime(2024, 3, 11),
            end=datetime(2024, 3, 13, 23, 59),
            category="business_trip",
            reference_id="T-1",
        )
        data = action_to_dict(sync)
        assert data["start"] == "2024-03-11T00:00:00"
        assert action_from_dict(data).end == datetime(2024, 3, 13, 23, 59)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            action_from_dict({"kind": "payroll_run", "effect": "x", "idempotency_key": "k"})

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValidationError):
            _budget(mode="refund")

    def test_actions_are_frozen(self):
        action = _budget()
        with pytest.raises(ValidationError):
            action.amount = 5  # type: ignore[misc]

    def test_absence_dates_accept_iso_strings(self):
        rec = AbsenceRecordCreate(
            effect="absence_registered",
            idempotency_key="k",
            user_id="u1",
            absence_type="sick_leave",
            start_date="2024-03-04",
            end_date="2024-03-05",
            reference_id="SL-1",
        )
        assert rec.start_date == date(2024, 3, 4)

    def test_every_kind_has_target(self):
        assert len(ACTION_KINDS) == len(ACTION_TYPES) == 8
        for cls in ACTION_TYPES:
            assert cls.target

    def test_outcome_exposes_target_and_effect(self):
        outcome = ActionOutcome(action=_notify(), status="ok")
        assert outcome.ok
        assert outcome.target == "notifications"
        assert outcome.effect == "managers_notified"


# ---------------------------------------------------------------------------
# AutomationResult
# ---------------------------------------------------------------------------


class TestAutomationResult:
    def test_no_outcomes_is_no_action_needed(self):
        result = AutomationResult.from_outcomes("h", [])
        assert result.status is ResultStatus.NO_ACTION_NEEDED
        assert result.success
        assert result.actions == ()

    def test_all_ok(self):
        result = AutomationResult.from_outcomes(
            "h",
            [ActionOutcome(_budget(), "ok"), ActionOutcome(_notify(), "ok")],
        )
        assert result.status is ResultStatus.ACTIONS_SUCCEEDED
        assert result.effects == ["budget_updated", "managers_notified"]

    def test_all_skipped_is_already_applied(self):
        result = AutomationResult.from_outcomes(
            "h", [ActionOutcome(_budget(), "skipped", "already applied")]
        )
        assert result.status is ResultStatus.ALREADY_APPLIED
        assert result.skipped == 1
        assert result.actions == ()
        assert result.success

    def test_mixed_is_partial(self):
        result = AutomationResult.from_outcomes(
            "h",
            [ActionOutcome(_budget(), "ok"), ActionOutcome(_notify(), "error", "down")],
        )
        assert result.status is ResultStatus.PARTIAL
        assert result.success
        assert result.attempted == 2
        assert result.failures[0].effect == "managers_notified"
        assert "down" in result.error

    def test_only_errors_is_failed(self):
        result = AutomationResult.from_outcomes(
            "h", [ActionOutcome(_budget(), "error", "boom")]
        )
        assert result.status is ResultStatus.FAILED
        assert not result.success

    def test_failure_constructor(self):
        result = AutomationResult.failure("h", "timeout")
        assert not result.success
        assert result.actions == ()
        assert result.error == "timeout"

    def test_resolved_statuses(self):
        assert ResultStatus.NO_ACTION_NEEDED.resolved
        assert ResultStatus.PARTIAL.resolved
        assert not ResultStatus.FAILED.resolved


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.daily_overtime_hours == 8.0
        assert config.weekly_overtime_hours == 40.0
        assert config.stats_window == 100
        assert "manager" in config.manager_roles

    def test_from_env(self):
        config = EngineConfig.from_env(
            {
                "CROSSFLOW_QUEUE_MAXSIZE": "10",
                "CROSSFLOW_DAILY_OVERTIME_HOURS": "9.5",
                "CROSSFLOW_DISABLED_HANDLERS": "document_uploaded, expense_submitted",
                "UNRELATED": "1",
            }
        )
        assert config.queue_maxsize == 10
        assert config.daily_overtime_hours == 9.5
        assert config.disabled_handlers == frozenset({"document_uploaded", "expense_submitted"})

    def test_overrides_win(self):
        config = EngineConfig.from_env({"CROSSFLOW_STATS_WINDOW": "5"}, stats_window=7)
        assert config.stats_window == 7

    def test_invalid_value_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(queue_maxsize=0)
