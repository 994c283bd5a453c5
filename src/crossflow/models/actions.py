"""Action type system for Crossflow.

Defines one Pydantic model per action kind with a discriminated union
(Action). Each kind names the target module its write goes to; the
executor's dispatch table is keyed on the same ``kind`` values.

Every action carries two bookkeeping fields:

- ``effect``: short audit label reported in AutomationResult.actions
  (e.g. "budget_updated", "overtime_approval_requested").
- ``idempotency_key``: stable identity of the logical effect. The executor
  refuses to apply the same key twice once a run has completed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: ClassVar[str] = ""

    effect: str
    idempotency_key: str


# ---------------------------------------------------------------------------
# Built-in action models
# ---------------------------------------------------------------------------


class BudgetUpdate(_ActionBase):
    """Reserve, release, or book actual spend against a cost center."""

    target: ClassVar[str] = "budget"

    kind: Literal["budget_update"] = "budget_update"
    cost_center: str
    amount: float
    mode: Literal["reserve", "release", "actual"] = "reserve"
    reference_id: str


class CalendarSync(_ActionBase):
    """Create or update a calendar block for a user."""

    target: ClassVar[str] = "calendar"

    kind: Literal["calendar_sync"] = "calendar_sync"
    user_id: str
    title: str
    start: datetime
    end: datetime
    category: str
    status: Literal["tentative", "confirmed"] = "confirmed"
    reference_id: str


class AbsenceRecordCreate(_ActionBase):
    """Register an absence in the absence ledger."""

    target: ClassVar[str] = "absence"

    kind: Literal["absence_record_create"] = "absence_record_create"
    user_id: str
    absence_type: str
    start_date: date
    end_date: date
    reason: str = ""
    reference_id: str


class NotificationSend(_ActionBase):
    """Dispatch a notification to one or more users."""

    target: ClassVar[str] = "notifications"

    kind: Literal["notification_send"] = "notification_send"
    recipients: tuple[str, ...]
    title: str
    message: str
    notification_type: str
    module: str
    scheduled_for: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApprovalRequestCreate(_ActionBase):
    """Put a request into an approval queue."""

    target: ClassVar[str] = "approvals"

    kind: Literal["approval_request_create"] = "approval_request_create"
    queue: str
    requester_id: str
    approver_id: str | None = None
    subject: str
    reference_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class DocumentTag(_ActionBase):
    """Tag a stored document with its inferred category."""

    target: ClassVar[str] = "documents"

    kind: Literal["document_tag"] = "document_tag"
    document_id: str
    category: str


class ShiftCoverageFlag(_ActionBase):
    """Flag shift assignments that need a substitute."""

    target: ClassVar[str] = "shifts"

    kind: Literal["shift_coverage_flag"] = "shift_coverage_flag"
    user_id: str
    shift_ids: tuple[str, ...]
    reference_id: str
    reason: str = ""


class ProfileSetup(_ActionBase):
    """Initialize a per-module profile for an employee."""

    target: ClassVar[str] = "profiles"

    kind: Literal["profile_setup"] = "profile_setup"
    user_id: str
    module: str
    settings: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Discriminated union
# ---------------------------------------------------------------------------

Action = Annotated[
    Union[
        BudgetUpdate,
        CalendarSync,
        AbsenceRecordCreate,
        NotificationSend,
        ApprovalRequestCreate,
        DocumentTag,
        ShiftCoverageFlag,
        ProfileSetup,
    ],
    Field(discriminator="kind"),
]

_action_adapter = TypeAdapter(Action)

ACTION_TYPES: tuple[type[_ActionBase], ...] = (
    BudgetUpdate,
    CalendarSync,
    AbsenceRecordCreate,
    NotificationSend,
    ApprovalRequestCreate,
    DocumentTag,
    ShiftCoverageFlag,
    ProfileSetup,
)

ACTION_KINDS: frozenset[str] = frozenset(
    cls.model_fields["kind"].default for cls in ACTION_TYPES
)


def action_to_dict(action: _ActionBase) -> dict:
    """Serialize an action to a JSON-safe dict (for the effect-run ledger)."""
    return action.model_dump(mode="json")


def action_from_dict(data: dict) -> _ActionBase:
    """Validate a stored action dict back into its concrete model."""
    return _action_adapter.validate_python(data)


# ---------------------------------------------------------------------------
# Execution outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionOutcome:
    """Result of executing (or skipping) a single action.

    Attributes:
        action: The action that was attempted.
        status: "ok", "error", or "skipped" (already applied).
        detail: Error message or module response summary.
    """

    action: _ActionBase
    status: str  # "ok", "error", "skipped"
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def target(self) -> str:
        return self.action.target

    @property
    def effect(self) -> str:
        return self.action.effect
