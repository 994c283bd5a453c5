"""Handler results and user-facing notices."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from crossflow.models.actions import ActionOutcome


class ResultStatus(str, enum.Enum):
    """How a handler invocation ended.

    ``no_action_needed`` and ``already_applied`` are kept apart from
    ``actions_succeeded`` so statistics can tell "nothing had to happen"
    from "something happened and worked".
    """

    ACTIONS_SUCCEEDED = "actions_succeeded"
    PARTIAL = "partial"
    NO_ACTION_NEEDED = "no_action_needed"
    ALREADY_APPLIED = "already_applied"
    FAILED = "failed"

    @property
    def resolved(self) -> bool:
        return self is not ResultStatus.FAILED


@dataclass(frozen=True)
class ActionRecord:
    """An action that was actually taken: target module plus effect label."""

    target: str
    effect: str


@dataclass(frozen=True)
class ActionFailure:
    """An action that was attempted and failed."""

    target: str
    effect: str
    error: str


@dataclass(frozen=True)
class AutomationResult:
    """Output of a single handler invocation.

    ``actions`` is the audit trail: it lists exactly the writes that
    succeeded, in execution order. Failed writes are in ``failures``;
    writes skipped because they were already applied only count toward
    ``skipped``.
    """

    handler: str
    status: ResultStatus
    actions: tuple[ActionRecord, ...] = ()
    failures: tuple[ActionFailure, ...] = ()
    skipped: int = 0
    category: Optional[str] = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status is not ResultStatus.FAILED

    @property
    def attempted(self) -> int:
        """Number of writes attempted (succeeded + failed)."""
        return len(self.actions) + len(self.failures)

    @property
    def effects(self) -> list[str]:
        return [a.effect for a in self.actions]

    @classmethod
    def from_outcomes(
        cls,
        handler: str,
        outcomes: Sequence[ActionOutcome],
        *,
        category: str | None = None,
    ) -> AutomationResult:
        """Fold executor outcomes into a result.

        Status rules: nothing planned -> NO_ACTION_NEEDED; everything
        skipped -> ALREADY_APPLIED; all attempted writes failed -> FAILED;
        some failed -> PARTIAL; otherwise ACTIONS_SUCCEEDED.
        """
        actions = tuple(
            ActionRecord(target=o.target, effect=o.effect)
            for o in outcomes
            if o.status == "ok"
        )
        failures = tuple(
            ActionFailure(target=o.target, effect=o.effect, error=o.detail)
            for o in outcomes
            if o.status == "error"
        )
        skipped = sum(1 for o in outcomes if o.status == "skipped")

        if not outcomes:
            status = ResultStatus.NO_ACTION_NEEDED
        elif not actions and not failures:
            status = ResultStatus.ALREADY_APPLIED
        elif failures and not actions:
            status = ResultStatus.FAILED
        elif failures:
            status = ResultStatus.PARTIAL
        else:
            status = ResultStatus.ACTIONS_SUCCEEDED

        error = None
        if failures:
            error = "; ".join(f"{f.effect}: {f.error}" for f in failures)

        return cls(
            handler=handler,
            status=status,
            actions=actions,
            failures=failures,
            skipped=skipped,
            category=category,
            error=error,
        )

    @classmethod
    def failure(cls, handler: str, error: str) -> AutomationResult:
        """Handler-level failure: no actions are assumed to have run."""
        return cls(handler=handler, status=ResultStatus.FAILED, error=error)


@dataclass(frozen=True)
class Notice:
    """Short human-readable summary of a processed event.

    Attributes:
        level: "success", "warning" (partial), or "error".
        title: One-line headline.
        description: Details such as the effects taken.
        handler: Handler that produced the result.
        event_id: The change event this notice belongs to.
    """

    level: str  # "success", "warning", "error"
    title: str
    description: str
    handler: str = ""
    event_id: str = ""
