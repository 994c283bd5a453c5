"""Handler ABC -- base class for all domain handlers.

A handler maps one kind of domain change to a list of cross-module
actions. Subclasses implement ``plan()``: read the event (and, through
the module gateway, whatever other state they need) and return the
actions the change warrants. ``handle()`` hands the plan to the executor
and folds the outcomes into an AutomationResult, so the result's action
list is always exactly what was done.

Example::

    class ContractSigned(Handler):
        @property
        def name(self) -> str:
            return "contract_signed"

        async def plan(self, event, ctx):
            record = event.new_state
            return HandlerPlan(actions=[
                NotificationSend(
                    effect="hr_notified",
                    idempotency_key=self.key(event, "hr_notified"),
                    recipients=("hr",),
                    title="Contract signed",
                    message=f"Contract {record['id']} signed",
                    notification_type="contract",
                    module="employees",
                ),
            ])
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time as dt_time
from typing import TYPE_CHECKING, Any, Sequence

from crossflow.exceptions import MalformedEventError
from crossflow.models.results import AutomationResult

if TYPE_CHECKING:
    from crossflow.execution.executor import ActionExecutor
    from crossflow.models.actions import _ActionBase
    from crossflow.models.config import EngineConfig
    from crossflow.models.events import ChangeEvent
    from crossflow.protocols import ModuleGateway


@dataclass(frozen=True)
class HandlerContext:
    """What a handler may touch: module read APIs, the executor, config."""

    modules: ModuleGateway
    executor: ActionExecutor
    config: EngineConfig


@dataclass(frozen=True)
class HandlerPlan:
    """Actions a handler decided on, plus an optional classification."""

    actions: Sequence[_ActionBase] = field(default_factory=tuple)
    category: str | None = None


class Handler(ABC):
    """Abstract base class for all domain handlers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique handler name (e.g. 'business_trip_approved')."""
        ...

    @abstractmethod
    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        """Decide which cross-module actions *event* warrants.

        May read from other modules; must not write. Raise
        MalformedEventError when the record lacks a required field.
        """
        ...

    async def handle(self, event: ChangeEvent, ctx: HandlerContext) -> AutomationResult:
        """Plan, execute, and report."""
        started = time.perf_counter()
        plan = await self.plan(event, ctx)
        outcomes = await ctx.executor.execute_all(plan.actions)
        result = AutomationResult.from_outcomes(
            self.name, outcomes, category=plan.category
        )
        return replace(result, duration_ms=(time.perf_counter() - started) * 1000)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def key(self, event: ChangeEvent, suffix: str, record_id: str | None = None) -> str:
        """Idempotency key scoped to this handler and the event's record.

        Redelivery of the same logical change yields the same key, so the
        executor can detect effects that were already applied. A record
        without an ``id`` is malformed: the event id changes on redelivery.
        """
        rid = record_id or require_id(event)
        return f"{self.name}:{rid}:{suffix}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


# ---------------------------------------------------------------------------
# Record field helpers
# ---------------------------------------------------------------------------


def require(event: ChangeEvent, field_name: str) -> Any:
    """Return a non-empty field of the new record or raise MalformedEventError."""
    value = event.new_state.get(field_name)
    if value is None or value == "":
        raise MalformedEventError(event.entity, field_name)
    return value


def require_id(event: ChangeEvent) -> str:
    """The record's ``id`` as a string, or raise MalformedEventError."""
    rid = event.record_id
    if rid is None or rid == "":
        raise MalformedEventError(event.entity, "id")
    return rid


def as_date(value: Any) -> date:
    """Coerce an ISO string, date, or datetime to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def as_datetime(value: Any) -> datetime:
    """Coerce an ISO string or date to a datetime (dates map to midnight)."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, dt_time.min)
    text = str(value)
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), dt_time.min)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def date_field(event: ChangeEvent, field_name: str) -> date:
    """Required date field; unparsable values count as malformed."""
    try:
        return as_date(require(event, field_name))
    except ValueError:
        raise MalformedEventError(event.entity, field_name) from None
