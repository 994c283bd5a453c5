"""ActionExecutor -- thin dispatcher from action kind to module write API.

The executor holds no business rules. It maps each action kind to the
write entry point of its target module, performs exactly one write per
action, and reports a per-action ActionOutcome.

Idempotency: before writing, the action's ``idempotency_key`` is looked
up in the effect-run ledger. A completed run means the effect was already
applied (e.g. a redelivered approval event), so the action is skipped.
Every attempt is recorded so failed effects can be retried later by the
caller via ``retry_failed()``; the executor itself never retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from crossflow.exceptions import UnknownActionError
from crossflow.models.actions import (
    ACTION_KINDS,
    ActionOutcome,
    action_from_dict,
    action_to_dict,
)
from crossflow.storage.schema import EffectRunRow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from crossflow.models.actions import _ActionBase
    from crossflow.protocols import ModuleGateway
    from crossflow.storage.repositories import EffectRunRepository

logger = logging.getLogger(__name__)

WriteFn = Callable[["_ActionBase"], Awaitable[None]]


@dataclass(frozen=True)
class RetryReport:
    """Summary of a retry_failed() pass."""

    retried: int
    succeeded: int
    failed: int
    dead_lettered: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ActionExecutor:
    """Executes declared actions against target modules.

    Actions of one handler run sequentially in declared order; an error
    on one never prevents the remaining actions from being attempted.
    """

    def __init__(
        self,
        modules: ModuleGateway,
        run_repo: EffectRunRepository | None = None,
        session: Session | None = None,
    ) -> None:
        self._modules = modules
        self._run_repo = run_repo
        self._session = session
        self._dispatch: dict[str, WriteFn] = {
            "budget_update": modules.budget.apply,
            "calendar_sync": modules.calendar.sync_event,
            "absence_record_create": modules.absence.create_record,
            "notification_send": modules.notifications.send,
            "approval_request_create": modules.approvals.submit,
            "document_tag": modules.documents.tag,
            "shift_coverage_flag": modules.shifts.flag_coverage,
            "profile_setup": modules.profiles.setup,
        }
        missing = ACTION_KINDS - self._dispatch.keys()
        if missing:
            raise UnknownActionError(", ".join(sorted(missing)))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, action: _ActionBase) -> ActionOutcome:
        """Perform the single write for *action* and report the outcome."""
        run = self._lookup(action.idempotency_key)
        if run is not None and run.status == "completed":
            logger.debug("Effect already applied: %s", action.idempotency_key)
            return ActionOutcome(action=action, status="skipped", detail="already applied")

        write = self._dispatch.get(action.kind)
        if write is None:
            raise UnknownActionError(action.kind)

        try:
            await write(action)
        except Exception as exc:
            logger.warning(
                "Action %s -> %s failed: %s", action.effect, action.target, exc
            )
            self._record(action, run, "failed", str(exc))
            return ActionOutcome(action=action, status="error", detail=str(exc))

        self._record(action, run, "completed", None)
        return ActionOutcome(action=action, status="ok")

    async def execute_all(self, actions: Sequence[_ActionBase]) -> list[ActionOutcome]:
        """Execute *actions* in order, each independently of the others."""
        outcomes: list[ActionOutcome] = []
        for action in actions:
            outcomes.append(await self.execute(action))
        return outcomes

    # ------------------------------------------------------------------
    # Caller-level retry
    # ------------------------------------------------------------------

    async def retry_failed(self, max_attempts: int = 3, limit: int = 100) -> RetryReport:
        """Re-execute failed runs from the ledger.

        Runs that fail again and reach *max_attempts* are moved to
        ``dead_letter`` and are not retried any further.
        """
        if self._run_repo is None:
            return RetryReport(retried=0, succeeded=0, failed=0, dead_lettered=0)

        retried = succeeded = failed = dead = 0
        for run in self._run_repo.by_status("failed", limit=limit):
            action = action_from_dict(run.action_json)
            retried += 1
            outcome = await self.execute(action)
            if outcome.ok:
                succeeded += 1
                continue
            failed += 1
            if run.attempts >= max_attempts:
                run.status = "dead_letter"
                run.updated_at = _now()
                self._run_repo.save(run)
                dead += 1
                logger.error(
                    "Effect %s moved to dead letter after %d attempts",
                    run.idempotency_key,
                    run.attempts,
                )
        self._commit()
        return RetryReport(
            retried=retried, succeeded=succeeded, failed=failed, dead_lettered=dead
        )

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _lookup(self, key: str) -> EffectRunRow | None:
        if self._run_repo is None:
            return None
        return self._run_repo.get(key)

    def _record(
        self,
        action: _ActionBase,
        run: EffectRunRow | None,
        status: str,
        error: str | None,
    ) -> None:
        if self._run_repo is None:
            return
        now = _now()
        if run is None:
            run = EffectRunRow(
                idempotency_key=action.idempotency_key,
                kind=action.kind,
                target=action.target,
                effect=action.effect,
                action_json=action_to_dict(action),
                status=status,
                attempts=1,
                error_message=error,
                created_at=now,
                updated_at=now,
            )
        else:
            run.status = status
            run.attempts += 1
            run.error_message = error
            run.updated_at = now
        try:
            self._run_repo.save(run)
            self._commit()
        except SQLAlchemyError:
            # The module write already happened; its outcome stands.
            logger.exception("Could not record %s run for %s", status, action.idempotency_key)
            if self._session is not None:
                self._session.rollback()

    def _commit(self) -> None:
        if self._session is not None:
            self._session.commit()
