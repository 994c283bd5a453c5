"""Absence handlers."""

from __future__ import annotations

import logging

from crossflow.handlers.base import (
    Handler,
    HandlerContext,
    HandlerPlan,
    date_field,
    require,
    require_id,
)
from crossflow.models.actions import AbsenceRecordCreate, NotificationSend, ShiftCoverageFlag
from crossflow.models.events import ChangeEvent

logger = logging.getLogger(__name__)


async def notify_recipients(ctx: HandlerContext, user_id: str, roles) -> tuple[str, ...]:
    """The user's direct manager followed by every holder of *roles*, minus the user."""
    recipients: list[str] = []
    manager = await ctx.modules.directory.manager_of(user_id)
    if manager:
        recipients.append(manager)
    for uid in await ctx.modules.directory.users_with_roles(roles):
        if uid not in recipients:
            recipients.append(uid)
    return tuple(r for r in recipients if r != user_id)


class SickLeaveCreated(Handler):
    """Sick leave filed: register it, tell the managers, flag shift coverage."""

    @property
    def name(self) -> str:
        return "sick_leave_created"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(require(event, "user_id"))
        start = date_field(event, "start_date")
        end = date_field(event, "end_date")
        employee = record.get("employee_name") or user_id
        actions = [
            AbsenceRecordCreate(
                effect="absence_registered",
                idempotency_key=self.key(event, "absence_registered"),
                user_id=user_id,
                absence_type="sick_leave",
                start_date=start,
                end_date=end,
                reason=record.get("reason") or "Sick leave",
                reference_id=require_id(event),
            )
        ]

        recipients = await notify_recipients(ctx, user_id, ctx.config.manager_roles)
        if recipients:
            department = record.get("department")
            where = f" ({department})" if department else ""
            actions.append(
                NotificationSend(
                    effect="managers_notified",
                    idempotency_key=self.key(event, "managers_notified"),
                    recipients=recipients,
                    title="New sick leave",
                    message=f"{employee}{where} is on sick leave from {start} to {end}",
                    notification_type="sick_leave",
                    module="absence",
                    metadata={"sick_leave_id": event.record_id, "employee_id": user_id},
                )
            )
        else:
            logger.warning("No manager found to notify about sick leave of %s", user_id)

        shifts = await ctx.modules.shifts.assignments(user_id, start, end)
        if shifts:
            actions.append(
                ShiftCoverageFlag(
                    effect="shift_coverage_flagged",
                    idempotency_key=self.key(event, "shift_coverage_flagged"),
                    user_id=user_id,
                    shift_ids=tuple(str(s["id"]) for s in shifts),
                    reference_id=require_id(event),
                    reason="sick_leave",
                )
            )

        return HandlerPlan(actions=actions)
