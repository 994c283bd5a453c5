"""Business-trip lifecycle handlers.

A trip moves pending -> approved -> completed. Creation blocks the
calendar tentatively and checks the budget; approval reserves budget and
makes the trip official in calendar and absence ledger; completion
releases the hold and reminds the traveller to submit expenses.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Mapping

from crossflow.handlers.absence import notify_recipients
from crossflow.handlers.base import (
    Handler,
    HandlerContext,
    HandlerPlan,
    as_datetime,
    as_float,
    date_field,
    require,
    require_id,
)
from crossflow.models.actions import (
    AbsenceRecordCreate,
    ApprovalRequestCreate,
    BudgetUpdate,
    CalendarSync,
    NotificationSend,
)
from crossflow.models.events import ChangeEvent

logger = logging.getLogger(__name__)

UNASSIGNED_COST_CENTER = "unassigned"


def trip_cost_center(record: Mapping) -> str:
    return str(record.get("cost_center") or record.get("department") or UNASSIGNED_COST_CENTER)


def trip_cost(record: Mapping) -> float:
    """Estimated cost; older records call it ``estimated_budget``."""
    return as_float(record.get("estimated_cost", record.get("estimated_budget")))


def trip_window(start: date, end: date) -> tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end, time(23, 59))


def trip_title(record: Mapping) -> str:
    destination = record.get("destination")
    return f"Business trip: {destination}" if destination else "Business trip"


class BusinessTripCreated(Handler):
    """Trip requested: tentative calendar block, manager notice, budget check."""

    @property
    def name(self) -> str:
        return "business_trip_created"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(require(event, "user_id"))
        start = date_field(event, "start_date")
        end = date_field(event, "end_date")
        starts_at, ends_at = trip_window(start, end)
        trip_id = require_id(event)
        title = trip_title(record)

        actions: list = [
            CalendarSync(
                effect="calendar_tentative_created",
                idempotency_key=self.key(event, "calendar_tentative_created"),
                user_id=user_id,
                title=title,
                start=starts_at,
                end=ends_at,
                category="business_trip",
                status="tentative",
                reference_id=trip_id,
            )
        ]

        managers = await notify_recipients(ctx, user_id, ctx.config.manager_roles)
        if managers:
            actions.append(
                NotificationSend(
                    effect="managers_notified",
                    idempotency_key=self.key(event, "managers_notified"),
                    recipients=managers,
                    title="New business trip request",
                    message=f"{title} from {start} to {end} awaits approval",
                    notification_type="business_trip",
                    module="travel",
                    metadata={"trip_id": trip_id, "employee_id": user_id},
                )
            )

        cost = trip_cost(record)
        if cost > 0:
            cost_center = trip_cost_center(record)
            available = await ctx.modules.budget.available(cost_center)
            if available is None or available < cost:
                logger.info(
                    "Trip %s needs budget review: cost %.2f, available %s",
                    trip_id, cost, available,
                )
                actions.append(
                    ApprovalRequestCreate(
                        effect="budget_review_requested",
                        idempotency_key=self.key(event, "budget_review_requested"),
                        queue="budget_review",
                        requester_id=user_id,
                        approver_id=await ctx.modules.directory.manager_of(user_id),
                        subject=f"Budget review for {title.lower()}",
                        reference_id=trip_id,
                        details={
                            "cost_center": cost_center,
                            "estimated_cost": cost,
                            "available": available,
                        },
                    )
                )

        conflicts = await ctx.modules.absence.overlapping(user_id, start, end, status="approved")
        if conflicts and managers:
            kinds = sorted({str(c.get("absence_type") or c.get("type") or "absence") for c in conflicts})
            actions.append(
                NotificationSend(
                    effect="absence_conflict_notified",
                    idempotency_key=self.key(event, "absence_conflict_notified"),
                    recipients=managers,
                    title="Business trip overlaps an absence",
                    message=f"{title} overlaps approved {', '.join(kinds)}",
                    notification_type="conflict",
                    module="travel",
                    metadata={"trip_id": trip_id, "absence_ids": [c.get("id") for c in conflicts]},
                )
            )

        return HandlerPlan(actions=actions)


class BusinessTripApproved(Handler):
    """Trip approved: reserve budget, confirm calendar, record the absence."""

    @property
    def name(self) -> str:
        return "business_trip_approved"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(require(event, "user_id"))
        start = date_field(event, "start_date")
        end = date_field(event, "end_date")
        starts_at, ends_at = trip_window(start, end)
        trip_id = require_id(event)
        title = trip_title(record)

        actions: list = [
            BudgetUpdate(
                effect="budget_updated",
                idempotency_key=self.key(event, "budget_update"),
                cost_center=trip_cost_center(record),
                amount=trip_cost(record),
                mode="reserve",
                reference_id=trip_id,
            ),
            CalendarSync(
                effect="calendar_synced",
                idempotency_key=self.key(event, "calendar_sync"),
                user_id=user_id,
                title=title,
                start=starts_at,
                end=ends_at,
                category="business_trip",
                status="confirmed",
                reference_id=trip_id,
            ),
            AbsenceRecordCreate(
                effect="absence_record_created",
                idempotency_key=self.key(event, "absence_record"),
                user_id=user_id,
                absence_type="business_trip",
                start_date=start,
                end_date=end,
                reason=str(record.get("purpose") or title),
                reference_id=trip_id,
            ),
        ]

        shifts = await ctx.modules.shifts.assignments(user_id, start, end)
        if shifts:
            planners = tuple(
                u for u in await ctx.modules.directory.users_with_roles(ctx.config.shift_planner_roles)
                if u != user_id
            )
            if planners:
                actions.append(
                    NotificationSend(
                        effect="shift_planners_notified",
                        idempotency_key=self.key(event, "shift_planners_notified"),
                        recipients=planners,
                        title="Shift conflict with business trip",
                        message=f"{len(shifts)} shift(s) of {user_id} fall inside {title.lower()}",
                        notification_type="shift_conflict",
                        module="shift_planning",
                        metadata={"trip_id": trip_id, "shift_ids": [str(s.get("id")) for s in shifts]},
                    )
                )
            else:
                logger.warning("Trip %s overlaps shifts but no shift planner is configured", trip_id)

        return HandlerPlan(actions=actions)


class BusinessTripCompleted(Handler):
    """Trip completed: schedule the expense reminder, release the budget hold."""

    @property
    def name(self) -> str:
        return "business_trip_completed"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(require(event, "user_id"))
        end = date_field(event, "end_date")
        trip_id = require_id(event)
        remind_on = end + timedelta(days=ctx.config.expense_reminder_delay_days)

        actions: list = [
            NotificationSend(
                effect="expense_reminder_sent",
                idempotency_key=self.key(event, "expense_reminder"),
                recipients=(user_id,),
                title="Submit your travel expenses",
                message=f"Please submit the expenses for {trip_title(record).lower()}",
                notification_type="expense_reminder",
                module="travel",
                scheduled_for=as_datetime(remind_on).replace(hour=9),
                metadata={"trip_id": trip_id},
            )
        ]

        cost = trip_cost(record)
        if cost > 0:
            actions.append(
                BudgetUpdate(
                    effect="budget_released",
                    idempotency_key=self.key(event, "budget_release"),
                    cost_center=trip_cost_center(record),
                    amount=cost,
                    mode="release",
                    reference_id=trip_id,
                )
            )

        return HandlerPlan(actions=actions)
