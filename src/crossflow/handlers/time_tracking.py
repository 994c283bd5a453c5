"""Time-tracking handlers: overtime detection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from crossflow.exceptions import MalformedEventError
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
from crossflow.models.actions import ApprovalRequestCreate
from crossflow.models.events import ChangeEvent


@dataclass(frozen=True)
class OvertimeCheck:
    daily_hours: float
    weekly_hours: float
    daily_overtime: float
    weekly_overtime: float

    @property
    def has_overtime(self) -> bool:
        return self.daily_overtime > 0 or self.weekly_overtime > 0


def week_bounds(day: date) -> tuple[date, date]:
    """Monday..Sunday of the ISO week containing *day*."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def entry_hours(event: ChangeEvent) -> float:
    """Hours of a time entry: ``total_hours`` or end - start - breaks."""
    record = event.new_state
    if record.get("total_hours") not in (None, ""):
        return as_float(record["total_hours"])
    if record.get("start_time") and record.get("end_time"):
        try:
            span = as_datetime(record["end_time"]) - as_datetime(record["start_time"])
        except ValueError:
            raise MalformedEventError(event.entity, "start_time") from None
        hours = span.total_seconds() / 3600 - as_float(record.get("break_minutes")) / 60
        return max(hours, 0.0)
    raise MalformedEventError(event.entity, "total_hours")


async def check_overtime(
    event: ChangeEvent,
    ctx: HandlerContext,
    user_id: str,
    day: date,
) -> OvertimeCheck:
    """Compare the entry's day and ISO week against the configured thresholds.

    The time ledger already contains the committed entry; the entry's own
    hours are a lower bound for the day in case the ledger lags.
    """
    hours = entry_hours(event)
    daily = max(hours, await ctx.modules.time.hours_between(user_id, day, day))
    start, end = week_bounds(day)
    weekly = max(daily, await ctx.modules.time.hours_between(user_id, start, end))
    return OvertimeCheck(
        daily_hours=daily,
        weekly_hours=weekly,
        daily_overtime=max(0.0, daily - ctx.config.daily_overtime_hours),
        weekly_overtime=max(0.0, weekly - ctx.config.weekly_overtime_hours),
    )


class TimeTrackingCompleted(Handler):
    """Time entry booked: request overtime approval above threshold."""

    @property
    def name(self) -> str:
        return "time_tracking_completed"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        user_id = str(require(event, "user_id"))
        day = date_field(event, "date")
        check = await check_overtime(event, ctx, user_id, day)
        if not check.has_overtime:
            return HandlerPlan()

        manager = await ctx.modules.directory.manager_of(user_id)
        return HandlerPlan(
            actions=[
                ApprovalRequestCreate(
                    effect="overtime_approval_requested",
                    idempotency_key=self.key(event, "overtime_approval_requested"),
                    queue="overtime",
                    requester_id=user_id,
                    approver_id=manager,
                    subject=f"Overtime on {day.isoformat()}",
                    reference_id=require_id(event),
                    details={
                        "date": day.isoformat(),
                        "daily_hours": round(check.daily_hours, 2),
                        "weekly_hours": round(check.weekly_hours, 2),
                        "daily_overtime": round(check.daily_overtime, 2),
                        "weekly_overtime": round(check.weekly_overtime, 2),
                    },
                )
            ]
        )
