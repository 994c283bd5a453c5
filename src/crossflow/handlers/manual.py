"""Handlers that run on explicit request instead of a store subscription.

The engine wraps the caller's payload in a synthetic ChangeEvent
(``employees`` / ``shift_plans``) so these go through the same executor
and reporter as subscribed handlers.
"""

from __future__ import annotations

from datetime import timedelta

from crossflow.exceptions import MalformedEventError
from crossflow.handlers.base import Handler, HandlerContext, HandlerPlan, as_datetime, require
from crossflow.models.actions import CalendarSync, NotificationSend, ProfileSetup
from crossflow.models.events import ChangeEvent

DEFAULT_VACATION_DAYS = 30
STANDARD_DOCUMENTS = ("employment_contract", "privacy_policy", "code_of_conduct")


def as_hours(value, default: float) -> float:
    return float(value) if value not in (None, "") else default


class EmployeeOnboarding(Handler):
    """New employee: set up a profile in every module they will use."""

    @property
    def name(self) -> str:
        return "employee_onboarding"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(record.get("user_id") or require(event, "id"))
        department = record.get("department")

        profiles = (
            ("documents", "standard_documents_assigned",
             {"standard_documents": list(STANDARD_DOCUMENTS)}),
            ("calendar", "calendar_permissions_set",
             {"visibility": "team", "department": department}),
            ("shift_planning", "shift_planning_profile_created",
             {"availability": record.get("availability") or "full_time", "department": department}),
            ("time_tracking", "time_tracking_profile_created",
             {"weekly_hours": as_hours(record.get("weekly_hours"), ctx.config.weekly_overtime_hours)}),
            ("absence", "vacation_days_initialized",
             {"vacation_days": int(record.get("vacation_days") or DEFAULT_VACATION_DAYS)}),
        )
        return HandlerPlan(
            actions=[
                ProfileSetup(
                    effect=effect,
                    idempotency_key=self.key(event, effect, record_id=user_id),
                    user_id=user_id,
                    module=module,
                    settings=settings,
                )
                for module, effect, settings in profiles
            ]
        )


class ShiftPlanUpdate(Handler):
    """Shift planned or moved: calendar, clock-in reminder, team notice."""

    @property
    def name(self) -> str:
        return "shift_plan_update"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        shift_id = str(require(event, "id"))
        employee = str(record.get("employee_id") or require(event, "user_id"))
        try:
            starts_at = as_datetime(require(event, "start_time"))
            ends_at = as_datetime(require(event, "end_time"))
        except ValueError:
            raise MalformedEventError(event.entity, "start_time") from None

        # A moved shift is a new logical effect.
        rid = f"{shift_id}@{starts_at.isoformat()}"
        shift_type = record.get("shift_type") or "shift"
        lead = timedelta(minutes=ctx.config.shift_reminder_lead_minutes)

        team = [employee]
        for member in record.get("team_member_ids") or ():
            if str(member) not in team:
                team.append(str(member))

        return HandlerPlan(
            actions=[
                CalendarSync(
                    effect="calendar_updated",
                    idempotency_key=self.key(event, "calendar_updated", record_id=rid),
                    user_id=employee,
                    title=f"Shift: {shift_type}",
                    start=starts_at,
                    end=ends_at,
                    category="shift",
                    status="confirmed",
                    reference_id=shift_id,
                ),
                NotificationSend(
                    effect="time_tracking_reminder_created",
                    idempotency_key=self.key(event, "time_tracking_reminder_created", record_id=rid),
                    recipients=(employee,),
                    title="Shift starts soon",
                    message=(
                        f"Your shift starts in {ctx.config.shift_reminder_lead_minutes} minutes. "
                        "Remember to start time tracking."
                    ),
                    notification_type="time_tracking_reminder",
                    module="time_tracking",
                    scheduled_for=starts_at - lead,
                    metadata={"shift_id": shift_id},
                ),
                NotificationSend(
                    effect="team_notified",
                    idempotency_key=self.key(event, "team_notified", record_id=rid),
                    recipients=tuple(team),
                    title="Shift plan updated",
                    message=f"{shift_type} shift {starts_at:%Y-%m-%d %H:%M} to {ends_at:%H:%M}",
                    notification_type="shift_update",
                    module="shift_planning",
                    metadata={"shift_id": shift_id, "location": record.get("location")},
                ),
            ]
        )
