"""Domain handlers and the default subscription table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from crossflow.handlers.absence import SickLeaveCreated
from crossflow.handlers.base import Handler, HandlerContext, HandlerPlan
from crossflow.handlers.documents import DocumentUploaded, classify_document
from crossflow.handlers.expenses import ExpenseSubmitted, classify_expense
from crossflow.handlers.manual import EmployeeOnboarding, ShiftPlanUpdate
from crossflow.handlers.time_tracking import TimeTrackingCompleted
from crossflow.handlers.travel import (
    BusinessTripApproved,
    BusinessTripCompleted,
    BusinessTripCreated,
)
from crossflow.models.events import Operation
from crossflow.routing.predicates import FieldEquals, StatusTransition

if TYPE_CHECKING:
    from crossflow.routing.registry import SubscriptionRegistry


def register_default_subscriptions(registry: SubscriptionRegistry) -> None:
    """Populate *registry* with the built-in subscription table."""
    registry.register(
        "absence_requests", Operation.INSERTED, SickLeaveCreated(),
        FieldEquals("type", "sick_leave"),
    )
    registry.register("documents", Operation.INSERTED, DocumentUploaded())
    registry.register("time_entries", Operation.INSERTED, TimeTrackingCompleted())
    registry.register("business_trips", Operation.INSERTED, BusinessTripCreated())
    registry.register(
        "business_trips", Operation.UPDATED, BusinessTripApproved(),
        StatusTransition("approved"),
    )
    registry.register(
        "business_trips", Operation.UPDATED, BusinessTripCompleted(),
        StatusTransition("completed"),
    )
    registry.register("business_trip_expenses", Operation.INSERTED, ExpenseSubmitted())


__all__ = [
    "BusinessTripApproved",
    "BusinessTripCompleted",
    "BusinessTripCreated",
    "DocumentUploaded",
    "EmployeeOnboarding",
    "ExpenseSubmitted",
    "Handler",
    "HandlerContext",
    "HandlerPlan",
    "ShiftPlanUpdate",
    "SickLeaveCreated",
    "TimeTrackingCompleted",
    "classify_document",
    "classify_expense",
    "register_default_subscriptions",
]
