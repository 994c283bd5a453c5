"""Expense handlers."""

from __future__ import annotations

import logging
from typing import Mapping

from crossflow.exceptions import MalformedEventError
from crossflow.handlers.base import (
    Handler,
    HandlerContext,
    HandlerPlan,
    as_float,
    require,
    require_id,
)
from crossflow.models.actions import ApprovalRequestCreate, BudgetUpdate
from crossflow.models.events import ChangeEvent

logger = logging.getLogger(__name__)

EXPENSE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("accommodation", ("hotel", "accommodation", "lodging", "airbnb", "übernachtung", "unterkunft")),
    ("transportation", (
        "flight", "flug", "train", "bahn", "taxi", "uber", "rental car", "mietwagen",
        "fuel", "mileage", "parking", "transport",
    )),
    ("meals", ("meal", "restaurant", "food", "breakfast", "lunch", "dinner", "verpflegung")),
)

EXPENSE_CATEGORIES = tuple(c for c, _ in EXPENSE_KEYWORDS) + ("other",)


def classify_expense(record: Mapping) -> str:
    """Map an expense to accommodation, transportation, meals or other."""
    declared = str(record.get("expense_type") or record.get("category") or "").lower()
    if declared in EXPENSE_CATEGORIES:
        return declared
    text = f"{declared} {record.get('description') or ''}".lower()
    for category, keywords in EXPENSE_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return "other"


class ExpenseSubmitted(Handler):
    """Expense filed: book actuals and route it into its approval queue."""

    @property
    def name(self) -> str:
        return "expense_submitted"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        user_id = str(require(event, "user_id"))
        try:
            amount = as_float(require(event, "amount"))
        except ValueError:
            raise MalformedEventError(event.entity, "amount") from None
        category = classify_expense(record)
        expense_id = require_id(event)
        trip_id = record.get("trip_id") or record.get("business_trip_id")

        actions: list = []
        cost_center = record.get("cost_center") or record.get("department")
        if cost_center:
            actions.append(
                BudgetUpdate(
                    effect="budget_actuals_updated",
                    idempotency_key=self.key(event, "budget_actuals"),
                    cost_center=str(cost_center),
                    amount=amount,
                    mode="actual",
                    reference_id=expense_id,
                )
            )
        else:
            logger.info("Expense %s has no cost center; actuals not booked", expense_id)

        actions.append(
            ApprovalRequestCreate(
                effect="expense_approval_requested",
                idempotency_key=self.key(event, "expense_approval"),
                queue=f"expenses:{category}",
                requester_id=user_id,
                approver_id=await ctx.modules.directory.manager_of(user_id),
                subject=f"{category.capitalize()} expense of {amount:.2f}",
                reference_id=expense_id,
                details={
                    "amount": amount,
                    "category": category,
                    "trip_id": trip_id,
                    "description": record.get("description"),
                },
            )
        )

        return HandlerPlan(actions=actions, category=category)
