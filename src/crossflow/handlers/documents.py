"""Document handlers: classify uploads and notify the affected module."""

from __future__ import annotations

import re
from typing import Mapping

from crossflow.exceptions import MalformedEventError
from crossflow.handlers.base import Handler, HandlerContext, HandlerPlan
from crossflow.models.actions import DocumentTag, NotificationSend
from crossflow.models.events import ChangeEvent

# Checked in order; the first category with a matching keyword wins.
# Names are matched after "_", "-", "." and "/" become spaces. Sick notes
# come before "certificate" because "medical certificate" contains both.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("sick_leave_certificate", ("krankschreibung", "au bescheinigung", "arbeitsunfähigkeit", "sick note", "medical certificate")),
    ("payroll", ("payslip", "pay slip", "payroll", "salary", "lohnabrechnung", "gehaltsabrechnung", "lohn", "gehalt")),
    ("contract", ("vertrag", "contract", "agreement")),
    ("certificate", ("zeugnis", "certificate", "diploma", "zertifikat")),
)

# category -> (module to notify, roles inside that module, effect label)
CATEGORY_ROUTES: dict[str, tuple[str, tuple[str, ...], str]] = {
    "payroll": ("payroll", ("payroll",), "payroll_notified"),
    "sick_leave_certificate": ("absence", ("hr",), "absence_notified"),
    "contract": ("employees", ("hr",), "employee_file_notified"),
}

_NAME_FIELDS = ("file_name", "title", "name", "file_path")


def classify_document(record: Mapping) -> str:
    """Infer a category from an explicit type hint or filename heuristics."""
    hint = record.get("category") or record.get("document_type")
    if hint and str(hint).lower() in {c for c, _ in CATEGORY_KEYWORDS}:
        return str(hint).lower()

    text = " ".join(str(record.get(f) or "") for f in _NAME_FIELDS).lower()
    tokens = re.sub(r"[\s._/-]+", " ", text)
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in tokens for k in keywords):
            return category
    return "general"


class DocumentUploaded(Handler):
    """Document stored: tag its category, notify the module it concerns."""

    @property
    def name(self) -> str:
        return "document_uploaded"

    async def plan(self, event: ChangeEvent, ctx: HandlerContext) -> HandlerPlan:
        record = event.new_state
        if event.record_id is None:
            raise MalformedEventError(event.entity, "id")
        if not any(record.get(f) for f in _NAME_FIELDS):
            raise MalformedEventError(event.entity, "file_name")

        category = classify_document(record)
        actions: list = [
            DocumentTag(
                effect="document_categorized",
                idempotency_key=self.key(event, "document_categorized"),
                document_id=event.record_id,
                category=category,
            )
        ]

        route = CATEGORY_ROUTES.get(category)
        if route is not None:
            module, roles, effect = route
            recipients = tuple(await ctx.modules.directory.users_with_roles(roles))
            display = record.get("title") or record.get("file_name") or event.record_id
            actions.append(
                NotificationSend(
                    effect=effect,
                    idempotency_key=self.key(event, effect),
                    recipients=recipients or (f"module:{module}",),
                    title="New document",
                    message=f"Document '{display}' was filed as {category}",
                    notification_type="document",
                    module=module,
                    metadata={
                        "document_id": event.record_id,
                        "owner_id": record.get("user_id"),
                        "category": category,
                    },
                )
            )

        return HandlerPlan(actions=actions, category=category)
