"""Protocols for the collaborators Crossflow talks to.

The engine never imports a concrete module implementation. Each target
module is reached through one write entry point (which raises on failure)
plus whatever read access the handlers need. ``crossflow.modules.memory``
ships in-memory implementations of every protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from crossflow.models.actions import (
    AbsenceRecordCreate,
    ApprovalRequestCreate,
    BudgetUpdate,
    CalendarSync,
    DocumentTag,
    NotificationSend,
    ProfileSetup,
    ShiftCoverageFlag,
)
from crossflow.models.events import ChangeEvent, Operation

EventCallback = Callable[[ChangeEvent], Awaitable[None]]


@runtime_checkable
class EventSource(Protocol):
    """Push-based change stream of the data store."""

    def subscribe(self, entity: str, operation: Operation, callback: EventCallback) -> None:
        """Deliver every (entity, operation) change to *callback*, in commit order."""
        ...

    def unsubscribe_all(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Target modules
# ---------------------------------------------------------------------------


@runtime_checkable
class BudgetLedger(Protocol):
    async def apply(self, update: BudgetUpdate) -> None: ...

    async def available(self, cost_center: str) -> float | None:
        """Remaining budget, or None when the cost center has no budget."""
        ...


@runtime_checkable
class CalendarModule(Protocol):
    async def sync_event(self, event: CalendarSync) -> None: ...


@runtime_checkable
class AbsenceLedger(Protocol):
    async def create_record(self, record: AbsenceRecordCreate) -> None: ...

    async def overlapping(
        self, user_id: str, start: date, end: date, *, status: str = "approved"
    ) -> Sequence[dict]: ...


@runtime_checkable
class NotificationChannel(Protocol):
    async def send(self, notification: NotificationSend) -> None: ...


@runtime_checkable
class ApprovalQueue(Protocol):
    async def submit(self, request: ApprovalRequestCreate) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    async def tag(self, tag: DocumentTag) -> None: ...


@runtime_checkable
class ShiftPlanner(Protocol):
    async def flag_coverage(self, flag: ShiftCoverageFlag) -> None: ...

    async def assignments(self, user_id: str, start: date, end: date) -> Sequence[dict]: ...


@runtime_checkable
class ProfileStore(Protocol):
    async def setup(self, profile: ProfileSetup) -> None: ...


# ---------------------------------------------------------------------------
# Read-only lookups
# ---------------------------------------------------------------------------


@runtime_checkable
class TimeLedger(Protocol):
    async def hours_between(self, user_id: str, start: date, end: date) -> float:
        """Total tracked hours for *user_id* with start <= date <= end."""
        ...


@runtime_checkable
class Directory(Protocol):
    async def manager_of(self, user_id: str) -> str | None: ...

    async def users_with_roles(self, roles: Sequence[str]) -> list[str]: ...


@dataclass
class ModuleGateway:
    """Bundle of every collaborator the handlers and executor use."""

    budget: BudgetLedger
    calendar: CalendarModule
    absence: AbsenceLedger
    notifications: NotificationChannel
    approvals: ApprovalQueue
    documents: DocumentStore
    shifts: ShiftPlanner
    profiles: ProfileStore
    time: TimeLedger
    directory: Directory
