"""In-memory implementations of every collaborator protocol.

Useful for tests, demos, and running the engine without a real data
store. Every write module keeps the payloads it accepted in ``writes``
and can be told to reject writes via ``fail_next()``.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from crossflow.exceptions import ModuleWriteError
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
from crossflow.protocols import EventCallback, ModuleGateway


def _overlaps(start: date, end: date, other_start: date, other_end: date) -> bool:
    return start <= other_end and other_start <= end


def _as_date(value: Any) -> date:
    return value if isinstance(value, date) else date.fromisoformat(str(value)[:10])


class _WriteModule:
    """Shared write bookkeeping and failure injection."""

    module = "module"

    def __init__(self) -> None:
        self.writes: list[Any] = []
        self._failure: str | None = None
        self._failures_left: int | None = None

    def fail_next(self, reason: str = "unavailable", times: int | None = None) -> None:
        """Reject the next *times* writes (all writes when None)."""
        self._failure = reason
        self._failures_left = times

    def recover(self) -> None:
        self._failure = None
        self._failures_left = None

    def _accept(self, payload: Any) -> None:
        if self._failure is not None:
            reason = self._failure
            if self._failures_left is not None:
                self._failures_left -= 1
                if self._failures_left <= 0:
                    self.recover()
            raise ModuleWriteError(self.module, reason)
        self.writes.append(payload)


class InMemoryBudgetLedger(_WriteModule):
    module = "budget"

    def __init__(self, budgets: Mapping[str, float] | None = None) -> None:
        super().__init__()
        self.budgets: dict[str, float] = dict(budgets or {})
        self.reserved: defaultdict[str, float] = defaultdict(float)
        self.spent: defaultdict[str, float] = defaultdict(float)

    async def apply(self, update: BudgetUpdate) -> None:
        self._accept(update)
        if update.mode == "reserve":
            self.reserved[update.cost_center] += update.amount
        elif update.mode == "release":
            self.reserved[update.cost_center] = max(
                0.0, self.reserved[update.cost_center] - update.amount
            )
        else:
            self.spent[update.cost_center] += update.amount

    async def available(self, cost_center: str) -> float | None:
        if cost_center not in self.budgets:
            return None
        return self.budgets[cost_center] - self.reserved[cost_center] - self.spent[cost_center]


class InMemoryCalendar(_WriteModule):
    module = "calendar"

    def __init__(self) -> None:
        super().__init__()
        # (reference_id, category) -> latest block; a confirmed sync
        # replaces the tentative block of the same trip.
        self.events: dict[tuple[str, str], CalendarSync] = {}

    async def sync_event(self, event: CalendarSync) -> None:
        self._accept(event)
        self.events[(event.reference_id, event.category)] = event


class InMemoryAbsenceLedger(_WriteModule):
    module = "absence"

    def __init__(self, records: Iterable[Mapping] = ()) -> None:
        super().__init__()
        self.records: list[dict] = [dict(r) for r in records]

    def add(self, **record: Any) -> None:
        """Seed an existing absence (``user_id``, ``start_date``, ``end_date``, ``status``...)."""
        record.setdefault("status", "approved")
        self.records.append(record)

    async def create_record(self, record: AbsenceRecordCreate) -> None:
        self._accept(record)
        self.records.append(
            {
                "id": record.reference_id,
                "user_id": record.user_id,
                "absence_type": record.absence_type,
                "start_date": record.start_date,
                "end_date": record.end_date,
                "reason": record.reason,
                "status": "approved",
            }
        )

    async def overlapping(
        self, user_id: str, start: date, end: date, *, status: str = "approved"
    ) -> Sequence[dict]:
        return [
            r for r in self.records
            if r.get("user_id") == user_id
            and r.get("status") == status
            and _overlaps(start, end, _as_date(r["start_date"]), _as_date(r["end_date"]))
        ]


class InMemoryNotifications(_WriteModule):
    module = "notifications"

    @property
    def sent(self) -> list[NotificationSend]:
        return list(self.writes)

    async def send(self, notification: NotificationSend) -> None:
        self._accept(notification)


class InMemoryApprovals(_WriteModule):
    module = "approvals"

    def queue(self, name: str) -> list[ApprovalRequestCreate]:
        return [r for r in self.writes if r.queue == name]

    async def submit(self, request: ApprovalRequestCreate) -> None:
        self._accept(request)


class InMemoryDocuments(_WriteModule):
    module = "documents"

    def __init__(self) -> None:
        super().__init__()
        self.tags: dict[str, str] = {}

    async def tag(self, tag: DocumentTag) -> None:
        self._accept(tag)
        self.tags[tag.document_id] = tag.category


class InMemoryShiftPlanner(_WriteModule):
    module = "shifts"

    def __init__(self) -> None:
        super().__init__()
        self.shifts: list[dict] = []
        self.flagged: set[str] = set()

    def add_shift(self, shift_id: str, user_id: str, day: date | str) -> None:
        self.shifts.append({"id": shift_id, "user_id": user_id, "date": _as_date(day)})

    async def flag_coverage(self, flag: ShiftCoverageFlag) -> None:
        self._accept(flag)
        self.flagged.update(flag.shift_ids)

    async def assignments(self, user_id: str, start: date, end: date) -> Sequence[dict]:
        return [
            s for s in self.shifts
            if s["user_id"] == user_id and start <= s["date"] <= end
        ]


class InMemoryProfiles(_WriteModule):
    module = "profiles"

    def __init__(self) -> None:
        super().__init__()
        self.profiles: dict[tuple[str, str], dict] = {}

    async def setup(self, profile: ProfileSetup) -> None:
        self._accept(profile)
        self.profiles[(profile.user_id, profile.module)] = dict(profile.settings)


class InMemoryTimeLedger:
    """Tracked hours per user and day."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, date, float]] = []

    def add_entry(self, user_id: str, day: date | str, hours: float) -> None:
        self.entries.append((user_id, _as_date(day), float(hours)))

    async def hours_between(self, user_id: str, start: date, end: date) -> float:
        return sum(h for uid, d, h in self.entries if uid == user_id and start <= d <= end)


class InMemoryDirectory:
    """Reporting lines and role assignments."""

    def __init__(
        self,
        managers: Mapping[str, str] | None = None,
        roles: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self.managers: dict[str, str] = dict(managers or {})
        self.roles: dict[str, set[str]] = {u: set(r) for u, r in (roles or {}).items()}

    async def manager_of(self, user_id: str) -> str | None:
        return self.managers.get(user_id)

    async def users_with_roles(self, roles: Sequence[str]) -> list[str]:
        wanted = set(roles)
        return sorted(u for u, r in self.roles.items() if r & wanted)


class InMemoryEventSource:
    """Change stream fed by explicit ``insert()`` / ``update()`` calls."""

    def __init__(self) -> None:
        self._callbacks: dict[tuple[str, Operation], list[EventCallback]] = defaultdict(list)

    def subscribe(self, entity: str, operation: Operation, callback: EventCallback) -> None:
        self._callbacks[(entity, Operation(operation))].append(callback)

    def unsubscribe_all(self) -> None:
        self._callbacks.clear()

    @property
    def subscription_count(self) -> int:
        return sum(len(cbs) for cbs in self._callbacks.values())

    async def emit(self, event: ChangeEvent) -> None:
        """Deliver *event* to every callback subscribed to its topic."""
        for callback in list(self._callbacks.get((event.entity, event.operation), ())):
            await callback(event)

    async def insert(self, entity: str, record: Mapping) -> ChangeEvent:
        event = ChangeEvent.inserted(entity, record)
        await self.emit(event)
        return event

    async def update(self, entity: str, record: Mapping, previous: Mapping) -> ChangeEvent:
        event = ChangeEvent.updated(entity, record, previous)
        await self.emit(event)
        return event


def build_memory_gateway(**overrides: Any) -> ModuleGateway:
    """A ModuleGateway of fresh in-memory modules; keyword args replace any of them."""
    modules: dict[str, Any] = {
        "budget": InMemoryBudgetLedger(),
        "calendar": InMemoryCalendar(),
        "absence": InMemoryAbsenceLedger(),
        "notifications": InMemoryNotifications(),
        "approvals": InMemoryApprovals(),
        "documents": InMemoryDocuments(),
        "shifts": InMemoryShiftPlanner(),
        "profiles": InMemoryProfiles(),
        "time": InMemoryTimeLedger(),
        "directory": InMemoryDirectory(),
    }
    modules.update(overrides)
    return ModuleGateway(**modules)
