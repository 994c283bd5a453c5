"""Change events observed from the data store."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional


class Operation(str, enum.Enum):
    """Kind of mutation that produced a change event."""

    INSERTED = "inserted"
    UPDATED = "updated"


def _freeze(state: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if state is None:
        return None
    return MappingProxyType(dict(state))


@dataclass(frozen=True)
class ChangeEvent:
    """One observed mutation of a domain record.

    Immutable: created by the event source when a write commits and
    consumed exactly once by the router. ``previous_state`` is only
    present for updates.

    Attributes:
        entity: Name of the affected table (e.g. "business_trips").
        operation: INSERTED or UPDATED.
        new_state: Full record after the mutation.
        previous_state: Record before the mutation, None for inserts.
        event_id: Unique id assigned at emission.
        occurred_at: Commit time of the mutation.
    """

    entity: str
    operation: Operation
    new_state: Mapping[str, Any]
    previous_state: Optional[Mapping[str, Any]] = None
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        operation = Operation(self.operation)
        previous = self.previous_state
        if operation is Operation.INSERTED:
            previous = None
        object.__setattr__(self, "operation", operation)
        object.__setattr__(self, "new_state", _freeze(self.new_state))
        object.__setattr__(self, "previous_state", _freeze(previous))

    @property
    def record_id(self) -> str | None:
        """The ``id`` of the mutated record, if the snapshot carries one."""
        value = self.new_state.get("id")
        return None if value is None else str(value)

    @classmethod
    def inserted(cls, entity: str, record: Mapping[str, Any], **kwargs: Any) -> ChangeEvent:
        """Build an INSERTED event for *record*."""
        return cls(entity=entity, operation=Operation.INSERTED, new_state=record, **kwargs)

    @classmethod
    def updated(
        cls,
        entity: str,
        record: Mapping[str, Any],
        previous: Mapping[str, Any],
        **kwargs: Any,
    ) -> ChangeEvent:
        """Build an UPDATED event transitioning *previous* to *record*."""
        return cls(
            entity=entity,
            operation=Operation.UPDATED,
            new_state=record,
            previous_state=previous,
            **kwargs,
        )
