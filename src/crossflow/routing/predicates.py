"""Subscription predicates.

Predicates are small comparison structs rather than closures so that a
registry can be listed, serialized, and shown in a monitoring view.
They must be pure: evaluation only reads the event.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from crossflow.models.events import ChangeEvent, Operation

_MISSING = object()


class Predicate(ABC):
    """Pure boolean test gating a subscription."""

    @abstractmethod
    def matches(self, event: ChangeEvent) -> bool:
        ...

    @abstractmethod
    def to_dict(self) -> dict:
        ...

    def describe(self) -> str:
        return repr(self)


@dataclass(frozen=True)
class FieldEquals(Predicate):
    """True when ``new_state[field] == value``."""

    field: str
    value: Any

    def matches(self, event: ChangeEvent) -> bool:
        return event.new_state.get(self.field, _MISSING) == self.value

    def to_dict(self) -> dict:
        return {"type": "field_equals", "field": self.field, "value": self.value}

    def describe(self) -> str:
        return f"{self.field} == {self.value!r}"


@dataclass(frozen=True)
class StatusTransition(Predicate):
    """True when an update moves ``field`` into ``to`` from anything else.

    Never matches inserts (only insert subscriptions observe creation) and
    never matches re-saves that leave the field unchanged.
    """

    to: Any
    field: str = "status"

    def matches(self, event: ChangeEvent) -> bool:
        if event.operation is not Operation.UPDATED or event.previous_state is None:
            return False
        new_value = event.new_state.get(self.field, _MISSING)
        old_value = event.previous_state.get(self.field, _MISSING)
        return new_value == self.to and old_value != self.to

    def to_dict(self) -> dict:
        return {"type": "status_transition", "field": self.field, "to": self.to}

    def describe(self) -> str:
        return f"{self.field}: * -> {self.to!r}"


def predicate_from_dict(data: dict) -> Predicate:
    """Restore a predicate serialized with ``to_dict()``."""
    kind = data.get("type")
    if kind == "field_equals":
        return FieldEquals(field=data["field"], value=data["value"])
    if kind == "status_transition":
        return StatusTransition(to=data["to"], field=data.get("field", "status"))
    raise ValueError(f"Unknown predicate type: {kind!r}")
