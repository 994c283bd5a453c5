"""Subscription registry.

Binds (entity, operation, predicate) tuples to handlers. Owned by an
AutomationEngine: populated once at start and cleared at shutdown.
Subscriptions are appended rarely and read on every event, so the
registry takes no locks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from crossflow.exceptions import DuplicateSubscriptionError
from crossflow.models.events import ChangeEvent, Operation
from crossflow.routing.predicates import Predicate

if TYPE_CHECKING:
    from crossflow.handlers.base import Handler


@dataclass(frozen=True)
class Subscription:
    """A standing interest in one kind of change."""

    name: str
    entity: str
    operation: Operation
    handler: Handler
    predicate: Predicate | None = None

    def applies_to(self, event: ChangeEvent) -> bool:
        """Entity/operation match only; the predicate is evaluated by the router."""
        return self.entity == event.entity and self.operation is event.operation

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "entity": self.entity,
            "operation": self.operation.value,
            "handler": self.handler.name,
            "predicate": self.predicate.to_dict() if self.predicate else None,
        }


class SubscriptionRegistry:
    """Registry of subscriptions. Owned by an AutomationEngine."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    def register(
        self,
        entity: str,
        operation: Operation | str,
        handler: Handler,
        predicate: Predicate | None = None,
        *,
        name: str | None = None,
    ) -> Subscription:
        """Add a subscription.

        The subscription name defaults to the handler's name.

        Raises:
            DuplicateSubscriptionError: If the name is already registered.
        """
        sub_name = name or handler.name
        if sub_name in self._subscriptions:
            raise DuplicateSubscriptionError(sub_name)
        sub = Subscription(
            name=sub_name,
            entity=entity,
            operation=Operation(operation),
            handler=handler,
            predicate=predicate,
        )
        self._subscriptions[sub_name] = sub
        return sub

    def unregister(self, name: str) -> None:
        """Remove a subscription by name."""
        self._subscriptions.pop(name, None)

    def clear(self) -> None:
        """Remove every subscription (engine shutdown)."""
        self._subscriptions.clear()

    def get(self, name: str) -> Subscription | None:
        return self._subscriptions.get(name)

    def candidates(self, event: ChangeEvent) -> list[Subscription]:
        """Subscriptions whose entity and operation match *event*."""
        return [s for s in self._subscriptions.values() if s.applies_to(event)]

    def subscriptions_for(self, entity: str, operation: Operation | str) -> list[Subscription]:
        op = Operation(operation)
        return [
            s for s in self._subscriptions.values()
            if s.entity == entity and s.operation is op
        ]

    def topics(self) -> set[tuple[str, Operation]]:
        """Distinct (entity, operation) pairs to subscribe to at the source."""
        return {(s.entity, s.operation) for s in self._subscriptions.values()}

    def to_config(self) -> list[dict]:
        """Serialize all subscriptions for inspection."""
        return [s.to_dict() for s in self._subscriptions.values()]

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._subscriptions
