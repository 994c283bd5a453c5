"""Abstract repository interfaces for Crossflow storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from datetime import datetime

    from crossflow.storage.schema import EffectRunRow, IntegrationEventRow


class EventLogRepository(ABC):
    """Abstract interface for the append-only integration event log."""

    @abstractmethod
    def append(self, row: IntegrationEventRow) -> None:
        """Append a row to the log."""
        ...

    @abstractmethod
    def recent(
        self,
        limit: int = 100,
        *,
        entity: str | None = None,
        since: datetime | None = None,
    ) -> Sequence[IntegrationEventRow]:
        """Most recent rows first, optionally filtered by entity or time."""
        ...

    @abstractmethod
    def recent_events(self, limit: int = 100) -> Sequence[IntegrationEventRow]:
        """Every row of the *limit* most recently logged change events."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...


class EffectRunRepository(ABC):
    """Abstract interface for the effect-run (idempotency) ledger."""

    @abstractmethod
    def get(self, idempotency_key: str) -> EffectRunRow | None:
        """Get a run by key. Returns None if the effect was never attempted."""
        ...

    @abstractmethod
    def save(self, row: EffectRunRow) -> None:
        """Insert or update a run."""
        ...

    @abstractmethod
    def by_status(self, status: str, limit: int = 100) -> Sequence[EffectRunRow]:
        """Runs in *status*, oldest first."""
        ...
