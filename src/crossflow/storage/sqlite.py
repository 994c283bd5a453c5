"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from crossflow.storage.repositories import EffectRunRepository, EventLogRepository
from crossflow.storage.schema import EffectRunRow, IntegrationEventRow


class SqliteEventLogRepository(EventLogRepository):
    """SQLite implementation of the integration event log."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, row: IntegrationEventRow) -> None:
        self._session.add(row)
        self._session.flush()

    def recent(
        self,
        limit: int = 100,
        *,
        entity: str | None = None,
        since: datetime | None = None,
    ) -> Sequence[IntegrationEventRow]:
        conditions = []
        if entity is not None:
            conditions.append(IntegrationEventRow.entity == entity)
        if since is not None:
            conditions.append(IntegrationEventRow.created_at >= since)

        stmt = select(IntegrationEventRow)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(IntegrationEventRow.id.desc()).limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def recent_events(self, limit: int = 100) -> Sequence[IntegrationEventRow]:
        latest = (
            select(IntegrationEventRow.event_id)
            .group_by(IntegrationEventRow.event_id)
            .order_by(func.max(IntegrationEventRow.id).desc())
            .limit(limit)
        )
        stmt = (
            select(IntegrationEventRow)
            .where(IntegrationEventRow.event_id.in_(latest))
            .order_by(IntegrationEventRow.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def count(self) -> int:
        stmt = select(func.count()).select_from(IntegrationEventRow)
        return self._session.execute(stmt).scalar_one()


class SqliteEffectRunRepository(EffectRunRepository):
    """SQLite implementation of the effect-run ledger."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, idempotency_key: str) -> EffectRunRow | None:
        return self._session.get(EffectRunRow, idempotency_key)

    def save(self, row: EffectRunRow) -> None:
        self._session.merge(row)
        self._session.flush()

    def by_status(self, status: str, limit: int = 100) -> Sequence[EffectRunRow]:
        stmt = (
            select(EffectRunRow)
            .where(EffectRunRow.status == status)
            .order_by(EffectRunRow.created_at)
            .limit(limit)
        )
        return list(self._session.execute(stmt).scalars().all())
