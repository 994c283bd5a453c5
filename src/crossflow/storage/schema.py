"""SQLAlchemy ORM schema for Crossflow.

Defines all database tables: integration_events, effect_runs,
_crossflow_meta.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Index, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all Crossflow ORM models."""

    pass


class IntegrationEventRow(Base):
    """One recorded handler outcome for a change event.

    The event log is append-only. Statistics are recomputed from its most
    recent rows; nothing else aggregates it.
    """

    __tablename__ = "integration_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity: Mapped[str] = mapped_column(String(100), nullable=False)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    record_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    handler: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # ResultStatus value
    actions_json: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    failures_json: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_integration_events_entity_time", "entity", "created_at"),
    )


class EffectRunRow(Base):
    """Ledger entry for one action, keyed by its idempotency key.

    A completed run blocks re-application of the same logical effect.
    Failed runs keep the serialized action so callers can retry them.
    """

    __tablename__ = "effect_runs"

    idempotency_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    target: Mapped[str] = mapped_column(String(50), nullable=False)
    effect: Mapped[str] = mapped_column(String(100), nullable=False)
    action_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # "completed", "failed", "dead_letter"
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_effect_runs_status", "status"),
    )


class CrossflowMetaRow(Base):
    """Key-value metadata (schema version)."""

    __tablename__ = "_crossflow_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
