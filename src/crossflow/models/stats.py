"""Integration statistics derived from the event log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class PatternCount:
    """How often an (entity -> effect) correlation occurred in the window."""

    entity: str
    effect: str
    count: int


@dataclass(frozen=True)
class IntegrationStats:
    """Snapshot recomputed from the last ``window`` change events in the log.

    Immutable: a fresh computation replaces the previous snapshot rather
    than updating it in place.

    Attributes:
        total_events: Distinct change events in the window.
        automated_actions: Sum of successful actions across those events.
        success_rate: Percentage (0-100) of events none of whose handlers failed.
        patterns: (entity, effect) pairs ranked by frequency.
        outcomes: Number of handler results per ResultStatus value.
        failed_actions: Sum of failed actions across the window.
        window: Requested window size.
        computed_at: When the snapshot was computed (None = never).
    """

    total_events: int = 0
    automated_actions: int = 0
    success_rate: float = 0.0
    patterns: tuple[PatternCount, ...] = ()
    outcomes: dict[str, int] = field(default_factory=dict)
    failed_actions: int = 0
    window: int = 0
    computed_at: datetime | None = None

    def top_patterns(self, n: int = 5) -> tuple[PatternCount, ...]:
        return self.patterns[:n]
