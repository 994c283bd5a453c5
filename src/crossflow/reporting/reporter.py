"""IntegrationReporter -- turns handler results into notices and statistics.

Every routed result is appended to the persistent event log. Results
that did something (fully, partially, or not at all because it failed)
also become a Notice that is pushed to observers and kept in a short
history. Statistics are recomputed on demand from the most recent log
rows; the previous snapshot is kept when the log cannot be read.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from sqlalchemy.exc import SQLAlchemyError

from crossflow.exceptions import StatsComputationError
from crossflow.models.results import AutomationResult, Notice, ResultStatus
from crossflow.models.stats import IntegrationStats, PatternCount
from crossflow.storage.schema import IntegrationEventRow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from crossflow.models.events import ChangeEvent
    from crossflow.storage.repositories import EventLogRepository

logger = logging.getLogger(__name__)

NoticeCallback = Callable[[Notice], None]


def build_notice(event: ChangeEvent, result: AutomationResult) -> Notice | None:
    """Notice for *result*, or None when the event needed no new action."""
    status = result.status
    if status in (ResultStatus.NO_ACTION_NEEDED, ResultStatus.ALREADY_APPLIED):
        return None
    if status is ResultStatus.ACTIONS_SUCCEEDED:
        return Notice(
            level="success",
            title="Event fully processed",
            description=f"{event.entity}: {', '.join(result.effects)}",
            handler=result.handler,
            event_id=event.event_id,
        )
    if status is ResultStatus.PARTIAL:
        return Notice(
            level="warning",
            title=(
                f"Event partially processed "
                f"({len(result.actions)} of {result.attempted} actions)"
            ),
            description=result.error or "",
            handler=result.handler,
            event_id=event.event_id,
        )
    return Notice(
        level="error",
        title="Event processing failed",
        description=result.error or "unknown error",
        handler=result.handler,
        event_id=event.event_id,
    )


class IntegrationReporter:
    """Records results, notifies observers, and computes IntegrationStats."""

    def __init__(
        self,
        event_log: EventLogRepository,
        session: Session | None = None,
        *,
        history: int = 50,
    ) -> None:
        self._log = event_log
        self._session = session
        self._observers: list[NoticeCallback] = []
        self._notices: deque[Notice] = deque(maxlen=history)
        self._stats = IntegrationStats()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: NoticeCallback) -> Callable[[], None]:
        """Call *callback* with every new notice. Returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    @property
    def notices(self) -> list[Notice]:
        """Recent notices, oldest first."""
        return list(self._notices)

    @property
    def stats(self) -> IntegrationStats:
        """Last computed snapshot."""
        return self._stats

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, event: ChangeEvent, result: AutomationResult) -> Notice | None:
        """Append *result* to the event log and publish its notice."""
        row = IntegrationEventRow(
            event_id=event.event_id,
            entity=event.entity,
            operation=event.operation.value,
            record_id=event.record_id,
            handler=result.handler,
            status=result.status.value,
            actions_json=[{"target": a.target, "effect": a.effect} for a in result.actions],
            failures_json=[
                {"target": f.target, "effect": f.effect, "error": f.error}
                for f in result.failures
            ],
            skipped=result.skipped,
            category=result.category,
            error_message=result.error,
            duration_ms=result.duration_ms,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._log.append(row)
            if self._session is not None:
                self._session.commit()
        except SQLAlchemyError:
            logger.exception("Could not append %s result to the event log", result.handler)
            if self._session is not None:
                self._session.rollback()

        notice = build_notice(event, result)
        if notice is not None:
            self._notices.append(notice)
            for callback in list(self._observers):
                try:
                    callback(notice)
                except Exception:
                    logger.exception("Notice observer %r failed", callback)
        return notice

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def compute_stats(self, window_size: int = 100) -> IntegrationStats:
        """Recompute statistics over the most recent *window_size* change events.

        A fanned-out event has one log row per handler; it counts once and
        is resolved only if none of its handlers failed. ``outcomes`` and
        the action counts are per handler result. On a storage error the
        previous snapshot is returned unchanged.
        """
        try:
            rows = self._read_window(window_size)
        except StatsComputationError as exc:
            logger.error("%s; keeping previous statistics", exc)
            return self._stats

        outcomes: Counter[str] = Counter()
        patterns: Counter[tuple[str, str]] = Counter()
        unresolved: set[str] = set()
        automated = failed = 0
        for row in rows:
            outcomes[row.status] += 1
            if row.status == ResultStatus.FAILED.value:
                unresolved.add(row.event_id)
            actions = row.actions_json or []
            automated += len(actions)
            failed += len(row.failures_json or [])
            for action in actions:
                patterns[(row.entity, action["effect"])] += 1

        total = len({row.event_id for row in rows})
        resolved = total - len(unresolved)
        ranked = sorted(patterns.items(), key=lambda kv: (-kv[1], kv[0]))
        self._stats = IntegrationStats(
            total_events=total,
            automated_actions=automated,
            success_rate=(resolved / total * 100.0) if total else 0.0,
            patterns=tuple(
                PatternCount(entity=entity, effect=effect, count=count)
                for (entity, effect), count in ranked
            ),
            outcomes=dict(outcomes),
            failed_actions=failed,
            window=window_size,
            computed_at=datetime.now(timezone.utc),
        )
        return self._stats

    def _read_window(self, window_size: int) -> list[IntegrationEventRow]:
        try:
            return list(self._log.recent_events(limit=window_size))
        except SQLAlchemyError as exc:
            if self._session is not None:
                self._session.rollback()
            raise StatsComputationError(f"Event log unreadable: {exc}") from exc
