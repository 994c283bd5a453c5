"""EventRouter and DispatchLoop.

The router matches one ChangeEvent against the registry and fans out to
every subscription whose predicate holds. Handlers run concurrently and
independently: a handler that raises or times out yields a failed
AutomationResult for itself only.

The dispatch loop decouples delivery from handling. Event-source
callbacks only enqueue; a single consumer task routes events one at a
time, so lifecycle transitions of a record are handled in the order they
were emitted. The queue is bounded and ``submit()`` waits when it is full.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable

from crossflow.exceptions import (
    DispatchError,
    EngineClosedError,
    HandlerTimeoutError,
    MalformedEventError,
)
from crossflow.models.results import AutomationResult

if TYPE_CHECKING:
    from crossflow.handlers.base import HandlerContext
    from crossflow.models.events import ChangeEvent
    from crossflow.routing.registry import Subscription, SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutedResult:
    """A handler result together with the subscription that produced it."""

    subscription: str
    result: AutomationResult


class EventRouter:
    """Routes change events to matching subscriptions."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        ctx: HandlerContext,
        *,
        handler_timeout: float = 30.0,
        disabled: Iterable[str] = (),
    ) -> None:
        self._registry = registry
        self._ctx = ctx
        self._timeout = handler_timeout
        self._disabled = frozenset(disabled)
        self._paused = False
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Pause / Resume
    # ------------------------------------------------------------------

    def pause(self) -> None:
        """Stop dispatching; events routed while paused are dropped."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def in_flight(self) -> int:
        """Handler invocations currently running."""
        return self._in_flight

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def matching(self, event: ChangeEvent) -> list[Subscription]:
        """Subscriptions that should handle *event*.

        A predicate that raises is a configuration defect: it is logged
        and that subscription is skipped, the others are unaffected.
        """
        selected: list[Subscription] = []
        for sub in self._registry.candidates(event):
            if sub.name in self._disabled or sub.handler.name in self._disabled:
                logger.debug("Subscription '%s' disabled, skipping", sub.name)
                continue
            if sub.predicate is None:
                selected.append(sub)
                continue
            try:
                holds = sub.predicate.matches(event)
            except Exception as exc:
                err = DispatchError(
                    f"Predicate of '{sub.name}' raised {type(exc).__name__}: {exc}"
                )
                logger.error("%s", err)
                continue
            if holds:
                selected.append(sub)
        return selected

    async def dispatch(self, event: ChangeEvent) -> list[RoutedResult]:
        """Run every matching handler for *event* and collect their results.

        Never raises for handler failures; each one becomes a failed
        result. Returns an empty list when paused or nothing matches.
        """
        if self._paused:
            logger.debug("Router paused, dropping %s event %s", event.entity, event.event_id)
            return []

        subs = self.matching(event)
        if not subs:
            return []

        results = await asyncio.gather(*(self._invoke(sub, event) for sub in subs))
        return [RoutedResult(subscription=s.name, result=r) for s, r in zip(subs, results)]

    async def invoke(self, handler, event: ChangeEvent) -> AutomationResult:
        """Run a single handler outside the registry (manual triggers)."""
        return await self._run(handler, event)

    async def _invoke(self, sub: Subscription, event: ChangeEvent) -> AutomationResult:
        return await self._run(sub.handler, event)

    async def _run(self, handler, event: ChangeEvent) -> AutomationResult:
        name = getattr(handler, "name", type(handler).__name__)
        self._in_flight += 1
        try:
            return await asyncio.wait_for(handler.handle(event, self._ctx), timeout=self._timeout)
        except asyncio.TimeoutError:
            err = HandlerTimeoutError(name, self._timeout)
            logger.error("%s (event %s)", err, event.event_id)
            return AutomationResult.failure(name, str(err))
        except MalformedEventError as exc:
            logger.warning("Handler '%s' rejected event %s: %s", name, event.event_id, exc)
            return AutomationResult.failure(name, str(exc))
        except Exception as exc:
            logger.exception("Handler '%s' failed on event %s", name, event.event_id)
            return AutomationResult.failure(name, f"{type(exc).__name__}: {exc}")
        finally:
            self._in_flight -= 1


_STOP = object()


class DispatchLoop:
    """Bounded queue of change events consumed by one task."""

    def __init__(
        self,
        process: Callable[[ChangeEvent], Awaitable[object]],
        maxsize: int = 1000,
    ) -> None:
        self._process = process
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._closed:
            raise EngineClosedError()
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="crossflow-dispatch"
        )

    async def submit(self, event: ChangeEvent) -> None:
        """Enqueue *event*; waits while the queue is full."""
        if self._closed:
            raise EngineClosedError()
        await self._queue.put(event)

    async def drain(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Process what is queued, then end the consumer task."""
        self._closed = True
        if self._task is None:
            return
        await self._queue.put(_STOP)
        await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                await self._process(item)
            except Exception:
                # Nothing may escape into the source's delivery path.
                logger.exception("Dispatch of event %s failed", getattr(item, "event_id", "?"))
            finally:
                self._queue.task_done()
