"""AutomationEngine -- lifecycle owner of the cross-module automation.

Wires storage, registry, router, executor, and reporter together and
exposes the observer surface. Typical use::

    async with AutomationEngine.open("crossflow.db", modules=gateway, source=source) as engine:
        engine.on_notice(print)
        ...

``start()`` subscribes to the event source for every registered topic and
launches the dispatch loop; ``stop()`` unsubscribes and lets the loop
finish what is queued; ``close()`` clears the registry and releases the
database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

from crossflow.exceptions import EngineClosedError
from crossflow.execution.executor import ActionExecutor, RetryReport
from crossflow.handlers import EmployeeOnboarding, ShiftPlanUpdate, register_default_subscriptions
from crossflow.handlers.base import HandlerContext
from crossflow.models.config import EngineConfig
from crossflow.models.events import ChangeEvent, Operation
from crossflow.models.results import AutomationResult, Notice, ResultStatus
from crossflow.models.stats import IntegrationStats
from crossflow.reporting.reporter import IntegrationReporter
from crossflow.routing.registry import Subscription, SubscriptionRegistry
from crossflow.routing.router import DispatchLoop, EventRouter, RoutedResult
from crossflow.storage.engine import create_crossflow_engine, create_session_factory, init_db
from crossflow.storage.sqlite import SqliteEffectRunRepository, SqliteEventLogRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from crossflow.handlers.base import Handler
    from crossflow.protocols import EventSource, ModuleGateway
    from crossflow.routing.predicates import Predicate

logger = logging.getLogger(__name__)


class AutomationEngine:
    """Observes domain changes and runs the cross-module handlers.

    Use :meth:`open` to create an instance; do not call ``__init__``
    directly.
    """

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        config: EngineConfig,
        modules: ModuleGateway,
        registry: SubscriptionRegistry,
        executor: ActionExecutor,
        router: EventRouter,
        reporter: IntegrationReporter,
        source: EventSource | None = None,
    ) -> None:
        self._engine = engine
        self._session = session
        self._config = config
        self._modules = modules
        self._registry = registry
        self._executor = executor
        self._router = router
        self._reporter = reporter
        self._source = source
        self._loop: DispatchLoop | None = None
        self._subscribed: set[tuple[str, Operation]] = set()
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        modules: ModuleGateway,
        source: EventSource | None = None,
        config: EngineConfig | None = None,
        register_defaults: bool = True,
    ) -> AutomationEngine:
        """Open (or create) the engine's event log and wire all components.

        Args:
            path: SQLite path. ``":memory:"`` for in-memory (default).
            modules: Gateway to every target module.
            source: Change stream to subscribe to on ``start()``. Without
                one, events are fed through ``process()`` / ``submit()``.
            config: Engine configuration. Defaults created if *None*.
            register_defaults: Populate the registry with the built-in
                subscription table.
        """
        if config is None:
            config = EngineConfig(db_path=path)

        engine = create_crossflow_engine(path, url=config.db_url)
        init_db(engine)
        session = create_session_factory(engine)()

        executor = ActionExecutor(
            modules,
            run_repo=SqliteEffectRunRepository(session),
            session=session,
        )
        registry = SubscriptionRegistry()
        if register_defaults:
            register_default_subscriptions(registry)

        ctx = HandlerContext(modules=modules, executor=executor, config=config)
        router = EventRouter(
            registry,
            ctx,
            handler_timeout=config.handler_timeout_seconds,
            disabled=config.disabled_handlers,
        )
        reporter = IntegrationReporter(
            SqliteEventLogRepository(session),
            session,
            history=config.notice_history,
        )
        return cls(
            engine=engine,
            session=session,
            config=config,
            modules=modules,
            registry=registry,
            executor=executor,
            router=router,
            reporter=reporter,
            source=source,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def modules(self) -> ModuleGateway:
        return self._modules

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_running

    @property
    def is_processing(self) -> bool:
        """True while any handler is in flight or events are queued."""
        pending = self._loop.pending if self._loop is not None else 0
        return self._router.in_flight > 0 or pending > 0

    @property
    def integration_stats(self) -> IntegrationStats:
        """Last computed statistics snapshot (see :meth:`refresh_stats`)."""
        return self._reporter.stats

    @property
    def notices(self) -> list[Notice]:
        return self._reporter.notices

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the event source and launch the dispatch loop."""
        self._check_open()
        if self.is_running:
            return
        self._loop = DispatchLoop(self.process, maxsize=self._config.queue_maxsize)
        self._loop.start()
        for entity, operation in sorted(self._registry.topics()):
            self._subscribe(entity, operation)
        self.refresh_stats()
        logger.info(
            "Automation engine started with %d subscriptions", len(self._registry)
        )

    async def stop(self) -> None:
        """Stop receiving events and finish the queued ones."""
        if self._source is not None:
            self._source.unsubscribe_all()
        self._subscribed.clear()
        if self._loop is not None:
            await self._loop.stop()
            self._loop = None
            logger.info("Automation engine stopped")

    def close(self) -> None:
        """Clear the registry, close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._registry.clear()
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    async def __aenter__(self) -> AutomationEngine:
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        await self.stop()
        self.close()

    def __enter__(self) -> AutomationEngine:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def register(
        self,
        entity: str,
        operation: Operation | str,
        handler: Handler,
        predicate: Predicate | None = None,
        *,
        name: str | None = None,
    ) -> Subscription:
        """Register an extra subscription; subscribes the source if running."""
        self._check_open()
        sub = self._registry.register(entity, operation, handler, predicate, name=name)
        if self.is_running:
            self._subscribe(sub.entity, sub.operation)
        return sub

    def _subscribe(self, entity: str, operation: Operation) -> None:
        if self._source is None or (entity, operation) in self._subscribed:
            return
        self._source.subscribe(entity, operation, self.submit)
        self._subscribed.add((entity, operation))

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process(self, event: ChangeEvent) -> list[RoutedResult]:
        """Route *event* now and record every handler result."""
        self._check_open()
        routed = await self._router.dispatch(event)
        for item in routed:
            self._reporter.record(event, item.result)
        return routed

    async def submit(self, event: ChangeEvent) -> None:
        """Queue *event* for the dispatch loop (or process it inline when stopped)."""
        self._check_open()
        if self._loop is None:
            await self.process(event)
            return
        await self._loop.submit(event)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self._loop is not None:
            await self._loop.drain()

    def pause(self) -> None:
        self._router.pause()

    def resume(self) -> None:
        self._router.resume()

    # ------------------------------------------------------------------
    # Manual triggers
    # ------------------------------------------------------------------

    async def trigger_employee_onboarding(self, data: Mapping[str, Any]) -> AutomationResult:
        """Set up module profiles for a new employee."""
        return await self._trigger(EmployeeOnboarding(), ChangeEvent.inserted("employees", data))

    async def trigger_shift_plan_update(
        self,
        data: Mapping[str, Any],
        previous: Mapping[str, Any] | None = None,
    ) -> AutomationResult:
        """Propagate a planned or changed shift."""
        if previous is None:
            event = ChangeEvent.inserted("shift_plans", data)
        else:
            event = ChangeEvent.updated("shift_plans", data, previous)
        return await self._trigger(ShiftPlanUpdate(), event)

    async def _trigger(self, handler: Handler, event: ChangeEvent) -> AutomationResult:
        self._check_open()
        if handler.name in self._config.disabled_handlers:
            return AutomationResult(handler=handler.name, status=ResultStatus.NO_ACTION_NEEDED)
        result = await self._router.invoke(handler, event)
        self._reporter.record(event, result)
        return result

    # ------------------------------------------------------------------
    # Observers, statistics, retry
    # ------------------------------------------------------------------

    def on_notice(self, callback: Callable[[Notice], None]) -> Callable[[], None]:
        """Call *callback* with each new notice. Returns an unsubscribe function."""
        return self._reporter.subscribe(callback)

    def refresh_stats(self, window: int | None = None) -> IntegrationStats:
        """Recompute statistics over the last *window* logged change events."""
        return self._reporter.compute_stats(window or self._config.stats_window)

    async def retry_failed(self, limit: int = 100) -> RetryReport:
        """Re-run failed effects from the ledger (see ActionExecutor.retry_failed)."""
        self._check_open()
        return await self._executor.retry_failed(
            max_attempts=self._config.max_retry_attempts, limit=limit
        )

    def _check_open(self) -> None:
        if self._closed:
            raise EngineClosedError()

    def __repr__(self) -> str:
        if self._closed:
            return "AutomationEngine(closed=True)"
        return (
            f"AutomationEngine(subscriptions={len(self._registry)}, "
            f"running={self.is_running})"
        )
