"""Shared test fixtures for Crossflow.

Provides in-memory SQLite engine, session, repository fixtures, a module
gateway of in-memory modules, and record builders for the domain tables.
"""

from datetime import date

import pytest
from sqlalchemy.orm import Session, sessionmaker

from crossflow.execution.executor import ActionExecutor
from crossflow.handlers.base import HandlerContext
from crossflow.models.config import EngineConfig
from crossflow.modules.memory import (
    InMemoryBudgetLedger,
    InMemoryDirectory,
    build_memory_gateway,
)
from crossflow.storage.engine import create_crossflow_engine, init_db
from crossflow.storage.sqlite import SqliteEffectRunRepository, SqliteEventLogRepository

# Monday of an ISO week used throughout the tests.
MONDAY = date(2024, 3, 4)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_crossflow_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def event_log(session: Session) -> SqliteEventLogRepository:
    return SqliteEventLogRepository(session)


@pytest.fixture
def run_repo(session: Session) -> SqliteEffectRunRepository:
    return SqliteEffectRunRepository(session)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def gateway():
    """In-memory modules with a small org chart and one funded cost center."""
    return make_gateway()


@pytest.fixture
def executor(gateway, run_repo, session) -> ActionExecutor:
    return ActionExecutor(gateway, run_repo=run_repo, session=session)


@pytest.fixture
def ctx(gateway, executor, config) -> HandlerContext:
    return HandlerContext(modules=gateway, executor=executor, config=config)


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

def make_gateway(**overrides):
    """Gateway where u1 reports to m1, hr1 is HR, sp1 plans shifts, pay1 runs payroll."""
    modules = {
        "budget": InMemoryBudgetLedger({"sales": 5000.0}),
        "directory": InMemoryDirectory(
            managers={"u1": "m1", "u2": "m1"},
            roles={
                "m1": {"manager"},
                "hr1": {"hr"},
                "sp1": {"shift_planner"},
                "pay1": {"payroll"},
            },
        ),
    }
    modules.update(overrides)
    return build_memory_gateway(**modules)


def sick_leave(**overrides) -> dict:
    record = {
        "id": "SL-1",
        "type": "sick_leave",
        "user_id": "u1",
        "employee_name": "Ada",
        "department": "sales",
        "start_date": MONDAY.isoformat(),
        "end_date": MONDAY.isoformat(),
        "status": "pending",
    }
    record.update(overrides)
    return record


def trip(**overrides) -> dict:
    record = {
        "id": "T-1",
        "user_id": "u1",
        "destination": "Berlin",
        "purpose": "Customer workshop",
        "start_date": "2024-03-11",
        "end_date": "2024-03-13",
        "estimated_cost": 1200.0,
        "cost_center": "sales",
        "status": "pending",
    }
    record.update(overrides)
    return record


def time_entry(**overrides) -> dict:
    record = {
        "id": "TE-1",
        "user_id": "u1",
        "date": MONDAY.isoformat(),
        "total_hours": 7.5,
    }
    record.update(overrides)
    return record


def document(**overrides) -> dict:
    record = {
        "id": "D-1",
        "user_id": "u1",
        "file_name": "payslip_dec.pdf",
        "title": "payslip_dec.pdf",
    }
    record.update(overrides)
    return record


def expense(**overrides) -> dict:
    record = {
        "id": "E-1",
        "trip_id": "T-1",
        "user_id": "u1",
        "amount": 180.0,
        "expense_type": "hotel",
        "description": "Hotel Berlin, two nights",
        "cost_center": "sales",
    }
    record.update(overrides)
    return record
