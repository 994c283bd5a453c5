"""Configuration models for Crossflow.

EngineConfig holds per-engine settings: storage location, dispatch
limits, statistics window, and the business thresholds used by the
built-in handlers.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

_ENV_PREFIX = "CROSSFLOW_"


class EngineConfig(BaseModel):
    """Per-engine configuration."""

    model_config = {"frozen": True}

    db_path: str = ":memory:"
    db_url: Optional[str] = None

    queue_maxsize: int = Field(default=1000, ge=1)
    handler_timeout_seconds: float = Field(default=30.0, gt=0)
    stats_window: int = Field(default=100, ge=1)
    notice_history: int = Field(default=50, ge=0)
    max_retry_attempts: int = Field(default=3, ge=1)

    daily_overtime_hours: float = 8.0
    weekly_overtime_hours: float = 40.0
    manager_roles: tuple[str, ...] = ("admin", "hr", "manager")
    shift_planner_roles: tuple[str, ...] = ("admin", "shift_planner")
    expense_reminder_delay_days: int = 3
    shift_reminder_lead_minutes: int = 15

    disabled_handlers: frozenset[str] = frozenset()

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None, **overrides) -> EngineConfig:
        """Build a config from ``CROSSFLOW_*`` environment variables.

        Only scalar fields and comma-separated ``disabled_handlers`` /
        role lists are read. Explicit *overrides* win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = env.get(f"{_ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if name in ("disabled_handlers", "manager_roles", "shift_planner_roles"):
                values[name] = tuple(p.strip() for p in raw.split(",") if p.strip())
            else:
                values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)
