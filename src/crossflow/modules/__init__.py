"""Reference implementations of the collaborator protocols."""

from crossflow.modules.memory import (
    InMemoryAbsenceLedger,
    InMemoryApprovals,
    InMemoryBudgetLedger,
    InMemoryCalendar,
    InMemoryDirectory,
    InMemoryDocuments,
    InMemoryEventSource,
    InMemoryNotifications,
    InMemoryProfiles,
    InMemoryShiftPlanner,
    InMemoryTimeLedger,
    build_memory_gateway,
)

__all__ = [
    "InMemoryAbsenceLedger",
    "InMemoryApprovals",
    "InMemoryBudgetLedger",
    "InMemoryCalendar",
    "InMemoryDirectory",
    "InMemoryDocuments",
    "InMemoryEventSource",
    "InMemoryNotifications",
    "InMemoryProfiles",
    "InMemoryShiftPlanner",
    "InMemoryTimeLedger",
    "build_memory_gateway",
]
