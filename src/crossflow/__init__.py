"""Crossflow: cross-module automation for HR and business administration apps.

A state change in one module (sick leave filed, trip approved, document
uploaded) triggers side effects in the others (budget, calendar, absence
ledger, approvals, notifications) without coupling them to each other.
"""

from crossflow._version import __version__

# Core entry point
from crossflow.engine import AutomationEngine

# Events, actions, results
from crossflow.models.events import ChangeEvent, Operation
from crossflow.models.actions import (
    AbsenceRecordCreate,
    Action,
    ActionOutcome,
    ApprovalRequestCreate,
    BudgetUpdate,
    CalendarSync,
    DocumentTag,
    NotificationSend,
    ProfileSetup,
    ShiftCoverageFlag,
)
from crossflow.models.results import (
    ActionFailure,
    ActionRecord,
    AutomationResult,
    Notice,
    ResultStatus,
)
from crossflow.models.stats import IntegrationStats, PatternCount

# Configuration
from crossflow.models.config import EngineConfig

# Routing
from crossflow.routing import (
    DispatchLoop,
    EventRouter,
    FieldEquals,
    Predicate,
    StatusTransition,
    Subscription,
    SubscriptionRegistry,
)

# Handlers
from crossflow.handlers import Handler, HandlerContext, HandlerPlan, register_default_subscriptions

# Execution and reporting
from crossflow.execution import ActionExecutor, RetryReport
from crossflow.reporting import IntegrationReporter

# Protocols
from crossflow.protocols import EventSource, ModuleGateway

# Exceptions
from crossflow.exceptions import (
    ActionExecutionError,
    CrossflowError,
    DispatchError,
    DuplicateSubscriptionError,
    EngineClosedError,
    HandlerTimeoutError,
    MalformedEventError,
    ModuleWriteError,
    StatsComputationError,
    UnknownActionError,
)

__all__ = [
    "__version__",
    "AutomationEngine",
    # Events, actions, results
    "ChangeEvent",
    "Operation",
    "Action",
    "AbsenceRecordCreate",
    "ApprovalRequestCreate",
    "BudgetUpdate",
    "CalendarSync",
    "DocumentTag",
    "NotificationSend",
    "ProfileSetup",
    "ShiftCoverageFlag",
    "ActionOutcome",
    "ActionFailure",
    "ActionRecord",
    "AutomationResult",
    "Notice",
    "ResultStatus",
    "IntegrationStats",
    "PatternCount",
    # Configuration
    "EngineConfig",
    # Routing
    "DispatchLoop",
    "EventRouter",
    "FieldEquals",
    "Predicate",
    "StatusTransition",
    "Subscription",
    "SubscriptionRegistry",
    # Handlers
    "Handler",
    "HandlerContext",
    "HandlerPlan",
    "register_default_subscriptions",
    # Execution and reporting
    "ActionExecutor",
    "RetryReport",
    "IntegrationReporter",
    # Protocols
    "EventSource",
    "ModuleGateway",
    # Exceptions
    "CrossflowError",
    "ActionExecutionError",
    "DispatchError",
    "DuplicateSubscriptionError",
    "EngineClosedError",
    "HandlerTimeoutError",
    "MalformedEventError",
    "ModuleWriteError",
    "StatsComputationError",
    "UnknownActionError",
]
