"""Domain models for Crossflow."""

from crossflow.models.actions import (
    ACTION_KINDS,
    ACTION_TYPES,
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
    action_from_dict,
    action_to_dict,
)
from crossflow.models.config import EngineConfig
from crossflow.models.events import ChangeEvent, Operation
from crossflow.models.results import (
    ActionFailure,
    ActionRecord,
    AutomationResult,
    Notice,
    ResultStatus,
)
from crossflow.models.stats import IntegrationStats, PatternCount

__all__ = [
    "ACTION_KINDS",
    "ACTION_TYPES",
    "AbsenceRecordCreate",
    "Action",
    "ActionFailure",
    "ActionOutcome",
    "ActionRecord",
    "ApprovalRequestCreate",
    "AutomationResult",
    "BudgetUpdate",
    "CalendarSync",
    "ChangeEvent",
    "DocumentTag",
    "EngineConfig",
    "IntegrationStats",
    "Notice",
    "NotificationSend",
    "Operation",
    "PatternCount",
    "ProfileSetup",
    "ResultStatus",
    "ShiftCoverageFlag",
    "action_from_dict",
    "action_to_dict",
]
