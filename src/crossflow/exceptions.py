"""Crossflow exception hierarchy.

All Crossflow-specific exceptions inherit from CrossflowError.
"""


class CrossflowError(Exception):
    """Base exception for all Crossflow errors."""


class MalformedEventError(CrossflowError):
    """Raised when a change event lacks a field a handler requires."""

    def __init__(self, entity: str, field: str) -> None:
        self.entity = entity
        self.field = field
        super().__init__(f"Malformed {entity} event: missing field '{field}'")


class ModuleWriteError(CrossflowError):
    """Raised by a module write API when it rejects a payload."""

    def __init__(self, module: str, reason: str) -> None:
        self.module = module
        self.reason = reason
        super().__init__(f"{module} write rejected: {reason}")


class ActionExecutionError(CrossflowError):
    """Raised when an action cannot be executed at all."""


class UnknownActionError(ActionExecutionError):
    """Raised when the executor has no module mapping for an action kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"No module mapping for action kind: {kind}")


class HandlerTimeoutError(CrossflowError):
    """Raised when a handler invocation exceeds the configured timeout."""

    def __init__(self, handler_name: str, timeout: float) -> None:
        self.handler_name = handler_name
        self.timeout = timeout
        super().__init__(
            f"Handler '{handler_name}' did not complete within {timeout:g}s"
        )


class DispatchError(CrossflowError):
    """Raised when the router cannot evaluate or invoke a subscription.

    Indicates a configuration defect, e.g. a predicate that raises.
    """


class DuplicateSubscriptionError(CrossflowError):
    """Raised when a subscription name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Subscription '{name}' is already registered. "
            f"Unregister it first to re-register."
        )


class StatsComputationError(CrossflowError):
    """Raised when the event log window cannot be read."""


class EngineClosedError(CrossflowError):
    """Raised when using an AutomationEngine after close()."""

    def __init__(self) -> None:
        super().__init__("AutomationEngine is closed.")
