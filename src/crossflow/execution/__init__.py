"""Action execution package -- performs cross-module writes."""

from crossflow.execution.executor import ActionExecutor, RetryReport

__all__ = ["ActionExecutor", "RetryReport"]
