"""Event log reporting and statistics."""

from crossflow.reporting.reporter import IntegrationReporter, build_notice

__all__ = ["IntegrationReporter", "build_notice"]
