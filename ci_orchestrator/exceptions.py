"""ci-orchestrator — Exception hierarchy.

All exceptions raised by the orchestrator inherit from CIOrchestratorError
so that callers can catch the full family with a single except clause.

Hierarchy:
    CIOrchestratorError
    ├── ConfigurationError
    │   ├── InvalidTimeError
    │   ├── InvalidWeekDayError
    │   └── UnknownTriggerError
    └── IntegrationError
        ├── SourceControlError
        ├── LabelSourceControlError
        ├── BuildTaskError
        ├── PublishError
        └── NoIntegrationInProgressError

Configuration errors are raised while triggers and projects are being set
up and propagate to the caller.  Integration errors raised inside the
pipeline are captured on the IntegrationResult and never escape
``IntegrationRunner.integrate``.
"""

from __future__ import annotations

from typing import Any


class CIOrchestratorError(Exception):
    """Base exception for all ci-orchestrator errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(CIOrchestratorError):
    """A trigger or project was configured with an invalid value."""


class InvalidTimeError(ConfigurationError):
    """A time-of-day string is not in ``HH:mm`` or ``HH:mm:ss`` form."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid time of day '{value}': expected HH:mm or HH:mm:ss",
            context={"value": value},
        )
        self.value = value


class InvalidWeekDayError(ConfigurationError):
    """A week-day name is not one of Monday..Sunday."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid week day '{value}'", context={"value": value})
        self.value = value


class UnknownTriggerError(ConfigurationError):
    """No trigger implementation matches the configured type or element."""

    def __init__(self, trigger_type: str) -> None:
        super().__init__(
            f"Unknown trigger type '{trigger_type}'",
            context={"trigger_type": trigger_type},
        )
        self.trigger_type = trigger_type


# ---------------------------------------------------------------------------
# Integration pipeline
# ---------------------------------------------------------------------------


class IntegrationError(CIOrchestratorError):
    """Base for errors raised by pipeline collaborators."""


class SourceControlError(IntegrationError):
    """A source-control provider failed to list modifications or fetch source."""


class LabelSourceControlError(IntegrationError):
    """Labelling the source-control provider failed after a build."""

    def __init__(self, project: str, cause: BaseException) -> None:
        super().__init__(
            f"Exception occurred while labelling source control provider for '{project}': {cause}",
            context={"project": project, "cause": repr(cause)},
        )
        self.project = project


class BuildTaskError(IntegrationError):
    """A build task could not be executed."""


class PublishError(IntegrationError):
    """A publisher failed to publish an integration result."""


class NoIntegrationInProgressError(IntegrationError):
    """``finish_integration`` was called without a started integration."""

    def __init__(self, project: str) -> None:
        super().__init__(
            f"No integration in progress for project '{project}'",
            context={"project": project},
        )
        self.project = project
