"""Exception hierarchy for call cost engine failures."""

from __future__ import annotations

from typing import Any, Mapping


class CallCostError(Exception):
    """Base class for all domain-level errors raised by the engine."""

    default_message = "Call cost engine error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class NotFoundError(CallCostError):
    """A requested entity does not exist in the supplied data."""

    default_message = "Entity not found"


class UserNotFoundError(NotFoundError):
    """No call records match the user query."""

    default_message = "User not found"


class TemplateNotFoundError(NotFoundError):
    """No historical call data exists for the requested template."""

    default_message = "No call data found for this template"


class ValidationError(CallCostError):
    """Raised when caller supplied input violates engine invariants."""

    default_message = "Domain validation failed"


class InvalidScenarioError(ValidationError):
    """Scenario input is missing fields or carries non-positive volumes."""

    default_message = "Invalid scenario input"


class InvalidGroupingError(ValidationError):
    """Aggregation was requested for an unsupported grouping key."""

    default_message = "Unsupported grouping key"
