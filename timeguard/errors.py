"""
Error Taxonomy — every failure the compliance engine reports to a caller.

Each error carries a stable machine-readable code and the HTTP status the API
layer answers with. PartialEvaluationError is never raised to a caller: the
rule engine records it in the run summary and keeps going.
"""

from __future__ import annotations

from typing import Any


class TimeGuardError(Exception):
    """Base class for all domain errors."""

    code = "timeguard_error"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "detail": self.message,
            **({"context": self.details} if self.details else {}),
        }


class ValidationError(TimeGuardError):
    """Input rejected before any mutation (threshold range, filter, pagination)."""

    code = "validation_error"
    http_status = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        allowed: tuple[float, float] | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if field is not None:
            details["field"] = field
        if allowed is not None:
            details["min"], details["max"] = allowed
        super().__init__(message, details)
        self.field = field
        self.allowed = allowed


class NotFoundError(TimeGuardError):
    """Unknown violation, user, manager or run id on a targeted operation."""

    code = "not_found"
    http_status = 404


class ConflictOnStatusTransition(TimeGuardError):
    """Violation already sits in a different terminal state."""

    code = "status_conflict"
    http_status = 409


class PartialEvaluationError(TimeGuardError):
    """A single rule evaluator failed during a run."""

    code = "partial_evaluation"

    def __init__(self, rule: str, cause: BaseException) -> None:
        super().__init__(
            f"Rule '{rule}' failed: {type(cause).__name__}: {cause}",
            {"rule": rule},
        )
        self.rule = rule
        self.cause = cause
