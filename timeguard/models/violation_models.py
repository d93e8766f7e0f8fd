"""
Violation Data Models — Kinds, severities, candidates and stored violations.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ViolationKind(str, Enum):
    MISSING_ENTRY = "missing_entry"
    LATE_ENTRY = "late_entry"
    BULK_LOGGING = "bulk_logging"
    ROUND_NUMBERS = "round_numbers"
    STALE_TASK = "stale_task"
    OVERRUN_TASK = "overrun_task"
    PARTIAL_ENTRY = "partial_entry"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Penalty applied to a user's compliance score per open violation.
SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
}


class ViolationStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    IGNORED = "ignored"


TERMINAL_STATUSES = frozenset({ViolationStatus.RESOLVED, ViolationStatus.IGNORED})


class ViolationCandidate(BaseModel):
    """What a rule evaluator emits. Carries no status and no identity."""

    kind: ViolationKind
    user_id: str = Field(..., description="Subject user")
    severity: Severity
    subject_id: str | None = Field(
        default=None, description="Issue or project the violation is about, when applicable"
    )
    anchor: str = Field(..., description="Time-window anchor, e.g. the work week or the late entry id")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def dedup_key(self) -> str:
        return "|".join((self.kind.value, self.user_id, self.subject_id or "-", self.anchor))


class Violation(BaseModel):
    """A stored violation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: ViolationKind
    user_id: str
    severity: Severity
    status: ViolationStatus = ViolationStatus.OPEN
    detected_at: datetime
    dedup_key: str
    subject_id: str | None = None
    anchor: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    resolved_at: datetime | None = None


class ViolationView(Violation):
    """A violation as served to the UI, with its human-readable description."""

    description: str = ""


class ViolationPage(BaseModel):
    """Paginated violation listing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[ViolationView] = Field(default_factory=list)
    page: int
    limit: int
    total: int

    @computed_field
    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


class StatusUpdate(BaseModel):
    """Request body for a violation status transition."""

    status: str = Field(..., description="resolved or ignored")


class UpsertResult(BaseModel):
    """Outcome of merging one batch of candidates into the store."""

    created: list[Violation] = Field(default_factory=list)
    unchanged: int = 0
