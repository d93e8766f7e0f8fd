"""
Run Data Models — Rule engine output and evaluation run summaries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from timeguard.models.violation_models import ViolationCandidate


class RuleResult(BaseModel):
    """Output of a single RuleEngine.run() call."""

    candidates: list[ViolationCandidate] = Field(default_factory=list)
    rules_executed: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(
        default_factory=dict, description="rule -> failure message, for rules that raised"
    )
    counts: dict[str, int] = Field(default_factory=dict, description="rule -> candidates produced")
    duration_ms: float = 0.0


class RunSummary(BaseModel):
    """Queryable handle of one evaluation pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_id: str
    status: Literal["queued", "running", "complete", "failed"] = "queued"
    as_of: datetime | None = None
    config_version: int | None = None
    created: dict[str, int] = Field(default_factory=dict, description="rule -> violations created")
    unchanged: int = 0
    candidates_found: int = 0
    errors: dict[str, str] = Field(default_factory=dict)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: float = 0.0
    error: str | None = None

    @property
    def total_created(self) -> int:
        return sum(self.created.values())

    @property
    def partial(self) -> bool:
        return bool(self.errors)
