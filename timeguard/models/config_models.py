"""
Compliance Configuration Models — The versioned threshold record.

Field names are snake_case in Python and camelCase on the wire
(missingEntryDays, overrunThreshold, ...). Every evaluation run receives one
frozen ComplianceConfig and never reads thresholds from anywhere else.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Inclusive allowed range per threshold field.
RULE_RANGES: dict[str, tuple[float, float]] = {
    "missing_entry_days": (1, 30),
    "bulk_logging_threshold": (2, 100),
    "late_entry_days": (1, 30),
    "late_entry_check_days": (1, 365),
    "stale_task_days": (1, 90),
    "overrun_threshold": (100, 1000),
    "stale_task_months": (1, 12),
    "max_spent_hours": (1, 10000),
    "partial_entry_weekly_hours": (1, 168),
}

# Fields that only make sense as whole numbers.
INTEGER_FIELDS = frozenset(RULE_RANGES) - {"overrun_threshold", "max_spent_hours", "partial_entry_weekly_hours"}

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class WorkingDays(BaseModel):
    """Weekly working-day calendar."""

    model_config = ConfigDict(frozen=True)

    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = False
    sunday: bool = False

    def is_working_day(self, day: date) -> bool:
        return getattr(self, WEEKDAY_NAMES[day.weekday()])

    @property
    def count(self) -> int:
        return sum(1 for name in WEEKDAY_NAMES if getattr(self, name))


class ComplianceConfig(BaseModel):
    """Immutable snapshot of every compliance threshold."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    missing_entry_days: int = Field(default=7, description="Look-back window for Missing Entry")
    bulk_logging_threshold: int = Field(default=3, description="Entries per creation batch for Bulk Logging")
    late_entry_days: int = Field(default=3, description="Days between work date and logging before an entry is late")
    late_entry_check_days: int = Field(default=30, description="Work-date window scanned for Late Entry")
    stale_task_days: int = Field(default=14, description="Days without activity before an open issue is stale")
    overrun_threshold: float = Field(default=150, description="Percent of estimate that counts as overrun")
    stale_task_months: int = Field(default=2, description="Age in months of long-running open issues")
    max_spent_hours: float = Field(default=350, description="Total hours on one issue considered high")
    partial_entry_weekly_hours: float = Field(default=40, description="Weekly floor for Partial Entry")
    working_days: WorkingDays = Field(default_factory=WorkingDays)

    version: int = Field(default=1, description="Incremented on every successful update")
    updated_at: datetime | None = None

    @property
    def overrun_multiplier(self) -> float:
        return self.overrun_threshold / 100

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
