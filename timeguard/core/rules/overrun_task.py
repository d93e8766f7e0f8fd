"""
Overrun Task Rule — Detects issues whose logged hours blow past the estimate.

Triggers when an estimated, assigned issue has
`spent > estimated × overrun_threshold / 100`, counting every entry logged on
the issue up to the as-of instant.
"""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import Issue
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.OVERRUN_TASK

# Above this share of the estimate the violation is high severity.
HIGH_SEVERITY_RATIO = 200.0


class Overrun(NamedTuple):
    estimated: float
    spent: float
    ratio: float

    @property
    def overrun_percentage(self) -> int:
        return round(self.ratio - 100)


def measure(
    snapshot: EntitySnapshot, issue: Issue, config: ComplianceConfig, as_of: datetime | None = None
) -> Overrun | None:
    """Estimate, spent hours and ratio for an issue over its threshold, else None."""
    if not issue.has_estimate:
        return None
    estimated = float(issue.estimated_hours)
    spent = round(snapshot.spent_hours(issue.id, as_of), 2)
    if spent <= estimated * config.overrun_multiplier:
        return None
    return Overrun(estimated, spent, spent / estimated * 100)


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag issues over their estimate by more than the configured ratio."""
    candidates: list[ViolationCandidate] = []

    for issue in snapshot.issues.values():
        if not issue.assignee_id:
            continue
        overrun = measure(snapshot, issue, config, as_of)
        if overrun is None:
            continue

        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=issue.assignee_id,
                severity=Severity.HIGH if overrun.ratio > HIGH_SEVERITY_RATIO else Severity.MEDIUM,
                subject_id=issue.id,
                anchor=f"estimate:{overrun.estimated:g}",
                metadata={
                    "issue_id": issue.id,
                    "issue_subject": issue.subject,
                    "project_id": issue.project_id,
                    "estimated_hours": overrun.estimated,
                    "spent_hours": overrun.spent,
                    "ratio_percent": round(overrun.ratio, 1),
                    "overrun_percentage": overrun.overrun_percentage,
                    "threshold_percent": config.overrun_threshold,
                },
            )
        )

    return candidates
