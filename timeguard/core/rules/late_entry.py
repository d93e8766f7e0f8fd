"""
Late Entry Rule — Detects time logged long after the work was done.

Triggers when `created_on.date - spent_on` exceeds `late_entry_days` for an
entry whose work date lies within the last `late_entry_check_days` days.
Entries logged before their work date are never late.
"""

from __future__ import annotations

from datetime import datetime

from timeguard.core.dates import days_back
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.LATE_ENTRY

# Beyond this many days late the violation is high severity.
HIGH_SEVERITY_DAYS = 7


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag each entry logged more than the allowed number of days late."""
    candidates: list[ViolationCandidate] = []
    today = as_of.date()
    window_start = days_back(as_of, config.late_entry_check_days)

    for entry in snapshot.visible_entries(as_of):
        if not window_start <= entry.spent_on <= today:
            continue

        days_late = (entry.created_on.date() - entry.spent_on).days
        if days_late <= config.late_entry_days:
            continue

        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=entry.user_id,
                severity=Severity.HIGH if days_late > HIGH_SEVERITY_DAYS else Severity.MEDIUM,
                subject_id=entry.issue_id or entry.project_id,
                anchor=entry.id,
                metadata={
                    "entry_id": entry.id,
                    "days_late": days_late,
                    "threshold_days": config.late_entry_days,
                    "spent_on": entry.spent_on.isoformat(),
                    "created_on": entry.created_on.isoformat(),
                    "hours": entry.hours,
                    "project_id": entry.project_id,
                    "issue_id": entry.issue_id,
                },
            )
        )

    return candidates
