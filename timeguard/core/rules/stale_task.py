"""
Stale Task Rule — Detects open issues nobody is working on.

An issue's last activity is the later of its most recent work date and its
creation date. Triggers when that activity lies before the
`stale_task_days` cutoff, so an issue younger than the window is never stale.
Closed issues, unassigned issues, issues in archived/closed projects and
issues assigned to inactive users are skipped.
"""

from __future__ import annotations

from datetime import datetime

from timeguard.core.dates import days_back
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.STALE_TASK


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag open issues idle for longer than the configured window."""
    candidates: list[ViolationCandidate] = []
    today = as_of.date()
    cutoff = days_back(as_of, config.stale_task_days)

    for issue in snapshot.issues.values():
        if not issue.is_open or not issue.assignee_id or issue.created_on > as_of:
            continue
        project = snapshot.project_of(issue)
        if project is not None and not project.is_active:
            continue
        assignee = snapshot.users.get(issue.assignee_id)
        if assignee is not None and not assignee.is_active:
            continue

        work_dates = [
            e.spent_on for e in snapshot.entries_for_issue(issue.id, as_of) if e.spent_on <= today
        ]
        last_entry = max(work_dates, default=None)
        created = issue.created_on.date()
        last_activity = max(last_entry, created) if last_entry else created
        if last_activity >= cutoff:
            continue

        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=issue.assignee_id,
                severity=Severity.MEDIUM,
                subject_id=issue.id,
                anchor=last_activity.isoformat(),
                metadata={
                    "issue_id": issue.id,
                    "issue_subject": issue.subject,
                    "project_id": issue.project_id,
                    "threshold_days": config.stale_task_days,
                    "days_since_activity": (today - last_activity).days,
                    "last_entry_date": last_entry.isoformat() if last_entry else None,
                    "issue_created_on": issue.created_on.isoformat(),
                },
            )
        )

    return candidates
