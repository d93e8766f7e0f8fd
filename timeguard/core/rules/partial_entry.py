"""
Partial Entry Rule — Detects weeks with too few hours on a project/issue.

Entries of active users are grouped per user, project, issue and ISO week,
for every week that overlaps the last seven days. Each group is compared
against `partial_entry_weekly_hours`, prorated by the working days of that
week already elapsed at the as-of date (a finished week owes the full floor).

Severity is medium when the group logged less than half its floor, low
otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from timeguard.core.dates import days_back, week_end, week_start, working_days_between
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.PARTIAL_ENTRY

LOOKBACK_DAYS = 7


@dataclass
class _WeekGroup:
    user_id: str
    project_id: str
    issue_id: str | None
    week_start: date
    hours: float = 0.0
    entry_ids: list[str] = field(default_factory=list)


def expected_hours(config: ComplianceConfig, start: date, today: date) -> float:
    """Prorated weekly floor for the ISO week starting at `start`."""
    per_week = config.working_days.count
    if per_week == 0:
        return 0.0
    elapsed = working_days_between(start, min(week_end(start), today), config.working_days)
    return round(config.partial_entry_weekly_hours * elapsed / per_week, 2)


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag user/project/issue weeks below the weekly floor."""
    candidates: list[ViolationCandidate] = []
    today = as_of.date()
    first_week = week_start(days_back(as_of, LOOKBACK_DAYS))
    active_ids = {u.id for u in snapshot.active_users()}

    groups: dict[tuple[str, str, str | None, date], _WeekGroup] = {}
    for entry in snapshot.visible_entries(as_of):
        if entry.user_id not in active_ids or not first_week <= entry.spent_on <= today:
            continue
        ws = week_start(entry.spent_on)
        key = (entry.user_id, entry.project_id, entry.issue_id, ws)
        group = groups.get(key)
        if group is None:
            group = groups[key] = _WeekGroup(entry.user_id, entry.project_id, entry.issue_id, ws)
        group.hours += entry.hours
        group.entry_ids.append(entry.id)

    for key in sorted(groups, key=lambda k: (k[0], k[1], k[2] or "", k[3])):
        group = groups[key]
        floor = expected_hours(config, group.week_start, today)
        hours = round(group.hours, 2)
        if floor <= 0 or hours >= floor:
            continue

        project = snapshot.projects.get(group.project_id)
        issue = snapshot.issues.get(group.issue_id) if group.issue_id else None
        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=group.user_id,
                severity=Severity.MEDIUM if hours < floor / 2 else Severity.LOW,
                subject_id=f"{group.project_id}:{group.issue_id or 'no-issue'}",
                anchor=group.week_start.isoformat(),
                metadata={
                    "hours": hours,
                    "expected_hours": floor,
                    "weekly_floor": config.partial_entry_weekly_hours,
                    "week_start": group.week_start.isoformat(),
                    "project_id": group.project_id,
                    "project_name": project.name if project else None,
                    "issue_id": group.issue_id,
                    "issue_subject": issue.subject if issue else None,
                    "entries_count": len(group.entry_ids),
                },
            )
        )

    return candidates
