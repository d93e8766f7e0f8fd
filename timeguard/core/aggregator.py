"""
Compliance Aggregator — Turns open violations and entity counts into metrics.

Compliance Rate = active users with an entry in the missing-entry window
                  / active users × 100

User Score = 100 − Σ penalty(severity) over the user's open violations,
             floored at 0 (high=10, medium=5, low=2)

Every function is pure: it reads one entity snapshot, one config snapshot
and a list of open violations, all taken at one as-of instant.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta

from timeguard.core.dates import days_back, end_of_day
from timeguard.core.reports import high_spent_issues, long_running_issues
from timeguard.core.rules.overrun_task import measure
from timeguard.errors import NotFoundError, ValidationError
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import User, UserRole
from timeguard.models.stats_models import (
    ComplianceScore,
    ManagedProjectSummary,
    ManagerScorecard,
    Overview,
    TeamCompliance,
    TeamMemberStatus,
    TrendPoint,
)
from timeguard.models.violation_models import (
    SEVERITY_PENALTIES,
    Severity,
    Violation,
    ViolationKind,
    ViolationStatus,
)
from timeguard.store.entity_store import EntitySnapshot

MIN_TREND_DAYS = 1
MAX_TREND_DAYS = 365


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def users_with_recent_entries(
    snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime
) -> set[str]:
    """Active users holding an entry inside the missing-entry window."""
    today = as_of.date()
    cutoff = days_back(as_of, config.missing_entry_days)
    active = {u.id for u in snapshot.active_users()}
    return {
        e.user_id
        for e in snapshot.visible_entries(as_of)
        if e.user_id in active and cutoff <= e.spent_on <= today
    }


def compliance_rate(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> float:
    total = len(snapshot.active_users())
    return _rate(len(users_with_recent_entries(snapshot, config, as_of)), total)


def flagged_managers(snapshot: EntitySnapshot, violations: list[Violation]) -> set[str]:
    """
    Managers owning at least one project with an open violation attributable
    to their team.

    A violation is attributed to a manager when its user reports to that
    manager, or when it references one of the manager's projects (directly
    or through an issue).
    """
    owners = {p.manager_id for p in snapshot.projects.values() if p.manager_id}
    flagged: set[str] = set()

    for v in violations:
        if v.status != ViolationStatus.OPEN:
            continue
        user = snapshot.users.get(v.user_id)
        if user and user.manager_id in owners:
            flagged.add(user.manager_id)

        project_id = v.metadata.get("project_id")
        if project_id is None and v.subject_id in snapshot.issues:
            project_id = snapshot.issues[v.subject_id].project_id
        project = snapshot.projects.get(project_id) if project_id else None
        if project and project.manager_id:
            flagged.add(project.manager_id)

    return flagged


def overview(
    snapshot: EntitySnapshot,
    config: ComplianceConfig,
    violations: list[Violation],
    as_of: datetime,
) -> Overview:
    """
    Dashboard counters.

    Args:
        snapshot: Entity view at `as_of`.
        config: Threshold snapshot (missing-entry window, report cutoffs).
        violations: Currently open violations.
        as_of: Instant the counters describe.
    """
    open_violations = [v for v in violations if v.status == ViolationStatus.OPEN]
    by_kind = Counter(v.kind for v in open_violations)
    active_users = snapshot.active_users()
    with_entries = users_with_recent_entries(snapshot, config, as_of)

    # ── Estimate hygiene ──
    no_estimate = [i for i in snapshot.issues.values() if not i.has_estimate]
    active_projects = {pid for pid, p in snapshot.projects.items() if p.is_active}
    projects_no_estimate = {i.project_id for i in no_estimate} & active_projects

    # ── Project reports ──
    stale_projects = {i.project_id for i in long_running_issues(snapshot, config, as_of)}
    high_spent = high_spent_issues(snapshot, config, as_of)

    return Overview(
        as_of=as_of,
        compliance_rate=_rate(len(with_entries), len(active_users)),
        open_by_kind={kind.value: by_kind.get(kind, 0) for kind in ViolationKind},
        flagged_managers=len(flagged_managers(snapshot, open_violations)),
        missing_entries=len(active_users) - len(with_entries),
        total_users=len(active_users),
        total_projects=len(active_projects),
        total_issues=len(snapshot.issues),
        total_time_entries=len(snapshot.visible_entries(as_of)),
        total_open_violations=len(open_violations),
        issues_without_estimates=len(no_estimate),
        projects_with_issues_without_estimates=len(projects_no_estimate),
        projects_with_stale_tasks=len(stale_projects),
        high_spent_issues=len(high_spent),
    )


def trends(snapshot: EntitySnapshot, as_of: datetime, days: int = 7) -> list[TrendPoint]:
    """
    Daily compliance rate for the `days` days ending at the as-of date.

    Each point only sees entries worked on that day and already created by
    the end of that day, so historical points are not recomputed against
    later data.
    """
    if isinstance(days, bool) or not MIN_TREND_DAYS <= days <= MAX_TREND_DAYS:
        raise ValidationError(
            f"days must be between {MIN_TREND_DAYS} and {MAX_TREND_DAYS} (got {days})",
            field="days",
            allowed=(MIN_TREND_DAYS, MAX_TREND_DAYS),
        )

    active = {u.id for u in snapshot.active_users()}
    today = as_of.date()
    first = today - timedelta(days=days - 1)

    logged: dict[date, set[str]] = {}
    for entry in snapshot.visible_entries(as_of):
        if entry.user_id not in active or not first <= entry.spent_on <= today:
            continue
        if entry.created_on <= end_of_day(entry.spent_on):
            logged.setdefault(entry.spent_on, set()).add(entry.user_id)

    points: list[TrendPoint] = []
    for offset in range(days):
        day = first + timedelta(days=offset)
        users = len(logged.get(day, ()))
        points.append(
            TrendPoint(
                day=day,
                compliance_rate=_rate(users, len(active)),
                users_with_entries=users,
                total_users=len(active),
            )
        )
    return points


def compliance_score(snapshot: EntitySnapshot, violations: list[Violation], user_id: str) -> ComplianceScore:
    """Score one user from their open violations."""
    if user_id not in snapshot.users:
        raise NotFoundError(f"User not found: {user_id}", {"id": user_id})

    mine = [v for v in violations if v.user_id == user_id and v.status == ViolationStatus.OPEN]
    severities = Counter(v.severity for v in mine)
    penalty = sum(SEVERITY_PENALTIES[s] * n for s, n in severities.items())

    return ComplianceScore(
        user_id=user_id,
        score=max(0, 100 - penalty),
        open_violations=len(mine),
        by_severity={s.value: severities.get(s, 0) for s in Severity},
    )


def _manager_and_team(snapshot: EntitySnapshot, manager_id: str) -> tuple[User, list[User]]:
    """The manager record and their active reports, by id."""
    manager = snapshot.users.get(manager_id)
    if manager is None or manager.role != UserRole.MANAGER:
        raise NotFoundError(f"Manager not found: {manager_id}", {"id": manager_id})

    team = sorted(
        (u for u in snapshot.users.values() if u.manager_id == manager_id and u.is_active),
        key=lambda u: u.id,
    )
    return manager, team


def manager_scorecard(
    snapshot: EntitySnapshot,
    config: ComplianceConfig,
    violations: list[Violation],
    manager_id: str,
    as_of: datetime,
) -> ManagerScorecard:
    """Team size, managed projects and team compliance for one manager."""
    manager, team = _manager_and_team(snapshot, manager_id)
    team_ids = {u.id for u in team}
    with_entries = users_with_recent_entries(snapshot, config, as_of) & team_ids

    return ManagerScorecard(
        manager_id=manager_id,
        manager_name=manager.name,
        team_size=len(team),
        project_count=sum(1 for p in snapshot.projects.values() if p.manager_id == manager_id),
        compliance_rate=_rate(len(with_entries), len(team)),
        open_violations=sum(
            1 for v in violations if v.user_id in team_ids and v.status == ViolationStatus.OPEN
        ),
        team_members=[u.id for u in team],
    )


def team_compliance(
    snapshot: EntitySnapshot,
    config: ComplianceConfig,
    violations: list[Violation],
    manager_id: str,
    as_of: datetime,
) -> TeamCompliance:
    """
    Team and project hygiene for one manager.

    Team figures cover the manager's active reports; overrun and estimate
    counts cover every issue in projects the manager owns.
    """
    manager, team = _manager_and_team(snapshot, manager_id)
    team_ids = {u.id for u in team}
    with_entries = users_with_recent_entries(snapshot, config, as_of) & team_ids

    members = []
    for user in team:
        entries = snapshot.entries_for_user(user.id, as_of)
        members.append(
            TeamMemberStatus(
                id=user.id,
                name=user.name,
                email=user.email,
                has_recent_entries=user.id in with_entries,
                last_time_entry=max((e.spent_on for e in entries), default=None),
            )
        )

    managed = sorted(
        (p for p in snapshot.projects.values() if p.manager_id == manager_id),
        key=lambda p: (p.name, p.id),
    )
    issues_by_project = {p.id: [] for p in managed}
    for issue in snapshot.issues.values():
        if issue.project_id in issues_by_project:
            issues_by_project[issue.project_id].append(issue)

    projects = []
    tasks_overrun = 0
    for project in managed:
        issues = issues_by_project[project.id]
        tasks_overrun += sum(1 for i in issues if measure(snapshot, i, config, as_of) is not None)
        projects.append(
            ManagedProjectSummary(
                id=project.id,
                name=project.name,
                issue_count=len(issues),
                issues_without_estimates=sum(1 for i in issues if not i.has_estimate),
            )
        )

    return TeamCompliance(
        manager_id=manager_id,
        manager_name=manager.name,
        team_compliance_rate=_rate(len(with_entries), len(team)),
        missing_entries=len(team) - len(with_entries),
        tasks_overrun=tasks_overrun,
        total_violations=sum(
            1 for v in violations if v.user_id in team_ids and v.status == ViolationStatus.OPEN
        ),
        issues_without_estimates=sum(p.issues_without_estimates for p in projects),
        team_members=members,
        managed_projects=projects,
    )
