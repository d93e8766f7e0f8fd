"""
Project Reports — Long-running tasks and high-spent-hours rollups per project.

Both reports are computed on demand from an entity snapshot and the current
compliance config; neither creates violations.

- Long-running tasks: open issues created more than `stale_task_months`
  months before the as-of instant.
- High spent hours: issues whose total logged hours, over their whole
  history, exceed `max_spent_hours`.
- Project overruns: estimated issues of one project whose logged hours are
  over the overrun threshold, whether or not anyone is assigned.
"""

from __future__ import annotations

from datetime import datetime

from timeguard.config import settings
from timeguard.core.dates import months_between, subtract_months
from timeguard.core.rules.overrun_task import measure
from timeguard.errors import NotFoundError, ValidationError
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import Issue
from timeguard.models.stats_models import (
    HighSpentPage,
    HighSpentProject,
    IssueOverrun,
    StaleTaskPage,
    StaleTaskProject,
)
from timeguard.store.entity_store import EntitySnapshot


def check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError(f"page must be >= 1 (got {page})", field="page")
    if not 1 <= limit <= settings.max_page_size:
        raise ValidationError(
            f"limit must be between 1 and {settings.max_page_size} (got {limit})",
            field="limit",
            allowed=(1, settings.max_page_size),
        )


def long_running_issues(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[Issue]:
    """Open issues created before the month-based cutoff, oldest first."""
    cutoff = subtract_months(as_of, config.stale_task_months)
    issues = [i for i in snapshot.issues.values() if i.is_open and i.created_on < cutoff]
    return sorted(issues, key=lambda i: (i.created_on, i.id))


def high_spent_issues(
    snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime
) -> dict[str, float]:
    """Issue id -> total spent hours, for issues above the cap."""
    result: dict[str, float] = {}
    for issue_id in snapshot.issues:
        spent = round(snapshot.spent_hours(issue_id, as_of), 2)
        if spent > config.max_spent_hours:
            result[issue_id] = spent
    return result


def projects_with_stale_tasks(
    snapshot: EntitySnapshot,
    config: ComplianceConfig,
    as_of: datetime,
    page: int = 1,
    limit: int | None = None,
) -> StaleTaskPage:
    limit = settings.default_page_size if limit is None else limit
    check_page(page, limit)

    by_project: dict[str, list[Issue]] = {}
    for issue in long_running_issues(snapshot, config, as_of):
        by_project.setdefault(issue.project_id, []).append(issue)

    rows: list[StaleTaskProject] = []
    for project_id, issues in by_project.items():
        project = snapshot.projects.get(project_id)
        oldest = issues[0].created_on
        rows.append(
            StaleTaskProject(
                project_id=project_id,
                project_name=project.name if project else "",
                manager_id=project.manager_id if project else None,
                stale_tasks_count=len(issues),
                oldest_stale_task=oldest,
                oldest_stale_task_months=months_between(oldest, as_of),
                issue_ids=[i.id for i in issues],
            )
        )

    rows.sort(key=lambda r: (r.project_name, r.project_id))
    offset = (page - 1) * limit
    return StaleTaskPage(items=rows[offset : offset + limit], page=page, limit=limit, total=len(rows))


def projects_with_high_spent_hours(
    snapshot: EntitySnapshot,
    config: ComplianceConfig,
    as_of: datetime,
    page: int = 1,
    limit: int | None = None,
) -> HighSpentPage:
    limit = settings.default_page_size if limit is None else limit
    check_page(page, limit)

    by_project: dict[str, dict[str, float]] = {}
    for issue_id, spent in high_spent_issues(snapshot, config, as_of).items():
        project_id = snapshot.issues[issue_id].project_id
        by_project.setdefault(project_id, {})[issue_id] = spent

    rows: list[HighSpentProject] = []
    for project_id, spent_by_issue in by_project.items():
        project = snapshot.projects.get(project_id)
        rows.append(
            HighSpentProject(
                project_id=project_id,
                project_name=project.name if project else "",
                manager_id=project.manager_id if project else None,
                high_spent_issues_count=len(spent_by_issue),
                max_spent_hours=max(spent_by_issue.values()),
                issue_ids=sorted(spent_by_issue),
            )
        )

    rows.sort(key=lambda r: (r.project_name, r.project_id))
    offset = (page - 1) * limit
    return HighSpentPage(items=rows[offset : offset + limit], page=page, limit=limit, total=len(rows))


def project_overruns(
    snapshot: EntitySnapshot, config: ComplianceConfig, project_id: str, as_of: datetime
) -> list[IssueOverrun]:
    """Overrun issues of one project, worst first."""
    if project_id not in snapshot.projects:
        raise NotFoundError(f"Project not found: {project_id}", {"id": project_id})

    rows: list[IssueOverrun] = []
    for issue in snapshot.issues.values():
        if issue.project_id != project_id:
            continue
        overrun = measure(snapshot, issue, config, as_of)
        if overrun is None:
            continue
        assignee = snapshot.users.get(issue.assignee_id) if issue.assignee_id else None
        rows.append(
            IssueOverrun(
                issue_id=issue.id,
                issue_subject=issue.subject,
                estimated_hours=overrun.estimated,
                spent_hours=overrun.spent,
                overrun_percentage=overrun.overrun_percentage,
                assignee_id=issue.assignee_id,
                assignee_name=assignee.name if assignee else None,
            )
        )

    rows.sort(key=lambda r: (-r.overrun_percentage, r.issue_id))
    return rows
