"""
Statistics Data Models — Dashboard overview, trend points and report rows.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Overview(_WireModel):
    """Aggregate counters for the dashboard."""

    as_of: datetime
    compliance_rate: float = Field(..., ge=0.0, le=100.0, description="Percent of active users with a recent entry")
    open_by_kind: dict[str, int] = Field(default_factory=dict)
    flagged_managers: int = 0
    missing_entries: int = 0
    total_users: int = 0
    total_projects: int = 0
    total_issues: int = 0
    total_time_entries: int = 0
    total_open_violations: int = 0
    issues_without_estimates: int = 0
    projects_with_issues_without_estimates: int = 0
    projects_with_stale_tasks: int = 0
    high_spent_issues: int = 0


class TrendPoint(_WireModel):
    """Compliance rate as it stood at the end of one day."""

    day: date = Field(..., alias="date")
    compliance_rate: float = Field(..., ge=0.0, le=100.0)
    users_with_entries: int = 0
    total_users: int = 0


class ComplianceScore(_WireModel):
    """Per-user compliance score derived from open violations."""

    user_id: str
    score: int = Field(..., ge=0, le=100)
    open_violations: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)


class ManagerScorecard(_WireModel):
    """Team-level view for one manager."""

    manager_id: str
    manager_name: str = ""
    team_size: int = 0
    project_count: int = 0
    compliance_rate: float = 0.0
    open_violations: int = 0
    team_members: list[str] = Field(default_factory=list)


class TeamMemberStatus(_WireModel):
    """One report of a manager, with their most recent work date."""

    id: str
    name: str = ""
    email: str = ""
    has_recent_entries: bool = False
    last_time_entry: date | None = None


class ManagedProjectSummary(_WireModel):
    """Estimate hygiene for one project a manager owns."""

    id: str
    name: str = ""
    issue_count: int = 0
    issues_without_estimates: int = 0


class TeamCompliance(_WireModel):
    """Detailed compliance view of a manager's team and projects."""

    manager_id: str
    manager_name: str = ""
    team_compliance_rate: float = 0.0
    missing_entries: int = 0
    tasks_overrun: int = 0
    total_violations: int = Field(0, description="Open violations held by team members")
    issues_without_estimates: int = 0
    team_members: list[TeamMemberStatus] = Field(default_factory=list)
    managed_projects: list[ManagedProjectSummary] = Field(default_factory=list)


class IssueOverrun(_WireModel):
    """An estimated issue whose logged hours are over the overrun threshold."""

    issue_id: str
    issue_subject: str = ""
    estimated_hours: float
    spent_hours: float
    overrun_percentage: int
    assignee_id: str | None = None
    assignee_name: str | None = None


class StaleTaskProject(_WireModel):
    """A project holding open issues older than the long-running cutoff."""

    project_id: str
    project_name: str = ""
    manager_id: str | None = None
    stale_tasks_count: int = 0
    oldest_stale_task: datetime | None = None
    oldest_stale_task_months: int = 0
    issue_ids: list[str] = Field(default_factory=list)


class HighSpentProject(_WireModel):
    """A project holding issues whose total logged hours exceed the cap."""

    project_id: str
    project_name: str = ""
    manager_id: str | None = None
    high_spent_issues_count: int = 0
    max_spent_hours: float = 0.0
    issue_ids: list[str] = Field(default_factory=list)


class StaleTaskPage(_WireModel):
    """Paginated long-running task report."""

    items: list[StaleTaskProject] = Field(default_factory=list)
    page: int
    limit: int
    total: int


class HighSpentPage(_WireModel):
    """Paginated high-spent-hours report."""

    items: list[HighSpentProject] = Field(default_factory=list)
    page: int
    limit: int
    total: int
