"""
Test fixtures shared across all TimeGuard tests.

All scenarios are pinned to a fixed as-of instant, Friday 2026-03-13 12:00 UTC,
so windows and ISO weeks are reproducible.
"""

import itertools
from datetime import date, datetime, time, timedelta, timezone

import pytest

from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import Issue, Project, TimeEntry, User, UserRole
from timeguard.store.entity_store import EntitySnapshot

AS_OF = datetime(2026, 3, 13, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def days_ago():
    """days_ago(n) -> the calendar date n days before the as-of date."""

    def _days_ago(n: int) -> date:
        return AS_OF.date() - timedelta(days=n)

    return _days_ago


@pytest.fixture
def config():
    return ComplianceConfig()


@pytest.fixture
def team():
    """One manager with two reports, plus a locked account."""
    return [
        User(id="m1", name="Mia Manager", role=UserRole.MANAGER),
        User(id="u1", name="Alice", manager_id="m1"),
        User(id="u2", name="Bob", manager_id="m1"),
        User(id="u3", name="Carl", manager_id="m1", status="locked"),
    ]


@pytest.fixture
def projects():
    return [
        Project(id="p1", name="Apollo", manager_id="m1"),
        Project(id="p2", name="Legacy", status="archived", manager_id="m1"),
    ]


@pytest.fixture
def make_entry():
    """
    make_entry(user_id, spent_on, hours=8.0, created_on=None, ...) -> TimeEntry

    created_on defaults to 18:00 UTC on the work date (logged on time).
    """
    ids = itertools.count(1)

    def _make(
        user_id: str,
        spent_on: date,
        hours: float = 8.0,
        created_on: datetime | None = None,
        project_id: str = "p1",
        issue_id: str | None = "i1",
    ) -> TimeEntry:
        return TimeEntry(
            id=f"te{next(ids)}",
            user_id=user_id,
            project_id=project_id,
            issue_id=issue_id,
            hours=hours,
            spent_on=spent_on,
            created_on=created_on or datetime.combine(spent_on, time(18, 0), tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def make_issue(days_ago):
    """make_issue(id, created_days_ago=30, **fields) -> Issue"""

    def _make(issue_id: str, created_days_ago: int = 30, **fields) -> Issue:
        fields.setdefault("project_id", "p1")
        fields.setdefault("subject", f"Task {issue_id}")
        fields.setdefault("assignee_id", "u1")
        created = datetime.combine(days_ago(created_days_ago), time(9, 0), tzinfo=timezone.utc)
        return Issue(id=issue_id, created_on=created, **fields)

    return _make


@pytest.fixture
def build_snapshot(team, projects):
    """build_snapshot(entries=(), issues=(), users=None, projects=None) -> EntitySnapshot"""

    def _build(entries=(), issues=(), users=None, project_list=None) -> EntitySnapshot:
        return EntitySnapshot.build(
            users=team if users is None else users,
            projects=projects if project_list is None else project_list,
            issues=issues,
            time_entries=entries,
        )

    return _build
