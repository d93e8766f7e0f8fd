"""
Tests for the Aggregator and project reports — rates, trends, scores.
"""

from datetime import datetime, time, timezone

import pytest

from timeguard.core import aggregator, reports
from timeguard.errors import NotFoundError, ValidationError
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.violation_models import Severity, Violation, ViolationKind, ViolationStatus


def _violation(vid, user_id, kind=ViolationKind.MISSING_ENTRY, severity=Severity.HIGH, status=ViolationStatus.OPEN, **extra):
    return Violation(
        id=vid,
        kind=kind,
        user_id=user_id,
        severity=severity,
        status=status,
        detected_at=datetime(2026, 3, 13, tzinfo=timezone.utc),
        dedup_key=f"{kind.value}|{user_id}|-|{vid}",
        anchor=vid,
        **extra,
    )


# ── Trends ──


def test_trend_points_follow_daily_values(build_snapshot, make_entry, days_ago, as_of):
    # Days 1–3 of the window: both reports log. Days 4–7: only Alice does.
    entries = []
    for n in range(6, -1, -1):
        entries.append(make_entry("u1", days_ago(n), created_on=datetime.combine(days_ago(n), time(8, 0), tzinfo=timezone.utc)))
        if n >= 4:
            entries.append(make_entry("u2", days_ago(n)))
    users_without_manager = [u for u in build_snapshot().users.values() if u.id != "m1"]
    snapshot = build_snapshot(entries, users=users_without_manager)

    points = aggregator.trends(snapshot, as_of, 7)

    assert [p.day for p in points] == [days_ago(n) for n in range(6, -1, -1)]
    assert [p.compliance_rate for p in points] == [100.0, 100.0, 100.0, 50.0, 50.0, 50.0, 50.0]
    assert all(p.total_users == 2 for p in points)


def test_trend_ignores_entries_logged_after_the_day(build_snapshot, make_entry, days_ago, as_of):
    late = make_entry("u1", days_ago(3), created_on=datetime.combine(days_ago(1), time(9, 0), tzinfo=timezone.utc))
    on_time = make_entry("u2", days_ago(3))

    points = aggregator.trends(build_snapshot([late, on_time]), as_of, 7)

    by_day = {p.day: p for p in points}
    assert by_day[days_ago(3)].users_with_entries == 1


@pytest.mark.parametrize("days", [0, -3, 366])
def test_trend_window_validated(build_snapshot, as_of, days):
    with pytest.raises(ValidationError):
        aggregator.trends(build_snapshot(), as_of, days)


def test_trend_defaults_to_one_point_per_day(build_snapshot, as_of):
    points = aggregator.trends(build_snapshot(), as_of, 30)

    assert len(points) == 30
    assert points[-1].day == as_of.date()
    assert all(p.compliance_rate == 0.0 for p in points)


# ── Overview ──


def test_overview_counts(build_snapshot, make_entry, make_issue, days_ago, config, as_of):
    issues = [
        make_issue("i1", estimated_hours=10),
        make_issue("i2", created_days_ago=90),
        make_issue("i3", project_id="p2", estimated_hours=0),
    ]
    entries = [make_entry("u1", days_ago(2))]
    violations = [
        _violation("v1", "u2"),
        _violation("v2", "m1"),
        _violation("v3", "u1", ViolationKind.ROUND_NUMBERS, Severity.LOW, status=ViolationStatus.RESOLVED),
    ]

    result = aggregator.overview(build_snapshot(entries, issues), config, violations, as_of)

    assert result.total_users == 3
    assert result.compliance_rate == pytest.approx(33.3)
    assert result.missing_entries == 2
    assert result.total_open_violations == 2
    assert set(result.open_by_kind) == {k.value for k in ViolationKind}
    assert result.open_by_kind["missing_entry"] == 2
    assert result.open_by_kind["round_numbers"] == 0
    assert result.flagged_managers == 1
    assert result.total_projects == 1
    assert result.issues_without_estimates == 2
    # i3 lives in an archived project
    assert result.projects_with_issues_without_estimates == 1
    assert result.projects_with_stale_tasks == 1


def test_flagged_managers_via_project_reference(build_snapshot, make_issue):
    snapshot = build_snapshot(issues=[make_issue("i7", project_id="p1", assignee_id="x9")])
    stale = _violation("v1", "x9", ViolationKind.STALE_TASK, Severity.MEDIUM, subject_id="i7")

    assert aggregator.flagged_managers(snapshot, [stale]) == {"m1"}


def test_compliance_rate_with_no_active_users(build_snapshot, config, as_of):
    assert aggregator.compliance_rate(build_snapshot(users=[]), config, as_of) == 0.0


# ── Scores ──


def test_compliance_score_arithmetic(build_snapshot):
    violations = [
        _violation("v1", "u1", severity=Severity.HIGH),
        _violation("v2", "u1", ViolationKind.STALE_TASK, Severity.MEDIUM),
        _violation("v3", "u1", ViolationKind.ROUND_NUMBERS, Severity.LOW),
        _violation("v4", "u1", ViolationKind.LATE_ENTRY, Severity.HIGH, status=ViolationStatus.IGNORED),
        _violation("v5", "u2", severity=Severity.HIGH),
    ]

    score = aggregator.compliance_score(build_snapshot(), violations, "u1")

    assert score.score == 83
    assert score.open_violations == 3
    assert score.by_severity == {"high": 1, "medium": 1, "low": 1}


def test_compliance_score_floors_at_zero(build_snapshot):
    violations = [_violation(f"v{i}", "u1") for i in range(12)]

    assert aggregator.compliance_score(build_snapshot(), violations, "u1").score == 0


def test_compliance_score_unknown_user(build_snapshot):
    with pytest.raises(NotFoundError):
        aggregator.compliance_score(build_snapshot(), [], "ghost")


def test_manager_scorecard(build_snapshot, make_entry, days_ago, config, as_of):
    snapshot = build_snapshot([make_entry("u1", days_ago(1))])
    violations = [_violation("v1", "u2"), _violation("v2", "m1")]

    card = aggregator.manager_scorecard(snapshot, config, violations, "m1", as_of)

    assert card.manager_name == "Mia Manager"
    assert card.team_size == 2
    assert card.team_members == ["u1", "u2"]
    assert card.project_count == 2
    assert card.compliance_rate == 50.0
    assert card.open_violations == 1


def test_manager_scorecard_requires_manager(build_snapshot, config, as_of):
    with pytest.raises(NotFoundError):
        aggregator.manager_scorecard(build_snapshot(), config, [], "u1", as_of)


# ── Reports ──


def test_projects_with_stale_tasks(build_snapshot, make_issue, config, as_of):
    issues = [
        make_issue("i1", created_days_ago=120),
        make_issue("i2", created_days_ago=70),
        make_issue("i3", created_days_ago=10),
        make_issue("i4", created_days_ago=200, status="Resolved"),
    ]

    page = reports.projects_with_stale_tasks(build_snapshot(issues=issues), config, as_of)

    assert page.total == 1
    row = page.items[0]
    assert row.project_name == "Apollo"
    assert row.stale_tasks_count == 2
    assert row.issue_ids == ["i1", "i2"]
    assert row.oldest_stale_task_months == 4


def test_projects_with_high_spent_hours(build_snapshot, make_issue, make_entry, days_ago, as_of):
    issues = [make_issue("i1"), make_issue("i2")]
    entries = [make_entry("u1", days_ago(n), hours=8.0, issue_id="i1") for n in range(1, 8)]
    entries.append(make_entry("u1", days_ago(1), hours=8.0, issue_id="i2"))
    config = ComplianceConfig(max_spent_hours=50)

    page = reports.projects_with_high_spent_hours(build_snapshot(entries, issues), config, as_of)

    assert page.total == 1
    assert page.items[0].issue_ids == ["i1"]
    assert page.items[0].max_spent_hours == 56.0


def test_report_pagination_validated(build_snapshot, config, as_of):
    with pytest.raises(ValidationError):
        reports.projects_with_stale_tasks(build_snapshot(), config, as_of, page=0)
    with pytest.raises(ValidationError):
        reports.projects_with_high_spent_hours(build_snapshot(), config, as_of, limit=10_000)


def test_long_running_cutoff_follows_months(build_snapshot, make_issue, as_of):
    snapshot = build_snapshot(issues=[make_issue("i1", created_days_ago=45)])

    assert reports.long_running_issues(snapshot, ComplianceConfig(stale_task_months=1), as_of)
    assert not reports.long_running_issues(snapshot, ComplianceConfig(stale_task_months=2), as_of)


def test_project_overruns(build_snapshot, make_issue, make_entry, days_ago, config, as_of):
    issues = [
        make_issue("i1", estimated_hours=10),
        make_issue("i2", estimated_hours=4, assignee_id=None),
        make_issue("i3"),
    ]
    entries = [make_entry("u1", days_ago(n), hours=8.0, issue_id="i1") for n in (2, 1)]
    entries += [make_entry("u2", days_ago(n), hours=4.0, issue_id=iid) for n in (3, 2, 1) for iid in ("i2", "i3")]

    rows = reports.project_overruns(build_snapshot(entries, issues), config, "p1", as_of)

    assert [r.issue_id for r in rows] == ["i2", "i1"]
    assert rows[0].overrun_percentage == 200
    assert rows[0].assignee_name is None
    assert (rows[1].estimated_hours, rows[1].spent_hours, rows[1].overrun_percentage) == (10.0, 16.0, 60)
    assert rows[1].assignee_name == "Alice"


def test_project_overruns_unknown_project(build_snapshot, config, as_of):
    with pytest.raises(NotFoundError):
        reports.project_overruns(build_snapshot(), config, "nope", as_of)


# ── Team compliance ──


def test_team_compliance(build_snapshot, make_issue, make_entry, days_ago, config, as_of):
    issues = [
        make_issue("i1", estimated_hours=2),
        make_issue("i2"),
        make_issue("i3", project_id="p2", estimated_hours=10),
    ]
    entries = [make_entry("u1", days_ago(2), hours=4.0)]
    violations = [_violation("v1", "u2"), _violation("v2", "u3")]

    team = aggregator.team_compliance(build_snapshot(entries, issues), config, violations, "m1", as_of)

    assert team.team_compliance_rate == 50.0
    assert team.missing_entries == 1
    assert team.tasks_overrun == 1
    assert team.total_violations == 1
    assert team.issues_without_estimates == 1
    alice, bob = team.team_members
    assert (alice.id, alice.has_recent_entries, alice.last_time_entry) == ("u1", True, days_ago(2))
    assert (bob.id, bob.has_recent_entries, bob.last_time_entry) == ("u2", False, None)
    assert [(p.name, p.issue_count, p.issues_without_estimates) for p in team.managed_projects] == [
        ("Apollo", 2, 1),
        ("Legacy", 1, 0),
    ]


def test_team_compliance_requires_manager(build_snapshot, config, as_of):
    with pytest.raises(NotFoundError):
        aggregator.team_compliance(build_snapshot(), config, [], "u1", as_of)
