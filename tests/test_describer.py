"""
Tests for the violation describer — one readable line per kind.
"""

from datetime import datetime, timezone

from timeguard.core.describer import FORMATTERS, describe, to_view, truncate
from timeguard.models.violation_models import Severity, Violation, ViolationKind


def _violation(kind, metadata):
    return Violation(
        id="v1",
        kind=kind,
        user_id="u1",
        severity=Severity.MEDIUM,
        detected_at=datetime(2026, 3, 13, tzinfo=timezone.utc),
        dedup_key="k",
        anchor="a",
        metadata=metadata,
    )


def test_every_kind_has_a_formatter():
    assert set(FORMATTERS) == set(ViolationKind)


def test_overrun_description():
    v = _violation(
        ViolationKind.OVERRUN_TASK,
        {"issue_subject": "Build login", "estimated_hours": 10, "spent_hours": 16, "overrun_percentage": 60},
    )

    assert describe(v) == 'Task: "Build login" - Spent 16.0h vs 10.0h estimated (+60%)'


def test_partial_entry_description_variants():
    with_issue = _violation(
        ViolationKind.PARTIAL_ENTRY,
        {"hours": 12.5, "project_name": "Apollo", "issue_subject": "API", "week_start": "2026-03-09"},
    )
    project_only = _violation(ViolationKind.PARTIAL_ENTRY, {"hours": 3, "project_name": "Apollo"})
    bare = _violation(ViolationKind.PARTIAL_ENTRY, {"hours": 3})

    assert describe(with_issue) == "API (Apollo) - 12.50h/week (Week of 2026-03-09)"
    assert describe(project_only) == "Apollo - 3.00h/week"
    assert describe(bare) == "3.00 hours/week"


def test_missing_metadata_degrades_gracefully():
    for kind in ViolationKind:
        assert describe(_violation(kind, {}))


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("x" * 60, 50) == "x" * 50 + "..."


def test_to_view_keeps_fields():
    v = _violation(ViolationKind.LATE_ENTRY, {"days_late": 5, "spent_on": "2026-03-03"})

    view = to_view(v)

    assert view.id == v.id
    assert view.kind == v.kind
    assert view.description == "Entry logged 5 days late (work done: 2026-03-03)"
