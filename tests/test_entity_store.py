"""
Tests for the Entity Store and date helpers.
"""

import json
from datetime import date, datetime, timezone

from timeguard.core.dates import (
    days_back,
    months_between,
    subtract_months,
    week_start,
    working_days_between,
)
from timeguard.models.config_models import WorkingDays
from timeguard.models.entity_models import Project, User
from timeguard.store.entity_store import EntityStore


def test_snapshot_is_reused_until_write(team, make_entry, days_ago):
    store = EntityStore()
    store.replace(users=team, time_entries=[make_entry("u1", days_ago(1))])

    first = store.snapshot()
    assert store.snapshot() is first

    store.upsert_time_entries([make_entry("u2", days_ago(2))])
    second = store.snapshot()

    assert second is not first
    assert len(first.time_entries) == 1
    assert len(second.time_entries) == 2
    assert second.revision > first.revision


def test_ingestion_upserts_replace_by_id(team, projects, make_issue):
    store = EntityStore()
    store.replace(users=team, projects=projects, issues=[make_issue("i1")])
    revision = store.revision

    assert store.upsert_users([team[1].model_copy(update={"status": "locked"}), User(id="u9", name="Nina")]) == 2
    assert store.upsert_projects([Project(id="p3", name="Zephyr")]) == 1
    assert store.upsert_issues([make_issue("i1", status="Closed")]) == 1
    assert store.upsert_issues([]) == 0

    snapshot = store.snapshot()
    assert store.revision == revision + 3
    assert not snapshot.users["u1"].is_active
    assert snapshot.users["u9"].name == "Nina"
    assert set(snapshot.projects) == {"p1", "p2", "p3"}
    assert not snapshot.issues["i1"].is_open


def test_delete_time_entries(team, make_entry, days_ago):
    store = EntityStore()
    entry = make_entry("u1", days_ago(1))
    store.replace(users=team, time_entries=[entry])

    assert store.delete_time_entries([entry.id, "missing"]) == 1
    assert store.snapshot().time_entries == ()


def test_snapshot_indexes_and_visibility(build_snapshot, make_entry, days_ago, as_of):
    early = make_entry("u1", days_ago(2), hours=3.0)
    future = make_entry("u1", days_ago(1), hours=5.0, created_on=datetime(2026, 3, 20, tzinfo=timezone.utc))
    snapshot = build_snapshot([future, early])

    assert [e.id for e in snapshot.entries_for_user("u1")] == [early.id, future.id]
    assert snapshot.entries_for_user("u1", as_of) == (early,)
    assert snapshot.spent_hours("i1", as_of) == 3.0
    assert snapshot.spent_hours("i1") == 8.0
    assert {u.id for u in snapshot.active_users()} == {"m1", "u1", "u2"}


def test_load_json(tmp_path):
    dump = {
        "users": [{"id": "u1", "name": "Alice"}],
        "projects": [{"id": "p1", "name": "Apollo"}],
        "issues": [{"id": "i1", "project_id": "p1", "created_on": "2026-01-05T09:00:00"}],
        "time_entries": [
            {"id": "t1", "user_id": "u1", "project_id": "p1", "issue_id": "i1", "hours": 2,
             "spent_on": "2026-03-10", "created_on": "2026-03-10T17:00:00Z"},
        ],
    }
    path = tmp_path / "entities.json"
    path.write_text(json.dumps(dump))

    store = EntityStore()
    store.load_json(path)
    snapshot = store.snapshot()

    assert set(snapshot.users) == {"u1"}
    # Naive timestamps are read as UTC
    assert snapshot.issues["i1"].created_on.tzinfo is not None
    assert snapshot.time_entries[0].spent_on == date(2026, 3, 10)


def test_week_start_is_monday():
    assert week_start(date(2026, 3, 13)) == date(2026, 3, 9)
    assert week_start(date(2026, 3, 15)) == date(2026, 3, 9)
    assert week_start(date(2026, 3, 9)) == date(2026, 3, 9)


def test_working_days_between():
    weekdays = WorkingDays()

    assert working_days_between(date(2026, 3, 9), date(2026, 3, 15), weekdays) == 5
    assert working_days_between(date(2026, 3, 14), date(2026, 3, 15), weekdays) == 0
    assert working_days_between(date(2026, 3, 15), date(2026, 3, 9), weekdays) == 0


def test_month_arithmetic():
    moment = datetime(2026, 3, 31, 12, tzinfo=timezone.utc)

    assert subtract_months(moment, 1) == datetime(2026, 2, 28, 12, tzinfo=timezone.utc)
    assert subtract_months(moment, 3) == datetime(2025, 12, 31, 12, tzinfo=timezone.utc)
    assert months_between(datetime(2026, 1, 1, tzinfo=timezone.utc), datetime(2026, 3, 2, tzinfo=timezone.utc)) == 2


def test_days_back(as_of):
    assert days_back(as_of, 7) == date(2026, 3, 6)
