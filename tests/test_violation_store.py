"""
Tests for Violation Store — dedup, status transitions, listing.
"""

import threading
from datetime import timedelta

import pytest

from timeguard.errors import ConflictOnStatusTransition, NotFoundError, ValidationError
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind, ViolationStatus
from timeguard.store.violation_store import ViolationStore


def _candidate(user_id="u1", kind=ViolationKind.MISSING_ENTRY, severity=Severity.HIGH, anchor="2026-03-01", subject_id=None):
    return ViolationCandidate(kind=kind, user_id=user_id, severity=severity, anchor=anchor, subject_id=subject_id)


@pytest.fixture
def store():
    return ViolationStore()


def test_upsert_is_idempotent(store, as_of):
    batch = [_candidate("u1"), _candidate("u2"), _candidate("u1", ViolationKind.ROUND_NUMBERS, Severity.LOW)]

    first = store.upsert_many(batch, detected_at=as_of)
    second = store.upsert_many(batch, detected_at=as_of + timedelta(hours=1))

    assert len(first.created) == 3
    assert second.created == []
    assert second.unchanged == 3
    assert store.size == 3


def test_duplicates_within_one_batch_collapse(store, as_of):
    result = store.upsert_many([_candidate("u1"), _candidate("u1")], detected_at=as_of)

    assert len(result.created) == 1
    assert result.unchanged == 1


def test_resolved_violation_is_not_reopened(store, as_of):
    created = store.upsert_many([_candidate("u1")], detected_at=as_of).created[0]
    store.set_status(created.id, "resolved")

    again = store.upsert_many([_candidate("u1")], detected_at=as_of + timedelta(days=1))

    assert again.created == []
    assert store.get(created.id).status == ViolationStatus.RESOLVED
    assert store.open_violations() == []


def test_new_anchor_creates_new_violation(store, as_of):
    store.upsert_many([_candidate("u1", anchor="2026-03-01")], detected_at=as_of)
    result = store.upsert_many([_candidate("u1", anchor="2026-03-10")], detected_at=as_of)

    assert len(result.created) == 1


def test_set_status_transitions(store, as_of):
    violation = store.upsert_many([_candidate("u1")], detected_at=as_of).created[0]

    updated, changed = store.set_status(violation.id, ViolationStatus.IGNORED)
    assert changed is True
    assert updated.status == ViolationStatus.IGNORED
    assert updated.resolved_at is not None

    same, changed = store.set_status(violation.id, "ignored")
    assert changed is False
    assert same.status == ViolationStatus.IGNORED

    with pytest.raises(ConflictOnStatusTransition):
        store.set_status(violation.id, "resolved")


def test_set_status_rejects_open_and_unknown(store, as_of):
    violation = store.upsert_many([_candidate("u1")], detected_at=as_of).created[0]

    with pytest.raises(ValidationError):
        store.set_status(violation.id, "open")
    with pytest.raises(ValidationError):
        store.set_status(violation.id, "archived")
    with pytest.raises(NotFoundError):
        store.set_status("missing", "resolved")
    with pytest.raises(NotFoundError):
        store.get("missing")


def test_list_orders_newest_first_and_paginates(store, as_of):
    for day in range(5):
        store.upsert_many([_candidate(f"u{day}")], detected_at=as_of - timedelta(days=day))

    page1, total = store.list(page=1, limit=2)
    page3, _ = store.list(page=3, limit=2)

    assert total == 5
    assert [v.user_id for v in page1] == ["u0", "u1"]
    assert [v.user_id for v in page3] == ["u4"]


def test_list_filters(store, as_of):
    store.upsert_many(
        [
            _candidate("u1"),
            _candidate("u2", ViolationKind.STALE_TASK, Severity.MEDIUM, subject_id="i9"),
            _candidate("u2", ViolationKind.ROUND_NUMBERS, Severity.LOW),
        ],
        detected_at=as_of,
    )

    by_kind, total = store.list(kind="stale_task")
    assert total == 1 and by_kind[0].subject_id == "i9"

    by_user, total = store.list(user_id="u2", severity=Severity.LOW)
    assert total == 1 and by_user[0].kind == ViolationKind.ROUND_NUMBERS

    _, total = store.list(status="resolved")
    assert total == 0


@pytest.mark.parametrize(
    "kwargs",
    [{"page": 0}, {"limit": 0}, {"limit": 501}, {"kind": "nope"}, {"severity": "critical"}, {"status": "closed"}],
)
def test_list_rejects_bad_arguments(store, kwargs):
    with pytest.raises(ValidationError):
        store.list(**kwargs)


def test_open_counts_by_kind_zero_filled(store, as_of):
    created = store.upsert_many([_candidate("u1"), _candidate("u2")], detected_at=as_of).created
    store.set_status(created[0].id, "resolved")

    counts = store.open_counts_by_kind()

    assert set(counts) == {k.value for k in ViolationKind}
    assert counts["missing_entry"] == 1
    assert counts["overrun_task"] == 0


def test_concurrent_upserts_create_once(store, as_of):
    batch = [_candidate(f"u{i}") for i in range(50)]
    results = []

    def worker():
        results.append(store.upsert_many(batch, detected_at=as_of))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(len(r.created) for r in results) == 50
    assert store.size == 50


def test_revision_tracks_mutations(store, as_of):
    start = store.revision
    violation = store.upsert_many([_candidate("u1")], detected_at=as_of).created[0]
    after_insert = store.revision
    store.upsert_many([_candidate("u1")], detected_at=as_of)

    assert after_insert > start
    assert store.revision == after_insert

    store.set_status(violation.id, "resolved")
    assert store.revision > after_insert


def test_clear_drops_everything_and_bumps_revision(store, as_of):
    store.upsert_many([_candidate("u1"), _candidate("u2")], detected_at=as_of)
    revision = store.revision

    store.clear()

    assert store.size == 0
    assert store.revision > revision
    # Cleared keys can be raised again
    assert len(store.upsert_many([_candidate("u1")], detected_at=as_of).created) == 1
