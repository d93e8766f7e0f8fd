"""
Bulk Logging Rule — Detects several days of work logged in one sitting.

Entries created by the same user with the same creation timestamp (to the
second) form one batch. A batch of at least `bulk_logging_threshold` entries
whose work dates cover two or more distinct days is flagged. Only batches
created in the last week are considered.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import TimeEntry
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.BULK_LOGGING

LOOKBACK_DAYS = 7
MIN_DISTINCT_DAYS = 2


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag creation batches that span multiple work days."""
    candidates: list[ViolationCandidate] = []
    since = as_of - timedelta(days=LOOKBACK_DAYS)

    batches: dict[tuple[str, datetime], list[TimeEntry]] = {}
    for entry in snapshot.visible_entries(as_of):
        if entry.created_on < since:
            continue
        batch_key = (entry.user_id, entry.created_on.replace(microsecond=0))
        batches.setdefault(batch_key, []).append(entry)

    for (user_id, created_on), entries in sorted(batches.items()):
        if len(entries) < config.bulk_logging_threshold:
            continue
        work_days = sorted({e.spent_on for e in entries})
        if len(work_days) < MIN_DISTINCT_DAYS:
            continue

        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=user_id,
                severity=Severity.MEDIUM,
                anchor=created_on.isoformat(),
                metadata={
                    "entries_count": len(entries),
                    "days_spanned": len(work_days),
                    "first_work_date": work_days[0].isoformat(),
                    "last_work_date": work_days[-1].isoformat(),
                    "created_on": created_on.isoformat(),
                    "total_hours": round(sum(e.hours for e in entries), 2),
                    "entry_ids": [e.id for e in entries],
                },
            )
        )

    return candidates
