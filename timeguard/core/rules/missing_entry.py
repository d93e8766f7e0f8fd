"""
Missing Entry Rule — Detects active users who stopped logging time.

Triggers when an active user has no time entry whose work date falls inside
the last `missing_entry_days` days of the as-of date.
"""

from __future__ import annotations

from datetime import datetime

from timeguard.core.dates import days_back
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.MISSING_ENTRY


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag active users with no work logged inside the window."""
    candidates: list[ViolationCandidate] = []
    today = as_of.date()
    cutoff = days_back(as_of, config.missing_entry_days)

    for user in snapshot.active_users():
        work_dates = [
            e.spent_on for e in snapshot.entries_for_user(user.id, as_of) if e.spent_on <= today
        ]
        if any(d >= cutoff for d in work_dates):
            continue

        # The gap is anchored on the last entry, so one lapse stays one violation
        last_entry = max(work_dates, default=None)
        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=user.id,
                severity=Severity.HIGH,
                anchor=last_entry.isoformat() if last_entry else "never",
                metadata={
                    "window_days": config.missing_entry_days,
                    "last_entry_date": last_entry.isoformat() if last_entry else None,
                    "days_without_entry": (today - last_entry).days if last_entry else None,
                },
            )
        )

    return candidates
