"""
Round Numbers Rule — Detects suspiciously round hour values.

Triggers when a user has at least five entries with a positive whole-number
hour value among the entries worked in the last seven days. The violation is
anchored on the work week of the latest round entry, so later runs over the
same entries map onto the same violation.
"""

from __future__ import annotations

from datetime import datetime

from timeguard.core.dates import days_back, week_start
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.entity_models import TimeEntry
from timeguard.models.violation_models import Severity, ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot


KIND = ViolationKind.ROUND_NUMBERS

LOOKBACK_DAYS = 7
MIN_ROUND_ENTRIES = 5


def check(snapshot: EntitySnapshot, config: ComplianceConfig, as_of: datetime) -> list[ViolationCandidate]:
    """Flag users whose recent entries are mostly whole hours."""
    candidates: list[ViolationCandidate] = []
    today = as_of.date()
    cutoff = days_back(as_of, LOOKBACK_DAYS)

    totals: dict[str, int] = {}
    rounds: dict[str, list[TimeEntry]] = {}
    for entry in snapshot.visible_entries(as_of):
        if not cutoff <= entry.spent_on <= today:
            continue
        totals[entry.user_id] = totals.get(entry.user_id, 0) + 1
        if entry.hours > 0 and float(entry.hours).is_integer():
            rounds.setdefault(entry.user_id, []).append(entry)

    for user_id, entries in sorted(rounds.items()):
        if len(entries) < MIN_ROUND_ENTRIES:
            continue
        latest = max(e.spent_on for e in entries)
        candidates.append(
            ViolationCandidate(
                kind=KIND,
                user_id=user_id,
                severity=Severity.LOW,
                anchor=week_start(latest).isoformat(),
                metadata={
                    "round_number_entries": len(entries),
                    "total_entries": totals[user_id],
                    "period_days": LOOKBACK_DAYS,
                    "hour_values": sorted({e.hours for e in entries}),
                    "latest_entry": latest.isoformat(),
                },
            )
        )

    return candidates
