"""
Violation Describer — Human-readable one-liners for stored violations.

Template-based: each violation kind has one formatter reading the metadata
its rule evaluator wrote. Missing metadata degrades to neutral defaults
rather than failing, since old rows may predate a metadata field.
"""

from __future__ import annotations

from typing import Any, Callable

from timeguard.models.violation_models import Violation, ViolationKind, ViolationView


UNKNOWN_TASK = "Unknown task"


def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with '...'."""
    return text[:limit] + "..." if len(text) > limit else text


def _hours(value: Any, digits: int = 1) -> str:
    return f"{float(value or 0):.{digits}f}"


def _missing_entry(meta: dict[str, Any]) -> str:
    window = meta.get("window_days", 0)
    last = meta.get("last_entry_date")
    if last:
        return f"No time entries logged in last {window} days (last entry: {last})"
    return f"No time entries logged in last {window} days"


def _late_entry(meta: dict[str, Any]) -> str:
    return f"Entry logged {meta.get('days_late', 0)} days late (work done: {meta.get('spent_on', '')})"


def _bulk_logging(meta: dict[str, Any]) -> str:
    return (
        f"{meta.get('entries_count', 0)} entries created at once, "
        f"spanning {meta.get('days_spanned', 0)} days"
    )


def _round_numbers(meta: dict[str, Any]) -> str:
    return (
        f"{meta.get('round_number_entries', 0)} round number entries "
        f"in last {meta.get('period_days', 7)} days"
    )


def _stale_task(meta: dict[str, Any]) -> str:
    subject = truncate(meta.get("issue_subject") or UNKNOWN_TASK, 50)
    return f'Task: "{subject}" - No activity in {meta.get("days_since_activity", 0)} days'


def _overrun_task(meta: dict[str, Any]) -> str:
    subject = truncate(meta.get("issue_subject") or UNKNOWN_TASK, 40)
    return (
        f'Task: "{subject}" - Spent {_hours(meta.get("spent_hours"))}h '
        f'vs {_hours(meta.get("estimated_hours"))}h estimated '
        f'(+{meta.get("overrun_percentage", 0)}%)'
    )


def _partial_entry(meta: dict[str, Any]) -> str:
    hours = _hours(meta.get("hours"), 2)
    week = meta.get("week_start")
    suffix = f" (Week of {week})" if week else ""
    project = meta.get("project_name")
    subject = meta.get("issue_subject")

    if subject and project:
        return f"{truncate(subject, 40)} ({project}) - {hours}h/week{suffix}"
    if project:
        return f"{project} - {hours}h/week{suffix}"
    return f"{hours} hours/week{suffix}"


FORMATTERS: dict[ViolationKind, Callable[[dict[str, Any]], str]] = {
    ViolationKind.MISSING_ENTRY: _missing_entry,
    ViolationKind.LATE_ENTRY: _late_entry,
    ViolationKind.BULK_LOGGING: _bulk_logging,
    ViolationKind.ROUND_NUMBERS: _round_numbers,
    ViolationKind.STALE_TASK: _stale_task,
    ViolationKind.OVERRUN_TASK: _overrun_task,
    ViolationKind.PARTIAL_ENTRY: _partial_entry,
}

_missing = set(ViolationKind) - set(FORMATTERS)
if _missing:
    raise RuntimeError(f"No description formatter for: {sorted(k.value for k in _missing)}")


def describe(violation: Violation) -> str:
    return FORMATTERS[violation.kind](violation.metadata or {})


def to_view(violation: Violation) -> ViolationView:
    """Attach the description to a stored violation."""
    return ViolationView(**violation.model_dump(), description=describe(violation))
