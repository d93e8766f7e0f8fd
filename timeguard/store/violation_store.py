"""
Violation Store — Deduplicated violation records with status transitions.

A candidate is inserted only when no stored violation shares its dedup key,
whatever that violation's status is. A violation resolved or ignored by a
human is therefore never reopened by a later run. Insert-if-absent and
status changes happen under one lock, so concurrent runs cannot create
duplicates.

In-memory (upgrade to a database table with a unique dedup_key index for
production).
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from datetime import datetime

from timeguard.config import settings
from timeguard.core.dates import ensure_utc, utcnow
from timeguard.errors import ConflictOnStatusTransition, NotFoundError, ValidationError
from timeguard.models.violation_models import (
    TERMINAL_STATUSES,
    Severity,
    UpsertResult,
    Violation,
    ViolationCandidate,
    ViolationKind,
    ViolationStatus,
)

logger = logging.getLogger("timeguard.store.violations")


def _coerce(enum_cls, value, field: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed} (got {value!r})", field=field) from None


class ViolationStore:
    """Lock-protected violation records indexed by id and dedup key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Violation] = {}
        self._by_key: dict[str, str] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Bumped on every mutation; consumed by the overview cache."""
        return self._revision

    def upsert_many(
        self,
        candidates: list[ViolationCandidate],
        detected_at: datetime | None = None,
    ) -> UpsertResult:
        """
        Merge a batch of candidates.

        Candidates whose dedup key is already stored (in any status) are
        counted as unchanged. Duplicates inside one batch collapse to the
        first occurrence.
        """
        detected_at = ensure_utc(detected_at) if detected_at else utcnow()
        created: list[Violation] = []
        unchanged = 0

        with self._lock:
            for candidate in candidates:
                key = candidate.dedup_key
                if key in self._by_key:
                    unchanged += 1
                    continue
                violation = Violation(
                    id=str(uuid.uuid4()),
                    kind=candidate.kind,
                    user_id=candidate.user_id,
                    severity=candidate.severity,
                    detected_at=detected_at,
                    dedup_key=key,
                    subject_id=candidate.subject_id,
                    anchor=candidate.anchor,
                    metadata=dict(candidate.metadata),
                )
                self._by_id[violation.id] = violation
                self._by_key[key] = violation.id
                created.append(violation)
            if created:
                self._revision += 1

        logger.debug(f"Upserted {len(candidates)} candidates: {len(created)} new, {unchanged} existing")
        return UpsertResult(created=created, unchanged=unchanged)

    def list(
        self,
        kind: ViolationKind | str | None = None,
        severity: Severity | str | None = None,
        status: ViolationStatus | str | None = None,
        user_id: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[Violation], int]:
        """
        Filtered, paginated listing ordered by detected_at desc, then id.

        Returns:
            (items on the requested page, total matching count)
        """
        limit = settings.default_page_size if limit is None else limit
        if page < 1:
            raise ValidationError(f"page must be >= 1 (got {page})", field="page")
        if not 1 <= limit <= settings.max_page_size:
            raise ValidationError(
                f"limit must be between 1 and {settings.max_page_size} (got {limit})",
                field="limit",
                allowed=(1, settings.max_page_size),
            )
        kind = _coerce(ViolationKind, kind, "kind")
        severity = _coerce(Severity, severity, "severity")
        status = _coerce(ViolationStatus, status, "status")

        with self._lock:
            rows = [
                v
                for v in self._by_id.values()
                if (kind is None or v.kind == kind)
                and (severity is None or v.severity == severity)
                and (status is None or v.status == status)
                and (user_id is None or v.user_id == user_id)
            ]

        rows.sort(key=lambda v: v.id)
        rows.sort(key=lambda v: v.detected_at, reverse=True)
        offset = (page - 1) * limit
        return rows[offset : offset + limit], len(rows)

    def get(self, violation_id: str) -> Violation:
        with self._lock:
            violation = self._by_id.get(violation_id)
        if violation is None:
            raise NotFoundError(f"Violation not found: {violation_id}", {"id": violation_id})
        return violation

    def set_status(self, violation_id: str, status: ViolationStatus | str) -> tuple[Violation, bool]:
        """
        Move an open violation to resolved or ignored.

        Returns:
            (violation, changed). Re-applying the current terminal status is
            a no-op and returns changed=False.

        Raises:
            ValidationError: target status is not terminal.
            NotFoundError: unknown id.
            ConflictOnStatusTransition: already in the other terminal status.
        """
        status = _coerce(ViolationStatus, status, "status")
        if status not in TERMINAL_STATUSES:
            raise ValidationError(
                f"status must be one of: resolved, ignored (got {status.value!r})", field="status"
            )

        with self._lock:
            current = self._by_id.get(violation_id)
            if current is None:
                raise NotFoundError(f"Violation not found: {violation_id}", {"id": violation_id})
            if current.status == status:
                return current, False
            if current.status in TERMINAL_STATUSES:
                raise ConflictOnStatusTransition(
                    f"Violation {violation_id} is already {current.status.value}",
                    {"id": violation_id, "current": current.status.value, "requested": status.value},
                )
            updated = current.model_copy(update={"status": status, "resolved_at": utcnow()})
            self._by_id[violation_id] = updated
            self._revision += 1

        logger.info(f"Violation {violation_id} ({updated.kind.value}) marked {status.value}")
        return updated, True

    def open_violations(self) -> list[Violation]:
        with self._lock:
            return [v for v in self._by_id.values() if v.status == ViolationStatus.OPEN]

    def open_counts_by_kind(self) -> dict[str, int]:
        """Open violation count for every kind, zero-filled."""
        counts = Counter(v.kind for v in self.open_violations())
        return {kind.value: counts.get(kind, 0) for kind in ViolationKind}

    def clear(self) -> None:
        """Administrative reset: drop every stored violation."""
        with self._lock:
            self._by_id.clear()
            self._by_key.clear()
            self._revision += 1
        logger.warning("Violation store cleared")

    @property
    def size(self) -> int:
        return len(self._by_id)
