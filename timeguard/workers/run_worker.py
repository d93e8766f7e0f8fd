"""
Run Worker — Async orchestrator for one compliance evaluation pass.

Pipeline:
1. Snapshot the compliance config (one version for the whole run)
2. Snapshot the entity mirror at the as-of instant
3. Execute the rule engine (7 evaluators) off the event loop
4. Merge candidates into the violation store (insert-if-absent)
5. Invalidate cached overview aggregates
6. Record the run summary and write the audit trail

Rule failures are isolated: a failing rule is recorded in the summary and
the run still completes with the other rules' results.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from collections import Counter
from datetime import datetime

from timeguard.audit.logger import AuditLogger
from timeguard.cache.overview_cache import OverviewCache
from timeguard.core.dates import ensure_utc, utcnow
from timeguard.core.rule_engine import RuleEngine
from timeguard.errors import NotFoundError
from timeguard.models.run_models import RunSummary
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore
from timeguard.store.violation_store import ViolationStore

logger = logging.getLogger("timeguard.worker")


class RunWorker:
    """Async run orchestrator implementing the evaluation pipeline."""

    def __init__(
        self,
        entities: EntityStore,
        violations: ViolationStore,
        config_provider: ConfigProvider,
        engine: RuleEngine | None = None,
        cache: OverviewCache | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.entities = entities
        self.violations = violations
        self.config_provider = config_provider
        self.engine = engine or RuleEngine()
        self.cache = cache
        self.audit = audit

        # In-memory run registry (upgrade to Redis for production)
        self._runs: dict[str, RunSummary] = {}
        self._as_of: dict[str, datetime | None] = {}
        self._lock = threading.Lock()

    def submit(self, as_of: datetime | None = None) -> RunSummary:
        """Register a queued run and return its handle."""
        run_id = str(uuid.uuid4())[:8]
        summary = RunSummary(run_id=run_id, status="queued")
        with self._lock:
            self._runs[run_id] = summary
            self._as_of[run_id] = ensure_utc(as_of) if as_of else None
        logger.info(f"[{run_id}] Run queued")
        return summary

    def get_run(self, run_id: str) -> RunSummary:
        with self._lock:
            summary = self._runs.get(run_id)
        if summary is None:
            raise NotFoundError(f"Run not found: {run_id}", {"run_id": run_id})
        return summary

    def list_runs(self) -> list[RunSummary]:
        """Most recently submitted first."""
        with self._lock:
            return list(reversed(self._runs.values()))

    async def run_check(self, as_of: datetime | None = None) -> RunSummary:
        """Submit and execute a run in one call."""
        summary = self.submit(as_of)
        return await self.execute(summary.run_id)

    async def execute(self, run_id: str) -> RunSummary:
        """
        Execute a queued run.

        Returns:
            The finished RunSummary (status complete, or failed if the
            pipeline itself broke outside any single rule).
        """
        summary = self.get_run(run_id)
        with self._lock:
            summary = self._runs[run_id]
            if summary.status != "queued":
                logger.warning(f"[{run_id}] Run already {summary.status}; not executing again")
                return summary
            as_of = self._as_of.pop(run_id, None) or utcnow()
            summary = summary.model_copy(update={"status": "running", "as_of": as_of, "started_at": utcnow()})
            self._runs[run_id] = summary
        start_time = time.monotonic()

        logger.info(f"[{run_id}] Starting compliance run as of {as_of.isoformat()}")

        try:
            # ── Step 1: Config snapshot ──
            config = self.config_provider.get_snapshot()

            # ── Step 2: Entity snapshot ──
            snapshot = self.entities.snapshot()
            logger.info(
                f"[{run_id}] Snapshot r{snapshot.revision}: {len(snapshot.users)} users, "
                f"{len(snapshot.issues)} issues, {len(snapshot.time_entries)} time entries "
                f"(config v{config.version})"
            )

            # ── Step 3: Rule engine ──
            rule_result = await asyncio.to_thread(self.engine.run, snapshot, config, as_of)
            logger.info(
                f"[{run_id}] Candidates: {len(rule_result.candidates)} "
                f"({rule_result.duration_ms:.1f}ms)"
            )
            for rule, message in rule_result.errors.items():
                logger.warning(f"[{run_id}] Rule '{rule}' skipped: {message}")

            # ── Step 4: Merge into store ──
            upsert = self.violations.upsert_many(rule_result.candidates, detected_at=as_of)
            created = Counter(v.kind.value for v in upsert.created)

            # ── Step 5: Invalidate overview cache ──
            if self.cache is not None and upsert.created:
                self.cache.invalidate()

            elapsed_ms = (time.monotonic() - start_time) * 1000
            summary = summary.model_copy(
                update={
                    "status": "complete",
                    "config_version": config.version,
                    "created": {rule: created.get(rule, 0) for rule in rule_result.rules_executed},
                    "unchanged": upsert.unchanged,
                    "candidates_found": len(rule_result.candidates),
                    "errors": rule_result.errors,
                    "finished_at": utcnow(),
                    "duration_ms": round(elapsed_ms, 2),
                }
            )
        except Exception as e:
            logger.exception(f"[{run_id}] Compliance run failed")
            summary = summary.model_copy(
                update={
                    "status": "failed",
                    "error": f"{type(e).__name__}: {e}",
                    "finished_at": utcnow(),
                    "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
                }
            )

        # ── Step 6: Record ──
        self._save(summary)
        if self.audit is not None:
            self.audit.log_run(summary)

        logger.info(
            f"[{run_id}] Run {summary.status} in {summary.duration_ms:.0f}ms, "
            f"{summary.total_created} new, {summary.unchanged} unchanged"
            + (f", {len(summary.errors)} rule failures" if summary.errors else "")
        )
        return summary

    def _save(self, summary: RunSummary) -> RunSummary:
        with self._lock:
            self._runs[summary.run_id] = summary
        return summary
