"""
Compliance Routes — Runs, overview, trends and violation management.

  POST  /compliance/run                 → queue an evaluation pass (202)
  GET   /compliance/runs/{run_id}       → poll a run summary
  GET   /compliance/overview            → dashboard counters
  GET   /compliance/trends              → daily compliance-rate series
  GET   /compliance/violations          → filtered, paginated listing
  GET   /compliance/violations/{id}     → one violation
  PATCH /compliance/violations/{id}     → resolve or ignore
  GET   /compliance/users/{id}/score    → per-user compliance score
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from timeguard.api.dependencies import (
    get_audit_logger,
    get_config_provider,
    get_entity_store,
    get_overview_cache,
    get_run_worker,
    get_violation_store,
)
from timeguard.audit.logger import AuditLogger
from timeguard.cache.overview_cache import OverviewCache
from timeguard.config import settings
from timeguard.core import aggregator
from timeguard.core.dates import ensure_utc, utcnow
from timeguard.core.describer import to_view
from timeguard.models.run_models import RunSummary
from timeguard.models.stats_models import ComplianceScore, Overview, TrendPoint
from timeguard.models.violation_models import StatusUpdate, ViolationPage, ViolationView
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore
from timeguard.store.violation_store import ViolationStore
from timeguard.workers.run_worker import RunWorker

logger = logging.getLogger("timeguard.api.compliance")
router = APIRouter(prefix="/compliance", tags=["compliance"])


def _as_of(value: datetime | None) -> datetime:
    return ensure_utc(value) if value else utcnow()


@router.post("/run", response_model=RunSummary, status_code=202)
async def trigger_run(
    background_tasks: BackgroundTasks,
    as_of: datetime | None = Query(default=None, alias="asOf"),
    worker: RunWorker = Depends(get_run_worker),
):
    """Queue a compliance run; evaluation proceeds in the background."""
    summary = worker.submit(as_of)
    background_tasks.add_task(worker.execute, summary.run_id)
    logger.info(f"Run {summary.run_id} accepted")
    return summary


@router.get("/runs/{run_id}", response_model=RunSummary)
async def get_run(run_id: str, worker: RunWorker = Depends(get_run_worker)):
    return worker.get_run(run_id)


@router.get("/overview", response_model=Overview)
async def get_overview(
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    violations: ViolationStore = Depends(get_violation_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
    cache: OverviewCache = Depends(get_overview_cache),
):
    """Aggregate counters; cached until any source revision changes."""
    moment = _as_of(as_of)
    snapshot = entities.snapshot()
    config = config_provider.get_snapshot()

    # Explicit as-of requests are reproducible lookbacks; only "now" is cached
    key = cache.make_key(snapshot.revision, violations.revision, config.version, moment.date())
    if as_of is None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    result = aggregator.overview(snapshot, config, violations.open_violations(), moment)
    if as_of is None:
        cache.put(key, result)
    return result


@router.get("/trends", response_model=list[TrendPoint])
async def get_trends(
    days: int = Query(default=settings.default_trend_days),
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
):
    """Daily compliance rate over the last `days` days, oldest first."""
    return aggregator.trends(entities.snapshot(), _as_of(as_of), days)


@router.get("/violations", response_model=ViolationPage)
async def list_violations(
    kind: str | None = None,
    severity: str | None = None,
    status: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    page: int = 1,
    limit: int = Query(default=settings.default_page_size),
    violations: ViolationStore = Depends(get_violation_store),
):
    items, total = violations.list(
        kind=kind, severity=severity, status=status, user_id=user_id, page=page, limit=limit
    )
    return ViolationPage(items=[to_view(v) for v in items], page=page, limit=limit, total=total)


@router.get("/violations/{violation_id}", response_model=ViolationView)
async def get_violation(violation_id: str, violations: ViolationStore = Depends(get_violation_store)):
    return to_view(violations.get(violation_id))


@router.patch("/violations/{violation_id}", response_model=ViolationView)
async def update_violation_status(
    violation_id: str,
    body: StatusUpdate,
    violations: ViolationStore = Depends(get_violation_store),
    cache: OverviewCache = Depends(get_overview_cache),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Resolve or ignore a violation. Re-applying the same status is a no-op."""
    violation, changed = violations.set_status(violation_id, body.status)
    if changed:
        cache.invalidate()
        audit.log_status_change(violation)
    return to_view(violation)


@router.get("/users/{user_id}/score", response_model=ComplianceScore)
async def get_user_score(
    user_id: str,
    entities: EntityStore = Depends(get_entity_store),
    violations: ViolationStore = Depends(get_violation_store),
):
    return aggregator.compliance_score(entities.snapshot(), violations.open_violations(), user_id)
