"""
Manager Routes.

  GET /managers/{manager_id}/scorecard → team size, projects, compliance rate
  GET /managers/{manager_id}/team      → per-member and per-project detail
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from timeguard.api.dependencies import get_config_provider, get_entity_store, get_violation_store
from timeguard.core import aggregator
from timeguard.core.dates import ensure_utc, utcnow
from timeguard.models.stats_models import ManagerScorecard, TeamCompliance
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore
from timeguard.store.violation_store import ViolationStore

router = APIRouter(prefix="/managers", tags=["managers"])


@router.get("/{manager_id}/scorecard", response_model=ManagerScorecard)
async def get_scorecard(
    manager_id: str,
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    violations: ViolationStore = Depends(get_violation_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    """Team size, managed projects and team compliance rate."""
    return aggregator.manager_scorecard(
        entities.snapshot(),
        config_provider.get_snapshot(),
        violations.open_violations(),
        manager_id,
        ensure_utc(as_of) if as_of else utcnow(),
    )


@router.get("/{manager_id}/team", response_model=TeamCompliance)
async def get_team_compliance(
    manager_id: str,
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    violations: ViolationStore = Depends(get_violation_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    return aggregator.team_compliance(
        entities.snapshot(),
        config_provider.get_snapshot(),
        violations.open_violations(),
        manager_id,
        ensure_utc(as_of) if as_of else utcnow(),
    )
