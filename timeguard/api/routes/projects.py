"""
Project Report Routes.

  GET /projects/stale-tasks → projects holding long-running open issues
  GET /projects/high-spent  → projects holding issues above the hours cap
  GET /projects/{id}/overruns → estimated issues over the overrun threshold
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from timeguard.api.dependencies import get_config_provider, get_entity_store
from timeguard.config import settings
from timeguard.core import reports
from timeguard.core.dates import ensure_utc, utcnow
from timeguard.models.stats_models import HighSpentPage, IssueOverrun, StaleTaskPage
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/stale-tasks", response_model=StaleTaskPage)
async def get_projects_with_stale_tasks(
    page: int = 1,
    limit: int = Query(default=settings.default_page_size),
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    return reports.projects_with_stale_tasks(
        entities.snapshot(),
        config_provider.get_snapshot(),
        ensure_utc(as_of) if as_of else utcnow(),
        page=page,
        limit=limit,
    )


@router.get("/high-spent", response_model=HighSpentPage)
async def get_projects_with_high_spent_hours(
    page: int = 1,
    limit: int = Query(default=settings.default_page_size),
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    return reports.projects_with_high_spent_hours(
        entities.snapshot(),
        config_provider.get_snapshot(),
        ensure_utc(as_of) if as_of else utcnow(),
        page=page,
        limit=limit,
    )


@router.get("/{project_id}/overruns", response_model=list[IssueOverrun])
async def get_project_overruns(
    project_id: str,
    as_of: datetime | None = Query(default=None, alias="asOf"),
    entities: EntityStore = Depends(get_entity_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    return reports.project_overruns(
        entities.snapshot(),
        config_provider.get_snapshot(),
        project_id,
        ensure_utc(as_of) if as_of else utcnow(),
    )
