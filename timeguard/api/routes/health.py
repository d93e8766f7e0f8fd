"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from timeguard.api.dependencies import get_config_provider, get_entity_store, get_overview_cache
from timeguard.cache.overview_cache import OverviewCache
from timeguard.core.rule_engine import RULE_REGISTRY
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore

router = APIRouter()


@router.get("/health")
async def health(
    entities: EntityStore = Depends(get_entity_store),
    config_provider: ConfigProvider = Depends(get_config_provider),
    cache: OverviewCache = Depends(get_overview_cache),
):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "rules": [kind.value for kind in RULE_REGISTRY],
        "config_version": config_provider.get_snapshot().version,
        "entity_revision": entities.revision,
        "overview_cache": cache.stats(),
    }
