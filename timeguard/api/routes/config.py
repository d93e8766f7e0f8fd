"""
Config Routes — Read and update the compliance-rule thresholds.

  GET /config/compliance-rules → effective config (camelCase)
  PUT /config/compliance-rules → partial update, validated as a whole
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from timeguard.api.dependencies import get_audit_logger, get_config_provider, get_overview_cache
from timeguard.audit.logger import AuditLogger
from timeguard.cache.overview_cache import OverviewCache
from timeguard.models.config_models import ComplianceConfig
from timeguard.store.config_store import ConfigProvider

logger = logging.getLogger("timeguard.api.config")
router = APIRouter(prefix="/config", tags=["config"])


@router.get("/compliance-rules", response_model=ComplianceConfig)
async def get_compliance_rules(config_provider: ConfigProvider = Depends(get_config_provider)):
    return config_provider.get_snapshot()


@router.put("/compliance-rules", response_model=ComplianceConfig)
async def update_compliance_rules(
    changes: dict[str, Any] = Body(...),
    config_provider: ConfigProvider = Depends(get_config_provider),
    cache: OverviewCache = Depends(get_overview_cache),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """
    Merge the supplied thresholds over the current rules.

    Any out-of-range value rejects the whole update with 400; nothing is
    stored in that case. Changes apply to the next run, not to one already
    in progress.
    """
    updated = config_provider.update(changes)
    cache.invalidate()
    logger.info(f"Compliance rules now at v{updated.version}")
    audit.log_config_update(changes, updated)
    return updated
