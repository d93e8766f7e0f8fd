"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from timeguard.audit.logger import AuditLogger
from timeguard.cache.overview_cache import OverviewCache
from timeguard.core.rule_engine import RuleEngine
from timeguard.store.config_store import ConfigProvider
from timeguard.store.entity_store import EntityStore
from timeguard.store.violation_store import ViolationStore
from timeguard.workers.run_worker import RunWorker


@lru_cache
def get_entity_store() -> EntityStore:
    """Shared entity mirror singleton."""
    return EntityStore()


@lru_cache
def get_violation_store() -> ViolationStore:
    """Shared violation store singleton."""
    return ViolationStore()


@lru_cache
def get_config_provider() -> ConfigProvider:
    """Shared compliance-rules provider singleton."""
    return ConfigProvider()


@lru_cache
def get_overview_cache() -> OverviewCache:
    """Shared overview cache singleton."""
    return OverviewCache()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_run_worker() -> RunWorker:
    """Shared run worker singleton."""
    return RunWorker(
        entities=get_entity_store(),
        violations=get_violation_store(),
        config_provider=get_config_provider(),
        engine=RuleEngine(),
        cache=get_overview_cache(),
        audit=get_audit_logger(),
    )
