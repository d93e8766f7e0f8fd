"""
Overview Cache — Revision-keyed caching of dashboard aggregates.

Overview counters are keyed by the entity mirror revision, the violation
store revision, the config version and the as-of date. Any write to one of
those sources changes the key, so a stale overview is never served; the TTL
only bounds memory held by keys nobody asks for again.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from timeguard.config import settings
from timeguard.models.stats_models import Overview


CacheKey = tuple[int, int, int, date]


@dataclass
class CacheEntry:
    """A cached overview for one source-revision key."""

    overview: Overview
    timestamp: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        return (time.time() - self.timestamp) > settings.overview_cache_ttl_seconds


class OverviewCache:
    """
    In-memory overview cache.

    Upgradeable to Redis by swapping the storage backend.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[CacheKey, CacheEntry] = {}

    @staticmethod
    def make_key(entity_revision: int, violation_revision: int, config_version: int, day: date) -> CacheKey:
        return (entity_revision, violation_revision, config_version, day)

    def get(self, key: CacheKey) -> Overview | None:
        """Cached overview, or None if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired:
                del self._store[key]
                return None
            return entry.overview

    def put(self, key: CacheKey, overview: Overview) -> None:
        with self._lock:
            self._store[key] = CacheEntry(overview=overview)

    def invalidate(self) -> int:
        """Drop every cached overview. Returns count removed."""
        with self._lock:
            removed = len(self._store)
            self._store.clear()
        return removed

    @property
    def size(self) -> int:
        return len(self._store)

    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        with self._lock:
            expired = sum(1 for e in self._store.values() if e.is_expired)
            total = len(self._store)
        return {
            "total_entries": total,
            "expired_entries": expired,
            "active_entries": total - expired,
        }
