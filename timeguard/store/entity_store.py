"""
Entity Store — In-memory mirror of users, projects, issues and time entries.

The ingestion subsystem writes through replace()/upsert_*(); the compliance
engine only ever sees an EntitySnapshot, an immutable, indexed view taken at
one instant. Snapshots are cheap to take and never change under a running
evaluation.

Upgradeable to a database-backed mirror by swapping the storage dicts.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from timeguard.models.entity_models import EntityDump, Issue, Project, TimeEntry, User

logger = logging.getLogger("timeguard.store.entities")


@dataclass(frozen=True)
class EntitySnapshot:
    """Read-only view of the mirrored entities, with lookup indexes."""

    users: Mapping[str, User]
    projects: Mapping[str, Project]
    issues: Mapping[str, Issue]
    time_entries: tuple[TimeEntry, ...]
    entries_by_user: Mapping[str, tuple[TimeEntry, ...]] = field(repr=False)
    entries_by_issue: Mapping[str, tuple[TimeEntry, ...]] = field(repr=False)
    revision: int = 0

    @classmethod
    def build(
        cls,
        users: Iterable[User] = (),
        projects: Iterable[Project] = (),
        issues: Iterable[Issue] = (),
        time_entries: Iterable[TimeEntry] = (),
        revision: int = 0,
    ) -> EntitySnapshot:
        entries = tuple(sorted(time_entries, key=lambda e: (e.spent_on, e.created_on, e.id)))
        by_user: dict[str, list[TimeEntry]] = {}
        by_issue: dict[str, list[TimeEntry]] = {}
        for entry in entries:
            by_user.setdefault(entry.user_id, []).append(entry)
            if entry.issue_id:
                by_issue.setdefault(entry.issue_id, []).append(entry)

        return cls(
            users=MappingProxyType({u.id: u for u in users}),
            projects=MappingProxyType({p.id: p for p in projects}),
            issues=MappingProxyType({i.id: i for i in issues}),
            time_entries=entries,
            entries_by_user=MappingProxyType({k: tuple(v) for k, v in by_user.items()}),
            entries_by_issue=MappingProxyType({k: tuple(v) for k, v in by_issue.items()}),
            revision=revision,
        )

    def active_users(self) -> list[User]:
        return [u for u in self.users.values() if u.is_active]

    def entries_for_user(self, user_id: str, as_of: datetime | None = None) -> tuple[TimeEntry, ...]:
        entries = self.entries_by_user.get(user_id, ())
        if as_of is None:
            return entries
        return tuple(e for e in entries if e.created_on <= as_of)

    def entries_for_issue(self, issue_id: str, as_of: datetime | None = None) -> tuple[TimeEntry, ...]:
        entries = self.entries_by_issue.get(issue_id, ())
        if as_of is None:
            return entries
        return tuple(e for e in entries if e.created_on <= as_of)

    def visible_entries(self, as_of: datetime) -> list[TimeEntry]:
        """Entries already logged at `as_of`."""
        return [e for e in self.time_entries if e.created_on <= as_of]

    def spent_hours(self, issue_id: str, as_of: datetime | None = None) -> float:
        return sum(e.hours for e in self.entries_for_issue(issue_id, as_of))

    def project_of(self, issue: Issue) -> Project | None:
        return self.projects.get(issue.project_id)


class EntityStore:
    """
    Thread-safe in-memory entity mirror.

    Usage:
        store = EntityStore()
        store.replace(users=[...], projects=[...], issues=[...], time_entries=[...])
        snapshot = store.snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._projects: dict[str, Project] = {}
        self._issues: dict[str, Issue] = {}
        self._entries: dict[str, TimeEntry] = {}
        self._revision = 0
        self._snapshot: EntitySnapshot | None = None

    @property
    def revision(self) -> int:
        return self._revision

    def replace(
        self,
        users: Iterable[User] = (),
        projects: Iterable[Project] = (),
        issues: Iterable[Issue] = (),
        time_entries: Iterable[TimeEntry] = (),
    ) -> None:
        """Swap the whole mirror in one step."""
        with self._lock:
            self._users = {u.id: u for u in users}
            self._projects = {p.id: p for p in projects}
            self._issues = {i.id: i for i in issues}
            self._entries = {e.id: e for e in time_entries}
            self._touch()
        logger.info(
            f"Entity mirror replaced: {len(self._users)} users, {len(self._projects)} projects, "
            f"{len(self._issues)} issues, {len(self._entries)} time entries"
        )

    def upsert_users(self, users: Iterable[User]) -> int:
        return self._upsert(self._users, users)

    def upsert_projects(self, projects: Iterable[Project]) -> int:
        return self._upsert(self._projects, projects)

    def upsert_issues(self, issues: Iterable[Issue]) -> int:
        return self._upsert(self._issues, issues)

    def upsert_time_entries(self, entries: Iterable[TimeEntry]) -> int:
        return self._upsert(self._entries, entries)

    def delete_time_entries(self, entry_ids: Iterable[str]) -> int:
        """Drop entries that vanished upstream. Returns count removed."""
        with self._lock:
            removed = sum(1 for eid in entry_ids if self._entries.pop(eid, None) is not None)
            if removed:
                self._touch()
        return removed

    def load_json(self, path: str | Path) -> None:
        """Replace the mirror with the contents of an EntityDump JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        dump = EntityDump.model_validate(json.loads(raw))
        self.replace(dump.users, dump.projects, dump.issues, dump.time_entries)

    def snapshot(self) -> EntitySnapshot:
        """Immutable view of the current mirror. Reused until the next write."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = EntitySnapshot.build(
                    self._users.values(),
                    self._projects.values(),
                    self._issues.values(),
                    self._entries.values(),
                    revision=self._revision,
                )
            return self._snapshot

    def _upsert(self, target: dict, records: Iterable) -> int:
        count = 0
        with self._lock:
            for record in records:
                target[record.id] = record
                count += 1
            if count:
                self._touch()
        return count

    def _touch(self) -> None:
        self._revision += 1
        self._snapshot = None
