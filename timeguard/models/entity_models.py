"""
Entity Models — Mirrored users, projects, issues and time entries.

These records are owned by the ingestion subsystem. The compliance engine only
reads them, so every model is frozen.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from timeguard.core.dates import ensure_utc


CLOSED_ISSUE_STATUSES = frozenset({"closed", "resolved", "rejected"})

# Naive timestamps from the mirror are taken to be UTC.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class UserStatus(str, Enum):
    ACTIVE = "active"
    REGISTERED = "registered"
    LOCKED = "locked"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    CLOSED = "closed"


class User(BaseModel):
    """A person whose time is tracked."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.USER
    manager_id: str | None = Field(default=None, description="Reporting manager (a User id)")
    status: UserStatus = UserStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class Project(BaseModel):
    """A tracked project, optionally owned by a manager."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    manager_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE


class Issue(BaseModel):
    """A task inside a project."""

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    subject: str = ""
    assignee_id: str | None = None
    status: str = "New"
    estimated_hours: float | None = Field(
        default=None, description="None or 0 means unestimated"
    )
    created_on: UtcDatetime

    @property
    def is_open(self) -> bool:
        return self.status.strip().lower() not in CLOSED_ISSUE_STATUSES

    @property
    def has_estimate(self) -> bool:
        return bool(self.estimated_hours) and self.estimated_hours > 0


class TimeEntry(BaseModel):
    """Hours a user logged against a project (and usually an issue)."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    project_id: str
    issue_id: str | None = None
    hours: float = Field(..., ge=0)
    spent_on: date = Field(..., description="Work date")
    created_on: UtcDatetime = Field(..., description="When the entry was logged")


class EntityDump(BaseModel):
    """Serialized form of a full entity mirror, as handed over by ingestion."""

    users: list[User] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    issues: list[Issue] = Field(default_factory=list)
    time_entries: list[TimeEntry] = Field(default_factory=list)
