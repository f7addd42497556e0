"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from talentgate.types import InviteStatus, SubscriptionStatus


def _utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class UTCTimestamp(TypeDecorator[datetime]):
    """``TIMESTAMP WITH TIME ZONE`` that only accepts and returns aware UTC datetimes.

    SQLite drops the offset on storage, so a value read back without one is UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "Datetime values must have timezone information"
            raise ValueError(msg)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Identity, tenancy and role assignment
# ---------------------------------------------------------------------------


class Organization(SQLModel, table=True):
    __tablename__ = "organizations"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    slug: str = Field(unique=True, index=True)
    name: str
    subscription_status: str = Field(default=SubscriptionStatus.TRIAL.value)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class Profile(SQLModel, table=True):
    """A principal. ``org_id`` is null until onboarding or invite acceptance."""

    __tablename__ = "profiles"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    email: str = Field(unique=True, index=True)
    name: str = ""
    password_hash: str = ""
    org_id: str | None = Field(default=None, foreign_key="organizations.id", index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class UserRole(SQLModel, table=True):
    """Role assignment. ``org_id`` is null only for platform-wide super_admin rows."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "org_id", name="uq_user_roles_user_org"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    org_id: str | None = Field(default=None, foreign_key="organizations.id", index=True)
    role: str
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    name: str


class UserRoleDepartment(SQLModel, table=True):
    __tablename__ = "user_role_departments"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    department_id: str = Field(foreign_key="departments.id")


class TeamInvite(SQLModel, table=True):
    __tablename__ = "team_invites"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    email: str = Field(index=True)
    role: str
    status: str = Field(default=InviteStatus.PENDING.value)
    invited_by: str | None = None
    expires_at: datetime | None = Field(default=None, sa_type=UTCTimestamp)
    accepted_at: datetime | None = Field(default=None, sa_type=UTCTimestamp)
    accepted_by: str | None = None
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


# ---------------------------------------------------------------------------
# Tenant-owned ATS records (every row carries org_id)
# ---------------------------------------------------------------------------


class Job(SQLModel, table=True):
    __tablename__ = "jobs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    department_id: str | None = Field(default=None, foreign_key="departments.id", index=True)
    title: str
    status: str = Field(default="draft")  # draft | open | closed | archived
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class Candidate(SQLModel, table=True):
    __tablename__ = "candidates"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    full_name: str
    email: str = ""
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class Application(SQLModel, table=True):
    __tablename__ = "applications"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    job_id: str = Field(foreign_key="jobs.id", index=True)
    candidate_id: str = Field(foreign_key="candidates.id", index=True)
    stage: str = Field(default="applied")
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


class Interview(SQLModel, table=True):
    __tablename__ = "interviews"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str = Field(foreign_key="organizations.id", index=True)
    application_id: str = Field(foreign_key="applications.id", index=True)
    interviewer_id: str | None = Field(default=None, foreign_key="profiles.id")
    scheduled_at: datetime | None = Field(default=None, sa_type=UTCTimestamp)
    status: str = Field(default="scheduled")
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str | None = Field(default=None, index=True)
    user_id: str = ""
    action: str = Field(index=True)
    resource_type: str = ""
    resource_id: str = ""
    details_json: str = "{}"
    ip_address: str = ""
    request_id: str = ""
    created_at: datetime = Field(default_factory=_utc_now, sa_type=UTCTimestamp)
