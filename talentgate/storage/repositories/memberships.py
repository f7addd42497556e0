"""Profile, organization and role-assignment storage.

``MembershipRepository`` is the read side used on every request by the role
lookup. Role queries are bounded list fetches: zero rows means "no role yet"
and several rows are left to the caller to rank by priority.

``PrivilegedMembershipWriter`` is the only code that writes role assignments.
It backs organization creation and invite acceptance, and its role write is
an upsert keyed by (user_id, org_id) so concurrent accepts converge.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from talentgate.exceptions import InviteError, StorageError
from talentgate.models.database import (
    Organization,
    Profile,
    TeamInvite,
    UserRole,
    UserRoleDepartment,
    _new_uuid,
    _utc_now,
)
from talentgate.types import InviteStatus, RoleCode

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


class MembershipRepository:
    """Read-only access to principals, tenants and their role assignments."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_profile(self, principal_id: str) -> Profile | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(Profile).where(col(Profile.id) == principal_id).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_profile_by_email(self, email: str) -> Profile | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(Profile).where(col(Profile.email) == email.lower()).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_profile_with_org(
        self, principal_id: str
    ) -> tuple[Profile, Organization | None] | None:
        """Profile and its organization in a single round trip."""
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(Profile, Organization)
                .join(Organization, col(Profile.org_id) == col(Organization.id), isouter=True)
                .where(col(Profile.id) == principal_id)
                .limit(1)
            )
            result = await session.execute(stmt)
            row = result.first()
            if row is None:
                return None
            profile, org = row
            return profile, org

    async def get_organization_for_principal(self, principal_id: str) -> Organization | None:
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(Organization)
                .join(Profile, col(Profile.org_id) == col(Organization.id))
                .where(col(Profile.id) == principal_id)
                .limit(1)
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_organization(self, org_id: str) -> Organization | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(Organization).where(col(Organization.id) == org_id).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_role_rows(
        self,
        principal_id: str,
        org_id: str | None,
        limit: int = 10,
    ) -> list[UserRole]:
        """Role rows for the principal in ``org_id`` plus platform-wide rows.

        With ``org_id`` None only platform-wide (org-less) rows are returned.
        """
        tenant_filter = (
            or_(col(UserRole.org_id) == org_id, col(UserRole.org_id).is_(None))
            if org_id
            else col(UserRole.org_id).is_(None)
        )
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(UserRole)
                .where(col(UserRole.user_id) == principal_id, tenant_filter)
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_all_role_rows(self, principal_id: str, limit: int = 10) -> list[UserRole]:
        """Every role row for the principal, for callers that join on tenant in memory."""
        async with AsyncSession(self._engine) as session:
            stmt = select(UserRole).where(col(UserRole.user_id) == principal_id).limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_department_ids(self, principal_id: str, org_id: str) -> list[str]:
        async with AsyncSession(self._engine) as session:
            stmt = select(UserRoleDepartment.department_id).where(
                col(UserRoleDepartment.user_id) == principal_id,
                col(UserRoleDepartment.org_id) == org_id,
            )
            result = await session.execute(stmt)
            return sorted({row for (row,) in result.all()})

    async def create_profile(self, email: str, password_hash: str, name: str = "") -> Profile:
        """Create a principal with no tenant. Raises StorageError on duplicate email."""
        async with AsyncSession(self._engine) as session:
            profile = Profile(email=email.lower(), name=name, password_hash=password_hash)
            session.add(profile)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                msg = "A profile with this email already exists"
                raise StorageError(msg) from exc
            await session.refresh(profile)
            logger.info("profile_created", principal_id=profile.id)
            return profile


class PrivilegedMembershipWriter:
    """Elevated write path for tenant binding and role assignment."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    def _upsert_role_stmt(self, principal_id: str, org_id: str | None, role: RoleCode) -> Any:
        values = {
            "id": _new_uuid(),
            "user_id": principal_id,
            "org_id": org_id,
            "role": role.value,
            "created_at": _utc_now(),
        }
        insert = pg_insert if self._engine.dialect.name == "postgresql" else sqlite_insert
        stmt = insert(UserRole.__table__).values(**values)  # type: ignore[attr-defined]
        return stmt.on_conflict_do_update(
            index_elements=["user_id", "org_id"],
            set_={"role": stmt.excluded.role},
        )

    async def _bind_profile(self, session: AsyncSession, principal_id: str, org_id: str) -> None:
        profile = await session.get(Profile, principal_id)
        if profile is None:
            msg = f"Profile {principal_id} not found"
            raise StorageError(msg)
        profile.org_id = org_id
        profile.updated_at = _utc_now()
        session.add(profile)

    async def assign_role(self, principal_id: str, org_id: str, role: RoleCode) -> None:
        """Bind the principal to ``org_id`` and upsert its role there."""
        async with AsyncSession(self._engine) as session:
            await self._bind_profile(session, principal_id, org_id)
            await session.execute(self._upsert_role_stmt(principal_id, org_id, role))
            await session.commit()
        logger.info("role_assigned", principal_id=principal_id, org_id=org_id, role=role.value)

    async def create_organization(self, owner_id: str, name: str, slug: str) -> Organization:
        """Create a tenant and make ``owner_id`` its org_admin, in one transaction."""
        async with AsyncSession(self._engine) as session:
            org = Organization(name=name, slug=slug)
            session.add(org)
            try:
                await session.flush()
            except IntegrityError as exc:
                await session.rollback()
                msg = f"Organization slug {slug!r} is taken"
                raise StorageError(msg) from exc

            await self._bind_profile(session, owner_id, org.id)
            await session.execute(self._upsert_role_stmt(owner_id, org.id, RoleCode.ORG_ADMIN))
            await session.commit()
            await session.refresh(org)
        logger.info("organization_created", org_id=org.id, slug=slug, owner_id=owner_id)
        return org

    async def get_invite(self, invite_id: str) -> TeamInvite | None:
        async with AsyncSession(self._engine) as session:
            return await session.get(TeamInvite, invite_id)

    async def accept_invite(self, invite_id: str, profile: Profile) -> TeamInvite:
        """Bind ``profile`` to the invite's tenant with the invited role.

        Re-accepting an invite already accepted by the same principal is a no-op
        that returns the invite, so retries and races converge.
        """
        async with AsyncSession(self._engine) as session:
            invite = await session.get(TeamInvite, invite_id)
            invite = check_invite(invite, profile)

            if invite.status == InviteStatus.ACCEPTED:
                return invite

            role = RoleCode(invite.role)
            await self._bind_profile(session, profile.id, invite.org_id)
            await session.execute(self._upsert_role_stmt(profile.id, invite.org_id, role))
            invite.status = InviteStatus.ACCEPTED.value
            invite.accepted_at = _utc_now()
            invite.accepted_by = profile.id
            session.add(invite)
            await session.commit()
            await session.refresh(invite)

        logger.info(
            "invite_accepted",
            invite_id=invite_id,
            org_id=invite.org_id,
            principal_id=profile.id,
            role=invite.role,
        )
        return invite


def check_invite(
    invite: TeamInvite | None,
    profile: Profile | None = None,
    now: datetime | None = None,
) -> TeamInvite:
    """Return ``invite`` if ``profile`` (when given) may accept it, else raise InviteError."""
    if invite is None:
        msg = "Invite not found"
        raise InviteError(msg)

    if invite.status == InviteStatus.ACCEPTED:
        if profile is not None and invite.accepted_by == profile.id:
            return invite
        msg = "This invite has already been used"
        raise InviteError(msg)
    if invite.status != InviteStatus.PENDING:
        msg = "This invite is no longer valid"
        raise InviteError(msg)

    if invite.expires_at is not None and invite.expires_at < (now or _utc_now()):
        msg = "This invite has expired"
        raise InviteError(msg)

    try:
        RoleCode(invite.role)
    except ValueError as exc:
        msg = "This invite carries an unknown role"
        raise InviteError(msg) from exc
    if invite.role == RoleCode.SUPER_ADMIN:
        msg = "Platform roles cannot be granted by invite"
        raise InviteError(msg)

    if profile is None:
        return invite
    if profile.email.lower() != invite.email.lower():
        msg = "Email does not match invite"
        raise InviteError(msg)
    if profile.org_id is not None and profile.org_id != invite.org_id:
        msg = "Profile already belongs to another organization"
        raise InviteError(msg)
    return invite
