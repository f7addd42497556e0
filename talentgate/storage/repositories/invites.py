"""Tenant-scoped team invite storage."""

from __future__ import annotations

from datetime import timedelta

import structlog
from sqlmodel import col
from sqlmodel.ext.asyncio.session import AsyncSession

from talentgate.models.database import TeamInvite, _utc_now
from talentgate.storage.scoping import TenantScopedRepository
from talentgate.types import InviteStatus, RoleCode

logger = structlog.get_logger(__name__)


class InviteRepository(TenantScopedRepository[TeamInvite]):
    """Invites issued by one tenant."""

    model = TeamInvite

    async def create(
        self,
        email: str,
        role: RoleCode,
        invited_by: str,
        expires_in_days: int = 7,
    ) -> TeamInvite:
        invite = TeamInvite(
            org_id=self.tenant_id,
            email=email.lower(),
            role=role.value,
            invited_by=invited_by,
            expires_at=_utc_now() + timedelta(days=expires_in_days),
        )
        async with AsyncSession(self._engine) as session:
            session.add(invite)
            await session.commit()
            await session.refresh(invite)
        logger.info("invite_created", invite_id=invite.id, org_id=self.tenant_id, role=role.value)
        return invite

    async def list_pending(self) -> list[TeamInvite]:
        return await self._fetch(
            col(TeamInvite.status) == InviteStatus.PENDING.value,
            order_by=col(TeamInvite.created_at).desc(),
        )
