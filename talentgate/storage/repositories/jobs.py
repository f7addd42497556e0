"""Tenant-scoped job storage with optional department scoping."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlmodel import col

from talentgate.models.database import Job
from talentgate.storage.scoping import TenantScopedRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class JobRepository(TenantScopedRepository[Job]):
    """Jobs of one tenant, optionally narrowed to a set of departments.

    ``department_ids`` None means tenant-wide visibility. An empty sequence
    means the caller is department-scoped but has no departments, so nothing
    is visible.
    """

    model = Job

    def __init__(
        self,
        engine: AsyncEngine,
        tenant_id: str | None,
        department_ids: Sequence[str] | None = None,
    ) -> None:
        super().__init__(engine, tenant_id)
        self._department_ids = None if department_ids is None else tuple(department_ids)

    def _department_criteria(self) -> list[object]:
        if self._department_ids is None:
            return []
        return [col(Job.department_id).in_(self._department_ids)]

    async def list_visible(self, limit: int | None = None) -> list[Job]:
        if self._department_ids is not None and not self._department_ids:
            return []
        return await self._fetch(
            *self._department_criteria(),
            order_by=col(Job.created_at).desc(),
            limit=limit,
        )

    async def get_visible(self, job_id: str) -> Job | None:
        if self._department_ids is not None and not self._department_ids:
            return None
        rows = await self._fetch(col(Job.id) == job_id, *self._department_criteria(), limit=1)
        return rows[0] if rows else None
