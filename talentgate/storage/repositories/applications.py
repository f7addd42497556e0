"""Tenant-scoped application and interview storage.

Child ids are always derived from rows that were already fetched through a
tenant-scoped repository; the child query repeats the tenant filter.
"""

from __future__ import annotations

from collections.abc import Collection

from sqlmodel import col

from talentgate.models.database import Application, Interview
from talentgate.storage.scoping import TenantScopedRepository


class ApplicationRepository(TenantScopedRepository[Application]):
    model = Application

    async def list_for_jobs(self, job_ids: Collection[str]) -> list[Application]:
        return await self.list_where_in("job_id", job_ids)


class InterviewRepository(TenantScopedRepository[Interview]):
    model = Interview

    async def list_for_applications(
        self,
        application_ids: Collection[str],
        interviewer_id: str | None = None,
    ) -> list[Interview]:
        if not application_ids:
            return []
        criteria = [col(Interview.application_id).in_(list(application_ids))]
        if interviewer_id is not None:
            criteria.append(col(Interview.interviewer_id) == interviewer_id)
        return await self._fetch(*criteria, order_by=col(Interview.created_at).desc())
