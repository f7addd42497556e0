"""Interview listing, derived from the caller's visible jobs."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from talentgate.models.api import InterviewResponse
from talentgate.storage.repositories.applications import (
    ApplicationRepository,
    InterviewRepository,
)
from talentgate.storage.repositories.jobs import JobRepository
from talentgate.types import RoleCode
from talentgate.web.auth.rbac import require_roles
from talentgate.web.dependencies import Services, get_services
from talentgate.web.tenant_context import AuthorizationContext

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/interviews", tags=["interviews"])


@router.get("")
async def list_interviews(
    ctx: AuthorizationContext = Depends(
        require_roles(
            RoleCode.HR_MANAGER,
            RoleCode.RECRUITER,
            RoleCode.HIRING_MANAGER,
            RoleCode.INTERVIEWER,
        )
    ),
    services: Services = Depends(get_services),
) -> list[InterviewResponse]:
    """Interviews reachable through jobs -> applications -> interviews.

    Interviewers only see interviews assigned to them.
    """
    tenant_id = ctx.require_tenant()
    jobs = await JobRepository(
        services.engine, tenant_id, ctx.permitted_department_ids
    ).list_visible()
    applications = await ApplicationRepository(services.engine, tenant_id).list_for_jobs(
        [job.id for job in jobs]
    )
    interviewer_id = ctx.principal_id if ctx.primary_role is RoleCode.INTERVIEWER else None
    interviews = await InterviewRepository(services.engine, tenant_id).list_for_applications(
        [a.id for a in applications], interviewer_id=interviewer_id
    )
    logger.debug(
        "interviews_listed",
        jobs=len(jobs),
        applications=len(applications),
        interviews=len(interviews),
    )
    return [
        InterviewResponse(
            id=i.id,
            application_id=i.application_id,
            interviewer_id=i.interviewer_id,
            scheduled_at=i.scheduled_at,
            status=i.status,
        )
        for i in interviews
    ]
