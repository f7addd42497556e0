"""Tenant-scoped job and application API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from talentgate.models.api import ApplicationResponse, JobResponse
from talentgate.models.database import Application, Job
from talentgate.storage.repositories.applications import ApplicationRepository
from talentgate.storage.repositories.jobs import JobRepository
from talentgate.types import RoleCode
from talentgate.web.auth.rbac import require_roles
from talentgate.web.dependencies import Services, get_services
from talentgate.web.tenant_context import AuthorizationContext

router = APIRouter(prefix="/api/jobs", tags=["jobs"])

_job_readers = require_roles(RoleCode.HR_MANAGER, RoleCode.RECRUITER, RoleCode.HIRING_MANAGER)


def _jobs(services: Services, ctx: AuthorizationContext) -> JobRepository:
    return JobRepository(services.engine, ctx.require_tenant(), ctx.permitted_department_ids)


def _job_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        title=job.title,
        status=job.status,
        department_id=job.department_id,
        created_at=job.created_at,
    )


def _application_response(application: Application) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        job_id=application.job_id,
        candidate_id=application.candidate_id,
        stage=application.stage,
    )


@router.get("")
async def list_jobs(
    ctx: AuthorizationContext = Depends(_job_readers),
    services: Services = Depends(get_services),
) -> list[JobResponse]:
    jobs = await _jobs(services, ctx).list_visible()
    return [_job_response(job) for job in jobs]


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    ctx: AuthorizationContext = Depends(_job_readers),
    services: Services = Depends(get_services),
) -> JobResponse:
    job = await _jobs(services, ctx).get_visible(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_response(job)


@router.get("/{job_id}/applications")
async def list_job_applications(
    job_id: str,
    ctx: AuthorizationContext = Depends(_job_readers),
    services: Services = Depends(get_services),
) -> list[ApplicationResponse]:
    """Applications for one visible job; the parent must resolve in this tenant first."""
    job = await _jobs(services, ctx).get_visible(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    applications = ApplicationRepository(services.engine, ctx.require_tenant())
    return [_application_response(a) for a in await applications.list_for_jobs([job.id])]
