"""API request/response schemas for FastAPI endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from talentgate.types import RoleCode

_SLUG_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=8, max_length=256)
    name: str = Field(default="", max_length=200)


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    status: str
    principal_id: str
    email: str


class MeResponse(BaseModel):
    principal_id: str
    email: str
    name: str
    tenant_id: str | None
    tenant_slug: str | None
    primary_role: RoleCode | None
    roles: list[RoleCode]
    permitted_department_ids: list[str] | None


class CreateOrganizationRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    slug: str = Field(pattern=_SLUG_PATTERN)


class OrganizationResponse(BaseModel):
    id: str
    slug: str
    name: str
    subscription_status: str


class CreateInviteRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    role: RoleCode
    expires_in_days: int = Field(default=7, ge=1, le=90)


class InviteResponse(BaseModel):
    id: str
    org_id: str
    email: str
    role: str
    status: str
    expires_at: datetime | None


class AssignRoleRequest(BaseModel):
    role: RoleCode


class MemberRoleResponse(BaseModel):
    user_id: str
    org_id: str
    role: RoleCode


class InviteValidationResponse(BaseModel):
    valid: bool
    organization_name: str | None = None
    email: str | None = None
    role: str | None = None
    reason: str | None = None


class AcceptInviteRequest(BaseModel):
    invite_id: str


class AcceptInviteResponse(BaseModel):
    status: str
    org_id: str
    role: RoleCode


class JobResponse(BaseModel):
    id: str
    title: str
    status: str
    department_id: str | None
    created_at: datetime


class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    candidate_id: str
    stage: str


class InterviewResponse(BaseModel):
    id: str
    application_id: str
    interviewer_id: str | None
    scheduled_at: datetime | None
    status: str
