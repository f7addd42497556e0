"""Organization onboarding and team invite routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from talentgate.exceptions import StorageError
from talentgate.models.api import (
    AssignRoleRequest,
    CreateInviteRequest,
    CreateOrganizationRequest,
    InviteResponse,
    MemberRoleResponse,
    OrganizationResponse,
)
from talentgate.models.database import Profile, TeamInvite
from talentgate.storage.repositories.invites import InviteRepository
from talentgate.types import RoleCode
from talentgate.web.auth.rbac import require_principal, require_roles
from talentgate.web.dependencies import Services, client_ip, get_services, request_id
from talentgate.web.tenant_context import AuthorizationContext

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/org", tags=["org"])


def _invite_response(invite: TeamInvite) -> InviteResponse:
    return InviteResponse(
        id=invite.id,
        org_id=invite.org_id,
        email=invite.email,
        role=invite.role,
        status=invite.status,
        expires_at=invite.expires_at,
    )


@router.post("/create", status_code=201)
async def create_organization(
    body: CreateOrganizationRequest,
    request: Request,
    response: Response,
    profile: Profile = Depends(require_principal),
    services: Services = Depends(get_services),
) -> OrganizationResponse:
    """Onboarding: create a tenant and make the caller its org_admin."""
    if profile.org_id is not None:
        raise HTTPException(status_code=409, detail="Already a member of an organization")

    try:
        org = await services.writer.create_organization(profile.id, body.name, body.slug)
    except StorageError as exc:
        raise HTTPException(status_code=409, detail="Organization slug is taken") from exc

    response.delete_cookie(services.settings.role_cookie_name)
    await services.audit.log(
        org_id=org.id,
        user_id=profile.id,
        action="org.created",
        resource_type="organization",
        resource_id=org.id,
        details={"slug": org.slug},
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    return OrganizationResponse(
        id=org.id,
        slug=org.slug,
        name=org.name,
        subscription_status=org.subscription_status,
    )


@router.post("/invites", status_code=201)
async def create_invite(
    body: CreateInviteRequest,
    request: Request,
    ctx: AuthorizationContext = Depends(require_roles(RoleCode.ORG_ADMIN)),
    services: Services = Depends(get_services),
) -> InviteResponse:
    if body.role is RoleCode.SUPER_ADMIN:
        raise HTTPException(status_code=400, detail="Platform roles cannot be granted by invite")

    invites = InviteRepository(services.engine, ctx.require_tenant())
    invite = await invites.create(
        body.email, body.role, invited_by=ctx.principal_id, expires_in_days=body.expires_in_days
    )
    await services.audit.log(
        org_id=invite.org_id,
        user_id=ctx.principal_id,
        action="invite.created",
        resource_type="team_invite",
        resource_id=invite.id,
        details={"role": invite.role},
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    return _invite_response(invite)


@router.get("/invites")
async def list_invites(
    ctx: AuthorizationContext = Depends(require_roles(RoleCode.ORG_ADMIN)),
    services: Services = Depends(get_services),
) -> list[InviteResponse]:
    invites = InviteRepository(services.engine, ctx.require_tenant())
    return [_invite_response(invite) for invite in await invites.list_pending()]


@router.put("/members/{user_id}/role")
async def assign_member_role(
    user_id: str,
    body: AssignRoleRequest,
    request: Request,
    ctx: AuthorizationContext = Depends(require_roles(RoleCode.ORG_ADMIN)),
    services: Services = Depends(get_services),
) -> MemberRoleResponse:
    """Admin role assignment for an existing member of the caller's tenant."""
    tenant_id = ctx.require_tenant()
    if body.role is RoleCode.SUPER_ADMIN:
        raise HTTPException(status_code=400, detail="Platform roles cannot be granted here")
    if user_id == ctx.principal_id:
        raise HTTPException(status_code=400, detail="You cannot change your own role")

    member = await services.memberships.get_profile(user_id)
    # Members of other tenants look the same as unknown ids
    if member is None or member.org_id != tenant_id:
        raise HTTPException(status_code=404, detail="Member not found")

    await services.writer.assign_role(member.id, tenant_id, body.role)
    await services.audit.log(
        org_id=tenant_id,
        user_id=ctx.principal_id,
        action="role.assigned",
        resource_type="user_role",
        resource_id=member.id,
        details={"role": body.role.value},
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    return MemberRoleResponse(user_id=member.id, org_id=tenant_id, role=body.role)
