"""Invite validation (public) and acceptance (authenticated)."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from talentgate.exceptions import InviteError, StorageError
from talentgate.models.api import (
    AcceptInviteRequest,
    AcceptInviteResponse,
    InviteValidationResponse,
)
from talentgate.models.database import Profile
from talentgate.storage.repositories.memberships import check_invite
from talentgate.types import RoleCode
from talentgate.web.auth.rbac import require_principal
from talentgate.web.dependencies import Services, client_ip, get_services, request_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/invites", tags=["invites"])


@router.get("/validate")
async def validate_invite(
    invite_id: str,
    services: Services = Depends(get_services),
) -> InviteValidationResponse:
    """Tell an invitee whether the invite can still be accepted."""
    invite = await services.writer.get_invite(invite_id)
    try:
        invite = check_invite(invite)
    except InviteError as exc:
        return InviteValidationResponse(valid=False, reason=str(exc))

    org = await services.memberships.get_organization(invite.org_id)
    return InviteValidationResponse(
        valid=True,
        organization_name=org.name if org else None,
        email=invite.email,
        role=invite.role,
    )


@router.post("/accept")
async def accept_invite(
    body: AcceptInviteRequest,
    request: Request,
    response: Response,
    profile: Profile = Depends(require_principal),
    services: Services = Depends(get_services),
) -> AcceptInviteResponse:
    """Bind the caller to the inviting tenant with the invited role."""
    try:
        invite = await services.writer.accept_invite(body.invite_id, profile)
    except InviteError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("invite_accept_failed", invite_id=body.invite_id, error=str(exc))
        raise HTTPException(status_code=400, detail="Invite could not be accepted") from exc

    response.delete_cookie(services.settings.role_cookie_name)
    await services.audit.log(
        org_id=invite.org_id,
        user_id=profile.id,
        action="invite.accepted",
        resource_type="team_invite",
        resource_id=invite.id,
        details={"role": invite.role},
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    return AcceptInviteResponse(status="accepted", org_id=invite.org_id, role=RoleCode(invite.role))
