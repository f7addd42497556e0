"""Authentication routes: signup, password login, logout, current principal."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import SQLAlchemyError

from talentgate.exceptions import StorageError
from talentgate.models.api import LoginRequest, MeResponse, SessionResponse, SignupRequest
from talentgate.models.database import Profile
from talentgate.web.auth.passwords import hash_password, verify_password
from talentgate.web.auth.rbac import require_principal
from talentgate.web.auth.role_lookup import TenantRoles
from talentgate.web.dependencies import Services, client_ip, get_services, request_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _start_session(response: Response, services: Services, profile: Profile) -> None:
    settings = services.settings
    token = services.sessions.create_session(profile.id)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.session_max_age,
    )
    # A cached role belongs to whoever held the previous session
    response.delete_cookie(settings.role_cookie_name)


@router.post("/signup", status_code=201)
async def signup(
    body: SignupRequest,
    request: Request,
    response: Response,
    services: Services = Depends(get_services),
) -> SessionResponse:
    """Create a principal with no tenant and log it in."""
    try:
        profile = await services.memberships.create_profile(
            body.email, hash_password(body.password), name=body.name
        )
    except StorageError as exc:
        raise HTTPException(status_code=409, detail="Email already registered") from exc

    _start_session(response, services, profile)
    await services.audit.log(
        user_id=profile.id,
        action="auth.signup",
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    return SessionResponse(status="ok", principal_id=profile.id, email=profile.email)


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    services: Services = Depends(get_services),
) -> SessionResponse:
    """Create a session via email/password."""
    profile = await services.memberships.get_profile_by_email(body.email)
    if (
        profile is None
        or not profile.is_active
        or not verify_password(body.password, profile.password_hash)
    ):
        logger.info("login_failed", ip=client_ip(request))
        raise HTTPException(status_code=401, detail="Invalid credentials")

    _start_session(response, services, profile)
    await services.audit.log(
        org_id=profile.org_id,
        user_id=profile.id,
        action="auth.login",
        ip_address=client_ip(request),
        request_id=request_id(request),
    )
    logger.info("user_logged_in", principal_id=profile.id)
    return SessionResponse(status="ok", principal_id=profile.id, email=profile.email)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    services: Services = Depends(get_services),
) -> dict[str, str]:
    settings = services.settings
    token = request.cookies.get(settings.session_cookie_name)
    session = services.sessions.validate_session(token)
    if token:
        services.sessions.destroy_session(token)
    if session is not None:
        await services.audit.log(
            user_id=session.principal_id,
            action="auth.logout",
            ip_address=client_ip(request),
            request_id=request_id(request),
        )
    response.delete_cookie(settings.session_cookie_name)
    response.delete_cookie(settings.role_cookie_name)
    return {"status": "ok"}


@router.get("/me")
async def me(
    profile: Profile = Depends(require_principal),
    services: Services = Depends(get_services),
) -> MeResponse:
    """Current principal with tenant, roles and department scope.

    Profile, role rows and organization are fetched concurrently and joined here.
    """
    try:
        initial = await services.lookup.load_initial(profile.id)
    except (TimeoutError, SQLAlchemyError) as exc:
        logger.error("initial_load_failed", principal_id=profile.id, error=str(exc))
        raise HTTPException(status_code=503, detail="Service temporarily unavailable") from exc

    if initial.profile is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    org = initial.organization
    departments = await services.lookup.department_ids(
        TenantRoles(
            principal_id=profile.id,
            tenant_id=initial.profile.org_id,
            tenant_slug=org.slug if org else None,
            roles=initial.roles,
        )
    )
    return MeResponse(
        principal_id=profile.id,
        email=initial.profile.email,
        name=initial.profile.name,
        tenant_id=initial.profile.org_id,
        tenant_slug=org.slug if org else None,
        primary_role=initial.primary_role,
        roles=list(initial.roles),
        permitted_department_ids=None if departments is None else list(departments),
    )
