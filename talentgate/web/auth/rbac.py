"""Role-based access control dependencies for multi-tenant requests.

The middleware only gates routes from cheap, cookie-level data. Handlers that
return personal data or mutate records depend on ``require_principal`` (strong
identity check) and build their ``AuthorizationContext`` from a fresh lookup,
never from the role cache cookie.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Depends, HTTPException, Request

from talentgate.models.database import Profile
from talentgate.types import RoleCode
from talentgate.web.dependencies import Services, get_services
from talentgate.web.tenant_context import AuthorizationContext

logger = structlog.get_logger(__name__)

NOT_AUTHENTICATED = "Not authenticated"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


async def require_principal(
    request: Request,
    services: Services = Depends(get_services),
) -> Profile:
    """Strong identity check: live session and active profile, else 401."""
    profile = await services.identity.verify(request.cookies)
    if profile is None:
        raise HTTPException(status_code=401, detail=NOT_AUTHENTICATED)
    structlog.contextvars.bind_contextvars(principal_id=profile.id)
    return profile


async def get_auth_context(
    profile: Profile = Depends(require_principal),
    services: Services = Depends(get_services),
) -> AuthorizationContext:
    """Resolve tenant, role and department visibility from the source of truth."""
    result = await services.lookup.lookup(profile.id)
    if result.degraded:
        return AuthorizationContext(
            principal_id=profile.id,
            tenant_id=None,
            primary_role=None,
            email=profile.email,
            degraded=True,
        )

    departments = await services.lookup.department_ids(result)
    return AuthorizationContext(
        principal_id=profile.id,
        tenant_id=result.tenant_id,
        primary_role=result.primary_role,
        email=profile.email,
        tenant_slug=result.tenant_slug,
        permitted_department_ids=departments,
    )


async def require_tenant(
    ctx: AuthorizationContext = Depends(get_auth_context),
) -> AuthorizationContext:
    """Require a bound tenant (any role)."""
    if ctx.tenant_id is None:
        raise HTTPException(status_code=403, detail=INSUFFICIENT_PERMISSIONS)
    return ctx


def require_roles(
    *roles: RoleCode,
) -> Callable[..., Awaitable[AuthorizationContext]]:
    """Dependency factory: the principal's primary role must be one of ``roles``.

    super_admin always passes.
    """
    allowed = frozenset(roles)

    async def dependency(
        ctx: AuthorizationContext = Depends(get_auth_context),
    ) -> AuthorizationContext:
        if ctx.is_super_admin:
            return ctx
        if ctx.primary_role not in allowed or ctx.tenant_id is None:
            logger.warning(
                "role_check_failed",
                principal_id=ctx.principal_id,
                role=ctx.primary_role,
                required=sorted(r.value for r in allowed),
                degraded=ctx.degraded,
            )
            raise HTTPException(status_code=403, detail=INSUFFICIENT_PERMISSIONS)
        return ctx

    return dependency
