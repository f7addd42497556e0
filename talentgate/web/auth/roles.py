"""Role priority, primary-role resolution and role home destinations."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from talentgate.types import RoleCode

logger = structlog.get_logger(__name__)

# Highest privilege first. Index is the priority rank.
ROLE_PRIORITY: tuple[RoleCode, ...] = (
    RoleCode.SUPER_ADMIN,
    RoleCode.ORG_ADMIN,
    RoleCode.HR_MANAGER,
    RoleCode.RECRUITER,
    RoleCode.HIRING_MANAGER,
    RoleCode.INTERVIEWER,
)

TENANT_ROLES: frozenset[RoleCode] = frozenset(ROLE_PRIORITY) - {RoleCode.SUPER_ADMIN}

# Roles whose visibility is limited to assigned departments
DEPARTMENT_SCOPED_ROLES: frozenset[RoleCode] = frozenset({RoleCode.HIRING_MANAGER})


def parse_role(value: object) -> RoleCode | None:
    """Return the RoleCode for a stored string, or None if it is not a known role."""
    if isinstance(value, RoleCode):
        return value
    if not isinstance(value, str):
        return None
    try:
        return RoleCode(value)
    except ValueError:
        logger.warning("unknown_role_code", role=value)
        return None


def resolve_primary_role(roles: Iterable[RoleCode | str]) -> RoleCode | None:
    """Pick the single highest-priority role; None when there are no roles."""
    parsed = {r for r in (parse_role(v) for v in roles) if r is not None}
    for role in ROLE_PRIORITY:
        if role in parsed:
            return role
    return None


def home_for_role(
    role: RoleCode | None,
    *,
    platform_home: str = "/admin",
    tenant_home: str = "/org",
    no_role_home: str = "/onboarding",
) -> str:
    """Return the landing path for a role.

    Every destination returned here must itself be reachable by that role,
    otherwise a denied request would redirect in a loop.
    """
    if role is None:
        return no_role_home
    if role is RoleCode.SUPER_ADMIN:
        return platform_home
    return tenant_home
