"""Tenant & role lookup: cache first, source of truth second, fail closed.

The slow path issues two sequential queries (profile joined with its
organization, then role rows) inside one timeout. Transport failures are
retried, then reported on the error log and turned into a degraded result
that carries no role. Nothing in this module ever upgrades a principal to a
role it was not found to hold.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from talentgate.exceptions import RoleLookupError
from talentgate.types import RoleCode
from talentgate.utils.retry import retry
from talentgate.web.auth.roles import DEPARTMENT_SCOPED_ROLES, parse_role, resolve_primary_role

if TYPE_CHECKING:
    from collections.abc import Iterable

    from talentgate.models.database import Organization, Profile, UserRole
    from talentgate.storage.repositories.memberships import MembershipRepository
    from talentgate.web.auth.role_cache import RoleCache

logger = structlog.get_logger(__name__)

_TRANSPORT_ERRORS = (SQLAlchemyError, OSError, ConnectionError)


@dataclass(frozen=True, slots=True)
class TenantRoles:
    """Result of a tenant/role lookup for one principal."""

    principal_id: str
    tenant_id: str | None = None
    tenant_slug: str | None = None
    roles: tuple[RoleCode, ...] = ()
    degraded: bool = False
    from_cache: bool = False

    @property
    def primary_role(self) -> RoleCode | None:
        return resolve_primary_role(self.roles)

    @property
    def has_tenant(self) -> bool:
        return self.tenant_id is not None or bool(self.tenant_slug)


@dataclass(frozen=True, slots=True)
class InitialLoad:
    """Profile, organization and roles fetched concurrently and joined in memory."""

    profile: Profile | None
    organization: Organization | None
    roles: tuple[RoleCode, ...] = field(default=())

    @property
    def primary_role(self) -> RoleCode | None:
        return resolve_primary_role(self.roles)


def roles_for_tenant(rows: Iterable[UserRole], tenant_id: str | None) -> tuple[RoleCode, ...]:
    """Keep rows that belong to ``tenant_id``, plus platform-wide super_admin rows."""
    roles: list[RoleCode] = []
    for row in rows:
        role = parse_role(row.role)
        if role is None:
            continue
        if role is RoleCode.SUPER_ADMIN or (tenant_id is not None and row.org_id == tenant_id):
            if role not in roles:
                roles.append(role)
    return tuple(roles)


class TenantRoleLookup:
    """Resolve ``principal_id`` to its tenant and roles."""

    def __init__(
        self,
        memberships: MembershipRepository,
        role_cache: RoleCache | None = None,
        *,
        timeout: float = 8.0,
        attempts: int = 2,
        retry_delay_ms: int = 100,
        max_rows: int = 10,
    ) -> None:
        self._memberships = memberships
        self._role_cache = role_cache
        self._timeout = timeout
        self._attempts = attempts
        self._retry_delay_ms = retry_delay_ms
        self._max_rows = max_rows

    def from_cache(self, cookie_value: str | None, principal_id: str) -> TenantRoles | None:
        """Return the cached lookup when the cookie is valid for this principal."""
        if self._role_cache is None or not cookie_value:
            return None
        cached = self._role_cache.decode(cookie_value, principal_id)
        if cached is None:
            return None
        return TenantRoles(
            principal_id=principal_id,
            tenant_slug=cached.tenant_slug or None,
            roles=(cached.role,),
            from_cache=True,
        )

    def cache_value(self, result: TenantRoles) -> str | None:
        """Cookie value worth caching for ``result``, or None when nothing should be cached."""
        role = result.primary_role
        if self._role_cache is None or result.degraded or result.from_cache or role is None:
            return None
        return self._role_cache.encode(result.principal_id, role, result.tenant_slug)

    async def resolve(self, principal_id: str, cookie_value: str | None = None) -> TenantRoles:
        """Cache first; any absence or mismatch falls through to the full lookup."""
        cached = self.from_cache(cookie_value, principal_id)
        if cached is not None:
            return cached
        return await self.lookup(principal_id)

    async def lookup(self, principal_id: str) -> TenantRoles:
        """Full lookup against the source of truth, bounded by the timeout."""
        query = retry(
            max_attempts=self._attempts,
            delay_ms=self._retry_delay_ms,
            retry_on=(RoleLookupError,),
        )(self._query)
        try:
            return await asyncio.wait_for(query(principal_id), timeout=self._timeout)
        except TimeoutError:
            logger.error(
                "role_lookup_timeout",
                principal_id=principal_id,
                timeout_seconds=self._timeout,
            )
        except RoleLookupError as exc:
            logger.error("role_lookup_failed", principal_id=principal_id, error=str(exc))
        return TenantRoles(principal_id=principal_id, degraded=True)

    async def _query(self, principal_id: str) -> TenantRoles:
        try:
            found = await self._memberships.get_profile_with_org(principal_id)
            if found is None:
                return TenantRoles(principal_id=principal_id)

            profile, org = found
            tenant_id = profile.org_id
            rows = await self._memberships.list_role_rows(
                principal_id, tenant_id, limit=self._max_rows
            )
        except _TRANSPORT_ERRORS as exc:
            raise RoleLookupError(str(exc)) from exc

        return TenantRoles(
            principal_id=principal_id,
            tenant_id=tenant_id,
            tenant_slug=org.slug if org is not None else None,
            roles=roles_for_tenant(rows, tenant_id),
        )

    async def department_ids(self, result: TenantRoles) -> tuple[str, ...] | None:
        """Department ids for department-scoped roles; None means tenant-wide visibility."""
        role = result.primary_role
        if role not in DEPARTMENT_SCOPED_ROLES or result.tenant_id is None:
            return None
        try:
            ids = await asyncio.wait_for(
                self._memberships.list_department_ids(result.principal_id, result.tenant_id),
                timeout=self._timeout,
            )
        except (TimeoutError, *_TRANSPORT_ERRORS) as exc:
            logger.error(
                "department_lookup_failed",
                principal_id=result.principal_id,
                error=str(exc),
            )
            return ()
        return tuple(ids)

    async def load_initial(self, principal_id: str) -> InitialLoad:
        """Fetch profile, roles and organization concurrently, then join them."""
        profile, rows, org = await asyncio.wait_for(
            asyncio.gather(
                self._memberships.get_profile(principal_id),
                self._memberships.list_all_role_rows(principal_id, limit=self._max_rows),
                self._memberships.get_organization_for_principal(principal_id),
            ),
            timeout=self._timeout,
        )
        tenant_id = profile.org_id if profile is not None else None
        if org is not None and org.id != tenant_id:
            org = None
        return InitialLoad(
            profile=profile,
            organization=org,
            roles=roles_for_tenant(rows, tenant_id),
        )
