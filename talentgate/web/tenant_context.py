"""Authorization context for multi-tenant request scoping."""

from __future__ import annotations

from dataclasses import dataclass

from talentgate.exceptions import TenantScopeError
from talentgate.types import RoleCode


@dataclass(frozen=True, slots=True)
class AuthorizationContext:
    """Immutable, request-scoped result of authorization. Never persisted."""

    principal_id: str
    tenant_id: str | None
    primary_role: RoleCode | None
    email: str = ""
    tenant_slug: str | None = None
    # None = tenant-wide visibility; a tuple (possibly empty) = only these departments
    permitted_department_ids: tuple[str, ...] | None = None
    degraded: bool = False

    @property
    def is_super_admin(self) -> bool:
        return self.primary_role is RoleCode.SUPER_ADMIN

    def require_tenant(self) -> str:
        """Return the tenant id, raising TenantScopeError when there is none."""
        if self.tenant_id is None:
            msg = f"Principal {self.principal_id} has no tenant"
            raise TenantScopeError(msg)
        return self.tenant_id
