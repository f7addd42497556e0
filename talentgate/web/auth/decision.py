"""Per-request authorization decision.

Order of evaluation:

1. public route            -> ALLOW (no identity resolution at all)
2. no local session        -> REDIRECT_LOGIN
3. tenant/role lookup      (role cache cookie first, source of truth second)
4. degraded lookup         -> ALLOW only where no role is needed, else REDIRECT_LOGIN
5. no tenant (and not super_admin)
                           -> ALLOW on onboarding routes, else REDIRECT_ROLE_HOME (onboarding)
6. route table check       -> ALLOW or REDIRECT_ROLE_HOME (the role's home)

The decision reads only the path, the cookies and the tenant/role data, so
two calls with the same inputs produce the same outcome.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from talentgate.types import Outcome, RoleCode
from talentgate.web.auth.roles import home_for_role
from talentgate.web.auth.route_table import (
    ONBOARDING_ROUTES,
    PUBLIC_ROUTES,
    RouteTable,
    is_onboarding_route,
    is_public_route,
)

if TYPE_CHECKING:
    from talentgate.web.auth.role_lookup import TenantRoleLookup, TenantRoles
    from talentgate.web.auth.session import IdentityResolver


@dataclass(frozen=True, slots=True)
class Decision:
    outcome: Outcome
    reason: str
    location: str | None = None
    principal_id: str | None = None
    role: RoleCode | None = None
    tenant_slug: str | None = None
    set_role_cookie: str | None = None
    clear_role_cookie: bool = False

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


class Authorizer:
    """Composes identity, tenant/role lookup and the route table into one decision."""

    def __init__(
        self,
        identity: IdentityResolver,
        lookup: TenantRoleLookup,
        table: RouteTable,
        *,
        role_cookie_name: str = "x-user-role",
        login_path: str = "/login",
        onboarding_path: str = "/onboarding",
        platform_home: str = "/admin",
        tenant_home: str = "/org",
        public_routes: Iterable[str] = PUBLIC_ROUTES,
        onboarding_routes: Iterable[str] = ONBOARDING_ROUTES,
    ) -> None:
        self._identity = identity
        self._lookup = lookup
        self._table = table
        self._role_cookie_name = role_cookie_name
        self._login_path = login_path
        self._onboarding_path = onboarding_path
        self._platform_home = platform_home
        self._tenant_home = tenant_home
        self._public_routes = tuple(public_routes)
        self._onboarding_routes = tuple(onboarding_routes)

    @property
    def table(self) -> RouteTable:
        return self._table

    def home_for(self, role: RoleCode | None) -> str:
        return home_for_role(
            role,
            platform_home=self._platform_home,
            tenant_home=self._tenant_home,
            no_role_home=self._onboarding_path,
        )

    async def decide(self, path: str, cookies: Mapping[str, str]) -> Decision:
        if is_public_route(path, self._public_routes):
            return Decision(outcome=Outcome.ALLOW, reason="public_route")

        principal_id = self._identity.resolve(cookies)
        if principal_id is None:
            return Decision(
                outcome=Outcome.REDIRECT_LOGIN,
                reason="no_session",
                location=self._login_path,
            )

        cookie_value = cookies.get(self._role_cookie_name)
        result = await self._lookup.resolve(principal_id, cookie_value)
        outcome, reason, location = self._evaluate(path, result)

        set_cookie = self._lookup.cache_value(result)
        return Decision(
            outcome=outcome,
            reason=reason,
            location=location,
            principal_id=principal_id,
            role=None if result.degraded else result.primary_role,
            tenant_slug=result.tenant_slug,
            set_role_cookie=set_cookie,
            clear_role_cookie=bool(cookie_value) and not result.from_cache and set_cookie is None,
        )

    def _evaluate(self, path: str, result: TenantRoles) -> tuple[Outcome, str, str | None]:
        if result.degraded:
            if self._table.is_route_allowed(path, None):
                return Outcome.ALLOW, "lookup_degraded", None
            return Outcome.REDIRECT_LOGIN, "lookup_degraded", self._login_path

        role = result.primary_role
        onboarding = is_onboarding_route(path, self._onboarding_routes)

        if role is not RoleCode.SUPER_ADMIN and not result.has_tenant:
            if onboarding:
                return Outcome.ALLOW, "onboarding", None
            return Outcome.REDIRECT_ROLE_HOME, "no_tenant", self._onboarding_path

        if role is None and onboarding:
            return Outcome.ALLOW, "onboarding", None

        if self._table.is_route_allowed(path, role):
            return Outcome.ALLOW, "role_allowed", None
        return Outcome.REDIRECT_ROLE_HOME, "role_denied", self.home_for(role)
