"""Static route authorization table.

Rules are matched in declaration order and the first match wins, so a more
specific prefix must be declared before its parent. A path that matches no
rule falls through to the table's default policy, which is allow unless the
deployment opts into ``route_default_policy = "deny"``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from talentgate.exceptions import ConfigError
from talentgate.types import RoleCode

_OA = RoleCode.ORG_ADMIN
_HR = RoleCode.HR_MANAGER
_RC = RoleCode.RECRUITER
_HM = RoleCode.HIRING_MANAGER
_IV = RoleCode.INTERVIEWER
_SA = RoleCode.SUPER_ADMIN


def path_matches(path: str, prefix: str) -> bool:
    """Exact match, or ``prefix`` followed by a path separator."""
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True, slots=True)
class RouteRule:
    prefix: str
    roles: frozenset[RoleCode]

    def matches(self, path: str) -> bool:
        return path_matches(path, self.prefix)


def _rule(prefix: str, *roles: RoleCode) -> RouteRule:
    return RouteRule(prefix=prefix, roles=frozenset(roles))


ROUTE_RULES: tuple[RouteRule, ...] = (
    # Tenant administration
    _rule("/org/settings/notifications", _HR),
    _rule("/org/settings/integrations", _OA),
    _rule("/org/settings/email", _OA),
    _rule("/org/settings/domain", _OA),
    _rule("/org/settings", _OA),
    _rule("/org/team", _OA),
    _rule("/org/departments", _OA),
    _rule("/org/branding", _OA),
    _rule("/org/career-page", _OA),
    # HR configuration
    _rule("/org/pipelines", _HR),
    _rule("/org/workflows", _HR),
    _rule("/org/offers/templates", _HR),
    _rule("/org/scorecard-templates", _HR),
    _rule("/org/screening-questions", _HR),
    _rule("/org/vacancy-settings", _HR),
    # Core ATS objects
    _rule("/org/analytics", _OA, _HR, _RC, _IV),
    _rule("/org/jobs", _HR, _RC, _HM),
    _rule("/org/candidates", _HR, _RC, _HM),
    _rule("/org/applications", _HR, _RC, _HM),
    _rule("/org/requisitions", _HR, _RC, _HM),
    _rule("/org/offers", _HR, _RC),
    _rule("/org/interviews", _HR, _RC, _HM, _IV),
    _rule("/org/scorecards", _HR, _RC, _HM, _IV),
    _rule("/org/documents", _HR, _RC),
    _rule("/org", _OA, _HR, _RC, _HM, _IV),
    # Tenant APIs served by this application
    _rule("/api/org/invites", _OA),
    _rule("/api/org/members", _OA),
    _rule("/api/jobs", _HR, _RC, _HM),
    _rule("/api/interviews", _HR, _RC, _HM, _IV),
    _rule("/api/auth/me", _OA, _HR, _RC, _HM, _IV),
    # Platform administration
    _rule("/admin", _SA),
    _rule("/organizations", _SA),
    _rule("/users", _SA),
    _rule("/tiers", _SA),
    _rule("/billing", _SA),
    _rule("/audit-logs", _SA),
    _rule("/settings", _SA),
)

# Reachable without a session; identity resolution is skipped entirely.
PUBLIC_ROUTES: tuple[str, ...] = (
    "/login",
    "/signup",
    "/forgot-password",
    "/reset-password",
    "/auth/callback",
    "/careers",
    "/portal/login",
    "/portal/auth",
    "/api/invites",
    "/api/careers",
    "/api/auth/login",
    "/api/auth/signup",
    "/api/auth/logout",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/api/offers/respond",
    "/offers/respond",
    "/api/health",
    "/api/webhooks",
    "/api/email/webhooks",
    "/onboarding",
)

# Credential endpoints throttled per client IP.
CREDENTIAL_ROUTES: tuple[str, ...] = (
    "/api/auth/login",
    "/api/auth/signup",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
)

# Reachable by an authenticated principal that has no tenant yet.
ONBOARDING_ROUTES: tuple[str, ...] = (
    "/onboarding",
    "/api/org/create",
    "/api/auth/me",
)

# Static assets and framework-internal paths never pass through authorization.
EXCLUDED_PREFIXES: tuple[str, ...] = (
    "/static",
    "/favicon.ico",
    "/robots.txt",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def is_public_route(path: str, public_routes: Iterable[str] = PUBLIC_ROUTES) -> bool:
    return any(path_matches(path, route) for route in public_routes)


def is_onboarding_route(path: str, onboarding_routes: Iterable[str] = ONBOARDING_ROUTES) -> bool:
    return any(path_matches(path, route) for route in onboarding_routes)


def is_excluded_path(path: str) -> bool:
    return any(path_matches(path, prefix) for prefix in EXCLUDED_PREFIXES)


def validate_rules(rules: Iterable[RouteRule]) -> None:
    """Reject a table in which some rule can never match.

    A rule is dead when an earlier rule already matches its prefix, which is
    what happens when a parent prefix is declared before a child.
    """
    seen: list[RouteRule] = []
    for rule in rules:
        if not rule.prefix.startswith("/") or (rule.prefix != "/" and rule.prefix.endswith("/")):
            msg = f"Route prefix must start with '/' and have no trailing '/': {rule.prefix!r}"
            raise ConfigError(msg)
        for earlier in seen:
            if earlier.matches(rule.prefix):
                msg = f"Route rule {rule.prefix!r} is shadowed by earlier rule {earlier.prefix!r}"
                raise ConfigError(msg)
        seen.append(rule)


class RouteTable:
    """Ordered path-prefix → allowed-roles lookup."""

    def __init__(
        self,
        rules: Iterable[RouteRule] = ROUTE_RULES,
        *,
        default_allow: bool = True,
    ) -> None:
        self._rules = tuple(rules)
        validate_rules(self._rules)
        self._default_allow = default_allow

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    @property
    def default_allow(self) -> bool:
        return self._default_allow

    def find_rule(self, path: str) -> RouteRule | None:
        for rule in self._rules:
            if rule.matches(path):
                return rule
        return None

    def is_route_allowed(self, path: str, role: RoleCode | None) -> bool:
        """Return whether ``role`` may reach ``path``.

        ``None`` means no role could be resolved; it is allowed only where the
        default policy applies.
        """
        if role is RoleCode.SUPER_ADMIN:
            return True
        rule = self.find_rule(path)
        if rule is None:
            return self._default_allow
        return role is not None and role in rule.roles

    def unmapped(self, paths: Iterable[str]) -> list[str]:
        """Return the paths that no rule covers and that are neither public nor onboarding."""
        return sorted(
            {
                p
                for p in paths
                if self.find_rule(p) is None
                and not is_public_route(p)
                and not is_onboarding_route(p)
                and not is_excluded_path(p)
            }
        )


_default_table = RouteTable()


def is_route_allowed(path: str, role: RoleCode | None) -> bool:
    """Check ``path`` against the built-in table with the default-allow policy."""
    return _default_table.is_route_allowed(path, role)
