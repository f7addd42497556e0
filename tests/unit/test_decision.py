"""Unit tests for the per-request authorization decision."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from talentgate.storage.repositories.memberships import MembershipRepository
from talentgate.types import Outcome, RoleCode
from talentgate.web.auth.decision import Authorizer
from talentgate.web.auth.role_cache import RoleCache
from talentgate.web.auth.role_lookup import TenantRoleLookup
from talentgate.web.auth.route_table import RouteTable
from talentgate.web.auth.session import IdentityResolver, SessionAuth

SECRET = "test-secret"


class Harness:
    def __init__(self, engine, *, default_allow: bool = True, memberships=None) -> None:
        self.sessions = SessionAuth(SECRET)
        self.cache = RoleCache(SECRET)
        self.memberships = memberships or MembershipRepository(engine)
        self.lookup = TenantRoleLookup(self.memberships, self.cache, retry_delay_ms=0)
        self.authorizer = Authorizer(
            IdentityResolver(self.sessions, self.memberships),
            self.lookup,
            RouteTable(default_allow=default_allow),
        )

    def cookies(self, principal_id: str, role_cookie: str | None = None) -> dict[str, str]:
        cookies = {"session": self.sessions.create_session(principal_id)}
        if role_cookie is not None:
            cookies["x-user-role"] = role_cookie
        return cookies

    async def decide(self, path: str, cookies: dict[str, str]):
        return await self.authorizer.decide(path, cookies)


@pytest.fixture()
def harness(async_engine):
    return Harness(async_engine)


@pytest.mark.unit
class TestUnauthenticated:
    async def test_protected_route_redirects_to_login(self, harness) -> None:
        decision = await harness.decide("/org/jobs", {})
        assert decision.outcome is Outcome.REDIRECT_LOGIN
        assert decision.location == "/login"
        assert decision.reason == "no_session"

    async def test_forged_session_redirects_to_login(self, harness) -> None:
        decision = await harness.decide("/org", {"session": "user-1.1.nonce.badsig"})
        assert decision.outcome is Outcome.REDIRECT_LOGIN

    async def test_public_route_skips_identity_resolution(self) -> None:
        identity = AsyncMock()
        lookup = AsyncMock()
        authorizer = Authorizer(identity, lookup, RouteTable())
        decision = await authorizer.decide("/careers/acme", {})
        assert decision.allowed
        identity.resolve.assert_not_called()
        lookup.resolve.assert_not_called()


@pytest.mark.unit
class TestTenantRoles:
    async def test_interviewer_scope(self, harness, seed) -> None:
        acme = await seed.org("acme")
        iv = await seed.member("iv@acme.test", acme, RoleCode.INTERVIEWER)
        cookies = harness.cookies(iv.id)

        allowed = await harness.decide("/org/interviews/7", cookies)
        assert allowed.outcome is Outcome.ALLOW
        assert allowed.role is RoleCode.INTERVIEWER

        denied = await harness.decide("/org/candidates", cookies)
        assert denied.outcome is Outcome.REDIRECT_ROLE_HOME
        assert denied.location == "/org"

    async def test_org_admin_cannot_reach_platform(self, harness, seed) -> None:
        acme = await seed.org("acme")
        admin = await seed.member("admin@acme.test", acme, RoleCode.ORG_ADMIN)
        decision = await harness.decide("/admin/tenants", harness.cookies(admin.id))
        assert decision.outcome is Outcome.REDIRECT_ROLE_HOME
        assert decision.location == "/org"

    async def test_super_admin_without_tenant_bypasses(self, harness, seed) -> None:
        root = await seed.profile("root@platform.test")
        await seed.role(root, None, RoleCode.SUPER_ADMIN)
        cookies = harness.cookies(root.id)
        for path in ("/admin", "/org/settings", "/org/jobs/1", "/whatever"):
            decision = await harness.decide(path, cookies)
            assert decision.outcome is Outcome.ALLOW, path

    async def test_super_admin_reaches_billing(self, harness, seed) -> None:
        root = await seed.profile("root@platform.test")
        await seed.role(root, None, RoleCode.SUPER_ADMIN)
        decision = await harness.decide("/billing", harness.cookies(root.id))
        assert decision.outcome is Outcome.ALLOW
        assert decision.role is RoleCode.SUPER_ADMIN
        assert decision.reason == "role_allowed"

    async def test_tenant_role_bounced_from_billing(self, harness, seed) -> None:
        acme = await seed.org("acme")
        hr = await seed.member("hr@acme.test", acme, RoleCode.HR_MANAGER)
        decision = await harness.decide("/billing", harness.cookies(hr.id))
        assert decision.outcome is Outcome.REDIRECT_ROLE_HOME
        assert decision.location == "/org"

    async def test_same_inputs_same_outcome(self, harness, seed) -> None:
        acme = await seed.org("acme")
        rc = await seed.member("rc@acme.test", acme, RoleCode.RECRUITER)
        cookies = harness.cookies(rc.id)
        first = await harness.decide("/org/settings", cookies)
        second = await harness.decide("/org/settings", cookies)
        assert (first.outcome, first.location) == (second.outcome, second.location)

    async def test_deny_policy_for_unmatched_path(self, async_engine, seed) -> None:
        harness = Harness(async_engine, default_allow=False)
        acme = await seed.org("acme")
        rc = await seed.member("rc@acme.test", acme, RoleCode.RECRUITER)
        decision = await harness.decide("/help", harness.cookies(rc.id))
        assert decision.outcome is Outcome.REDIRECT_ROLE_HOME
        assert decision.location == "/org"


@pytest.mark.unit
class TestOnboarding:
    async def test_no_tenant_goes_to_onboarding_not_login(self, harness, seed) -> None:
        profile = await seed.profile("new@example.com")
        decision = await harness.decide("/org/jobs", harness.cookies(profile.id))
        assert decision.outcome is Outcome.REDIRECT_ROLE_HOME
        assert decision.location == "/onboarding"

    async def test_no_tenant_may_use_onboarding_routes(self, harness, seed) -> None:
        profile = await seed.profile("new@example.com")
        cookies = harness.cookies(profile.id)
        for path in ("/onboarding", "/api/org/create", "/api/auth/me"):
            decision = await harness.decide(path, cookies)
            assert decision.allowed, path

    async def test_no_tenant_unmatched_path_still_onboarding(self, harness, seed) -> None:
        profile = await seed.profile("new@example.com")
        decision = await harness.decide("/help", harness.cookies(profile.id))
        assert decision.location == "/onboarding"

    async def test_tenant_without_roles(self, harness, seed) -> None:
        acme = await seed.org("acme")
        profile = await seed.profile("norole@acme.test", acme)
        cookies = harness.cookies(profile.id)

        denied = await harness.decide("/org", cookies)
        assert denied.outcome is Outcome.REDIRECT_ROLE_HOME
        assert denied.location == "/onboarding"
        assert denied.set_role_cookie is None

        assert (await harness.decide("/api/auth/me", cookies)).allowed


@pytest.mark.unit
class TestRoleCacheCookie:
    async def test_full_lookup_sets_cookie(self, harness, seed) -> None:
        acme = await seed.org("acme")
        hr = await seed.member("hr@acme.test", acme, RoleCode.HR_MANAGER)
        decision = await harness.decide("/org/pipelines", harness.cookies(hr.id))
        assert decision.allowed
        cached = harness.cache.decode(decision.set_role_cookie, hr.id)
        assert cached is not None
        assert cached.role is RoleCode.HR_MANAGER
        assert cached.tenant_slug == "acme"

    async def test_valid_cookie_is_not_rewritten(self, harness, seed) -> None:
        acme = await seed.org("acme")
        hr = await seed.member("hr@acme.test", acme, RoleCode.HR_MANAGER)
        cookie = harness.cache.encode(hr.id, RoleCode.HR_MANAGER, "acme")
        decision = await harness.decide("/org/pipelines", harness.cookies(hr.id, cookie))
        assert decision.allowed
        assert decision.set_role_cookie is None
        assert not decision.clear_role_cookie

    async def test_cookie_from_previous_account_is_ignored(self, harness, seed) -> None:
        acme = await seed.org("acme")
        admin = await seed.member("admin@acme.test", acme, RoleCode.ORG_ADMIN)
        iv = await seed.member("iv@acme.test", acme, RoleCode.INTERVIEWER)
        stale = harness.cache.encode(admin.id, RoleCode.ORG_ADMIN, "acme")

        decision = await harness.decide("/org/settings", harness.cookies(iv.id, stale))

        assert decision.outcome is Outcome.REDIRECT_ROLE_HOME
        assert decision.role is RoleCode.INTERVIEWER
        assert harness.cache.decode(decision.set_role_cookie, iv.id) is not None

    async def test_stale_cookie_cleared_when_nothing_to_cache(self, harness, seed) -> None:
        profile = await seed.profile("new@example.com")
        stale = harness.cache.encode("someone-else", RoleCode.ORG_ADMIN, "acme")
        decision = await harness.decide("/org", harness.cookies(profile.id, stale))
        assert decision.clear_role_cookie
        assert decision.set_role_cookie is None


@pytest.mark.unit
class TestDegradedLookup:
    def _failing_harness(self, async_engine) -> Harness:
        memberships = AsyncMock()
        memberships.get_profile_with_org.side_effect = OperationalError(
            "SELECT 1", {}, Exception("connection reset")
        )
        return Harness(async_engine, memberships=memberships)

    async def test_protected_route_fails_closed(self, async_engine) -> None:
        harness = self._failing_harness(async_engine)
        decision = await harness.decide("/org/jobs", harness.cookies("user-1"))
        assert decision.outcome is Outcome.REDIRECT_LOGIN
        assert decision.reason == "lookup_degraded"
        assert decision.role is None
        assert decision.set_role_cookie is None

    async def test_unmatched_route_still_allowed(self, async_engine) -> None:
        harness = self._failing_harness(async_engine)
        decision = await harness.decide("/help", harness.cookies("user-1"))
        assert decision.allowed

    async def test_onboarding_route_requires_lookup(self, async_engine) -> None:
        harness = self._failing_harness(async_engine)
        decision = await harness.decide("/api/auth/me", harness.cookies("user-1"))
        assert decision.outcome is Outcome.REDIRECT_LOGIN
