"""App wiring: health, request ids and the route audit tool."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi import APIRouter

from talentgate.tools.audit_routes import report, route_paths, unmapped_routes
from talentgate.types import RoleCode
from talentgate.web.auth.route_table import ROUTE_RULES, RouteTable


@pytest.mark.integration
class TestApp:
    async def test_health(self, client) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    async def test_request_id_header(self, client) -> None:
        resp = await client.get("/api/health")
        assert "x-request-id" in resp.headers

    async def test_auth_endpoints_rate_limited(self, settings, async_engine) -> None:
        from httpx import ASGITransport, AsyncClient

        from talentgate.web.app import create_app

        app = create_app(settings.model_copy(update={"auth_rate_limit": 2}), async_engine)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="https://test") as client:
            body = {"email": "nobody@example.com", "password": "whatever-pw"}
            codes = [(await client.post("/api/auth/login", json=body)).status_code for _ in range(3)]
        assert codes == [401, 401, 429]

    async def test_session_endpoints_not_rate_limited(
        self, settings, async_engine, seed, password
    ) -> None:
        from httpx import ASGITransport, AsyncClient

        from talentgate.web.app import create_app

        acme = await seed.org("acme")
        await seed.member("rc@acme.test", acme, RoleCode.RECRUITER)
        app = create_app(settings.model_copy(update={"auth_rate_limit": 2}), async_engine)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="https://test") as client:
            login = {"email": "rc@acme.test", "password": password}
            assert (await client.post("/api/auth/login", json=login)).status_code == 200
            codes = [(await client.get("/api/auth/me")).status_code for _ in range(25)]
            assert (await client.post("/api/auth/logout")).status_code == 200
        assert set(codes) == {200}


@pytest.mark.integration
class TestCors:
    ORIGIN = "http://localhost:3000"

    async def test_preflight_answered_before_authorization(self, client) -> None:
        resp = await client.options(
            "/api/jobs",
            headers={"Origin": self.ORIGIN, "Access-Control-Request-Method": "GET"},
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == self.ORIGIN
        assert resp.headers["access-control-allow-credentials"] == "true"

    async def test_denial_carries_cors_headers(self, client) -> None:
        resp = await client.get("/api/jobs", headers={"Origin": self.ORIGIN})
        assert resp.status_code == 401
        assert resp.headers["access-control-allow-origin"] == self.ORIGIN

    async def test_unknown_origin_preflight_rejected(self, client) -> None:
        resp = await client.options(
            "/api/jobs",
            headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "GET"},
        )
        assert resp.status_code == 400
        assert "access-control-allow-origin" not in resp.headers


@pytest.mark.integration
class TestRouteAudit:
    def test_every_api_route_is_classified(self, app) -> None:
        paths = route_paths(app)
        for path in (
            "/api/auth/me",
            "/api/org/create",
            "/api/org/invites",
            "/api/invites/accept",
            "/api/jobs/{job_id}/applications",
            "/api/interviews",
            "/api/health",
        ):
            assert path in paths
        assert unmapped_routes(app) == []

    def test_unclassified_router_route_reported(self, app) -> None:
        router = APIRouter(prefix="/api/reports")

        @router.get("/weekly")
        async def weekly() -> dict[str, str]:
            return {}

        app.include_router(router)
        assert unmapped_routes(app, RouteTable(ROUTE_RULES)) == ["/api/reports/weekly"]
        with patch("talentgate.tools.audit_routes.logger") as mock_logger:
            assert report(["/api/reports"]) == 1
        mock_logger.warning.assert_called_once_with("route_unmapped", path="/api/reports")

    def test_clean_report(self) -> None:
        assert report([]) == 0
