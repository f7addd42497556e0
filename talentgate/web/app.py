"""FastAPI application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import talentgate
from talentgate.config.logging import setup_logging
from talentgate.config.settings import get_settings
from talentgate.exceptions import TenantScopeError
from talentgate.storage.database import build_engine
from talentgate.web.auth.route_table import CREDENTIAL_ROUTES
from talentgate.web.dependencies import Services, build_services, get_services
from talentgate.web.health import check_health
from talentgate.web.middleware import (
    AuthorizationMiddleware,
    RateLimitMiddleware,
    RequestIDMiddleware,
)
from talentgate.web.routes.auth import router as auth_router
from talentgate.web.routes.interviews import router as interviews_router
from talentgate.web.routes.invites import router as invites_router
from talentgate.web.routes.jobs import router as jobs_router
from talentgate.web.routes.org import router as org_router

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from talentgate.config.settings import Settings

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, engine: AsyncEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    engine = engine or build_engine(settings.database_url, echo=settings.debug)
    services = build_services(settings, engine)

    app = FastAPI(
        title="TalentGate",
        description="Role-based route authorization and tenant isolation for a multi-tenant ATS",
        version=talentgate.__version__,
    )
    app.state.services = services

    @app.exception_handler(TenantScopeError)
    async def tenant_scope_handler(request: Request, exc: TenantScopeError) -> JSONResponse:
        logger.warning("tenant_scope_rejected", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=403, content={"detail": "Insufficient permissions"})

    # Middleware (order matters: last added runs first)
    app.add_middleware(
        AuthorizationMiddleware,
        authorizer=services.authorizer,
        role_cookie_name=settings.role_cookie_name,
        role_cookie_max_age=settings.role_cache_max_age,
        secure_cookies=not settings.debug,
    )
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.auth_rate_limit,
        window_seconds=settings.auth_rate_window,
        paths=CREDENTIAL_ROUTES,
    )
    app.add_middleware(RequestIDMiddleware)
    # Outermost, so preflights and denials also get CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.include_router(auth_router)
    app.include_router(org_router)
    app.include_router(invites_router)
    app.include_router(jobs_router)
    app.include_router(interviews_router)

    @app.get("/api/health")
    async def health_check(services: Services = Depends(get_services)) -> dict[str, object]:
        return await check_health(services.engine)

    logger.info("app_created", default_policy=settings.route_default_policy)
    return app
