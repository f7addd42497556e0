"""FastAPI dependency injection and shared state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from fastapi import Request

from talentgate.audit.logger import AuditLogger
from talentgate.storage.repositories.memberships import (
    MembershipRepository,
    PrivilegedMembershipWriter,
)
from talentgate.web.auth.decision import Authorizer
from talentgate.web.auth.role_cache import RoleCache
from talentgate.web.auth.role_lookup import TenantRoleLookup
from talentgate.web.auth.route_table import ROUTE_RULES, RouteTable
from talentgate.web.auth.session import IdentityResolver, SessionAuth

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from talentgate.config.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class Services:
    """Per-application collaborators, attached to ``app.state.services``."""

    settings: Settings
    engine: AsyncEngine
    sessions: SessionAuth
    memberships: MembershipRepository
    writer: PrivilegedMembershipWriter
    role_cache: RoleCache
    lookup: TenantRoleLookup
    identity: IdentityResolver
    authorizer: Authorizer
    audit: AuditLogger


def build_services(settings: Settings, engine: AsyncEngine) -> Services:
    """Wire repositories, lookup and authorizer for one application instance."""
    table = RouteTable(ROUTE_RULES, default_allow=settings.route_default_policy == "allow")

    sessions = SessionAuth(secret_key=settings.secret_key, max_age=settings.session_max_age)
    memberships = MembershipRepository(engine)
    role_cache = RoleCache(settings.secret_key, max_age=settings.role_cache_max_age)
    lookup = TenantRoleLookup(
        memberships,
        role_cache,
        timeout=settings.role_lookup_timeout,
        attempts=settings.role_lookup_attempts,
        max_rows=settings.role_lookup_max_rows,
    )
    identity = IdentityResolver(sessions, memberships, cookie_name=settings.session_cookie_name)
    authorizer = Authorizer(
        identity,
        lookup,
        table,
        role_cookie_name=settings.role_cookie_name,
        login_path=settings.login_path,
        onboarding_path=settings.onboarding_path,
        platform_home=settings.platform_home,
        tenant_home=settings.tenant_home,
    )
    logger.info(
        "services_built",
        route_rules=len(table.rules),
        default_policy=settings.route_default_policy,
    )
    return Services(
        settings=settings,
        engine=engine,
        sessions=sessions,
        memberships=memberships,
        writer=PrivilegedMembershipWriter(engine),
        role_cache=role_cache,
        lookup=lookup,
        identity=identity,
        authorizer=authorizer,
        audit=AuditLogger(engine),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services  # type: ignore[no-any-return]


def client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


def request_id(request: Request) -> str:
    return request.headers.get("x-request-id", "")
