"""CLI: list application routes that no route rule covers.

Exits non-zero when a route would only be reachable through the default
policy, so a deployment can run it as a release check.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable

import structlog
from fastapi import FastAPI

from talentgate.config.logging import setup_logging
from talentgate.web.auth.route_table import RouteTable

logger = structlog.get_logger(__name__)


def route_paths(app: FastAPI) -> list[str]:
    """Every API path the application serves, included routers and all.

    Read from the OpenAPI schema: ``app.routes`` does not list the routes of
    included routers on every FastAPI release.
    """
    return sorted(app.openapi().get("paths", {}))


def unmapped_routes(app: FastAPI, table: RouteTable | None = None) -> list[str]:
    """API routes of ``app`` that are not public, not onboarding and match no rule."""
    table = table or app.state.services.authorizer.table
    return table.unmapped(route_paths(app))


def report(unmapped: Iterable[str]) -> int:
    missing = list(unmapped)
    for path in missing:
        logger.warning("route_unmapped", path=path)
    logger.info("route_audit_complete", unmapped=len(missing))
    return 1 if missing else 0


def main() -> None:
    """Audit the routes of the application built from the current settings."""
    from talentgate.web.app import create_app

    setup_logging(log_level="INFO", json_output=True)
    sys.exit(report(unmapped_routes(create_app())))


if __name__ == "__main__":
    main()
