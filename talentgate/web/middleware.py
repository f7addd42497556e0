"""FastAPI middleware: request ID injection, rate limiting and route authorization."""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, RedirectResponse

from talentgate.types import Outcome
from talentgate.web.auth.route_table import is_excluded_path, path_matches

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from talentgate.web.auth.decision import Authorizer, Decision

logger = structlog.get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Adds a unique X-Request-ID header to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter for selected endpoints.

    Limits requests per IP to `max_requests` within `window_seconds`.
    Only applies to the given paths and their children (default: /api).
    """

    def __init__(
        self,
        app: object,
        max_requests: int = 60,
        window_seconds: int = 60,
        paths: Iterable[str] = ("/api",),
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._max_requests = max_requests
        self._window = window_seconds
        self._paths = tuple(paths)
        self._hits: dict[str, list[float]] = {}
        self._last_sweep = 0.0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not any(path_matches(request.url.path, p) for p in self._paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        if now - self._last_sweep >= self._window:
            self._sweep(now)
        hits = [t for t in self._hits.get(client_ip, ()) if now - t < self._window]
        self._hits[client_ip] = hits

        if len(hits) >= self._max_requests:
            logger.warning("rate_limit_exceeded", ip=client_ip, path=request.url.path)
            return JSONResponse(
                {"detail": "Rate limit exceeded. Try again later."},
                status_code=429,
                headers={"Retry-After": str(self._window)},
            )

        hits.append(now)
        return await call_next(request)

    def _sweep(self, now: float) -> None:
        """Forget clients with no hits left inside the window."""
        self._last_sweep = now
        stale = [
            ip for ip, hits in self._hits.items() if not hits or now - hits[-1] >= self._window
        ]
        for ip in stale:
            del self._hits[ip]


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Runs the authorization decision before any route handler.

    Page requests are redirected; API requests get a JSON 401/403 instead.
    The role cache cookie is refreshed after a full lookup and deleted when it
    no longer matches the session.
    """

    def __init__(
        self,
        app: object,
        authorizer: Authorizer,
        role_cookie_name: str = "x-user-role",
        role_cookie_max_age: int = 300,
        secure_cookies: bool = True,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._authorizer = authorizer
        self._role_cookie_name = role_cookie_name
        self._role_cookie_max_age = role_cookie_max_age
        self._secure = secure_cookies

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_excluded_path(path):
            return await call_next(request)

        decision = await self._authorizer.decide(path, request.cookies)
        if decision.principal_id:
            structlog.contextvars.bind_contextvars(
                principal_id=decision.principal_id,
                role=decision.role.value if decision.role else None,
            )

        request.state.principal_id = decision.principal_id
        request.state.role = decision.role
        request.state.tenant_slug = decision.tenant_slug

        if decision.allowed:
            response = await call_next(request)
        else:
            logger.info(
                "request_denied",
                path=path,
                outcome=decision.outcome.value,
                reason=decision.reason,
            )
            response = self._deny(path, decision)

        self._apply_role_cookie(response, decision)
        return response

    def _deny(self, path: str, decision: Decision) -> Response:
        if path.startswith("/api/"):
            if decision.outcome is Outcome.REDIRECT_LOGIN:
                return JSONResponse({"detail": "Not authenticated"}, status_code=401)
            return JSONResponse({"detail": "Insufficient permissions"}, status_code=403)

        location = decision.location or "/"
        if decision.outcome is Outcome.REDIRECT_LOGIN:
            location = f"{location}?next={quote(path, safe='/')}"
        return RedirectResponse(url=location, status_code=302)

    def _apply_role_cookie(self, response: Response, decision: Decision) -> None:
        if decision.set_role_cookie:
            response.set_cookie(
                key=self._role_cookie_name,
                value=decision.set_role_cookie,
                httponly=True,
                secure=self._secure,
                samesite="lax",
                max_age=self._role_cookie_max_age,
            )
        elif decision.clear_role_cookie:
            response.delete_cookie(self._role_cookie_name)
