"""Signed, short-lived role cache cookie.

The payload is ``principal_id:role_code:tenant_slug``; the cookie value is
``{payload}.{issued_at}.{signature}``. A decoded payload is trusted only when
its principal id equals the principal of the session on the same request.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass

import structlog

from talentgate.types import RoleCode
from talentgate.web.auth.roles import parse_role

logger = structlog.get_logger(__name__)

_DELIMITER = ":"
_FIELD_COUNT = 3


@dataclass(frozen=True, slots=True)
class CachedRole:
    principal_id: str
    role: RoleCode
    tenant_slug: str  # empty for principals without a tenant (platform super_admin)

    @property
    def has_tenant(self) -> bool:
        return bool(self.tenant_slug)


def format_role_payload(principal_id: str, role: RoleCode, tenant_slug: str | None) -> str:
    slug = tenant_slug or ""
    for field in (principal_id, slug):
        if _DELIMITER in field or "." in field:
            msg = f"Role cache field may not contain ':' or '.': {field!r}"
            raise ValueError(msg)
    return _DELIMITER.join((principal_id, role.value, slug))


def parse_role_payload(payload: str, principal_id: str) -> CachedRole | None:
    """Split and validate a payload against the live session's principal id."""
    parts = payload.split(_DELIMITER)
    if len(parts) != _FIELD_COUNT:
        return None

    cached_principal, role_raw, tenant_slug = parts
    if not cached_principal or cached_principal != principal_id:
        logger.info("role_cache_rejected", reason="principal_mismatch")
        return None

    role = parse_role(role_raw)
    if role is None:
        logger.info("role_cache_rejected", reason="unknown_role")
        return None
    return CachedRole(principal_id=cached_principal, role=role, tenant_slug=tenant_slug)


class RoleCache:
    """Encode and validate role cache cookie values."""

    def __init__(self, secret_key: str, max_age: int = 300) -> None:
        self._secret = secret_key.encode()
        self._max_age = max_age

    @property
    def max_age(self) -> int:
        return self._max_age

    def encode(self, principal_id: str, role: RoleCode, tenant_slug: str | None) -> str:
        payload = format_role_payload(principal_id, role, tenant_slug)
        signed = f"{payload}.{int(time.time())}"
        return f"{signed}.{self._sign(signed)}"

    def decode(self, value: str | None, principal_id: str) -> CachedRole | None:
        """Return the cached role, or None when absent, forged, expired or foreign."""
        if not value:
            return None
        parts = value.rsplit(".", 2)
        if len(parts) != 3:
            return None

        payload, issued_raw, signature = parts
        if not hmac.compare_digest(signature, self._sign(f"{payload}.{issued_raw}")):
            logger.info("role_cache_rejected", reason="bad_signature")
            return None
        try:
            issued_at = int(issued_raw)
        except ValueError:
            return None
        if time.time() - issued_at > self._max_age:
            logger.info("role_cache_rejected", reason="expired")
            return None

        return parse_role_payload(payload, principal_id)

    def _sign(self, data: str) -> str:
        return hmac.new(self._secret, data.encode(), hashlib.sha256).hexdigest()[:32]
