"""Cookie-based sessions and the two-tier identity resolver.

The cheap tier (``SessionAuth.read_session``) checks only the token's HMAC
signature and age, with no store or database access. It gates routes in the
middleware. The strong tier (``IdentityResolver.verify``) additionally requires
the session to still exist server-side and the profile to be active. It runs
before personal data is returned or records are mutated.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from talentgate.models.database import Profile
    from talentgate.storage.repositories.memberships import MembershipRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SessionData:
    principal_id: str
    issued_at: int


class SessionAuth:
    """Signed, self-describing session tokens with a server-side revocation store.

    Token layout: ``{principal_id}.{issued_at}.{nonce}.{signature}``.
    """

    def __init__(self, secret_key: str, max_age: int = 86400) -> None:
        self._secret = secret_key.encode()
        self._max_age = max_age
        self._sessions: dict[str, SessionData] = {}

    def create_session(self, principal_id: str) -> str:
        """Create a new session and return the signed token."""
        issued_at = int(time.time())
        nonce = secrets.token_urlsafe(16)
        raw = f"{principal_id}.{issued_at}.{nonce}"
        token = f"{raw}.{self._sign(raw)}"

        self._sessions[token] = SessionData(principal_id=principal_id, issued_at=issued_at)
        logger.info("session_created", principal_id=principal_id)
        return token

    def read_session(self, token: str | None) -> SessionData | None:
        """Cheap check: signature and age only."""
        if not token:
            return None
        parts = token.split(".")
        if len(parts) != 4:
            return None

        principal_id, issued_raw, _nonce, signature = parts
        expected_sig = self._sign(token.rsplit(".", 1)[0])
        if not hmac.compare_digest(signature, expected_sig):
            return None

        try:
            issued_at = int(issued_raw)
        except ValueError:
            return None
        if not principal_id or time.time() - issued_at > self._max_age:
            return None

        return SessionData(principal_id=principal_id, issued_at=issued_at)

    def validate_session(self, token: str | None) -> SessionData | None:
        """Strong check: the token must also be live in the session store."""
        session = self.read_session(token)
        if session is None or token is None:
            return None

        stored = self._sessions.get(token)
        if stored is None or stored.principal_id != session.principal_id:
            return None
        return stored

    def destroy_session(self, token: str) -> None:
        """Remove a session."""
        self._sessions.pop(token, None)
        logger.info("session_destroyed")

    def _sign(self, data: str) -> str:
        """Create HMAC signature for a token."""
        return hmac.new(self._secret, data.encode(), hashlib.sha256).hexdigest()[:32]


class IdentityResolver:
    """Turns request cookies into a principal id (cheap) or a verified profile (strong)."""

    def __init__(
        self,
        sessions: SessionAuth,
        memberships: MembershipRepository,
        cookie_name: str = "session",
    ) -> None:
        self._sessions = sessions
        self._memberships = memberships
        self._cookie_name = cookie_name

    @property
    def sessions(self) -> SessionAuth:
        return self._sessions

    def resolve(self, cookies: Mapping[str, str]) -> str | None:
        """Return the principal id from a locally valid session cookie, else None."""
        session = self._sessions.read_session(cookies.get(self._cookie_name))
        return session.principal_id if session else None

    async def verify(self, cookies: Mapping[str, str]) -> Profile | None:
        """Round-trip verification against the session store and the profile table."""
        session = self._sessions.validate_session(cookies.get(self._cookie_name))
        if session is None:
            return None

        profile = await self._memberships.get_profile(session.principal_id)
        if profile is None or not profile.is_active:
            logger.warning("identity_inactive_or_missing", principal_id=session.principal_id)
            return None
        return profile
