"""Caller identity resolution for session and local-token auth modes.

Identity is issued upstream (signup/login and the session store live outside
this service). This module only turns an already-authenticated request into
an ``AuthContext`` carrying the user id; the id is trusted as given.
"""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth_mode import AuthMode
from app.core.config import settings
from app.core.errors import ContextUserNotFoundError, NoLoginError
from app.core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
SECURITY_DEP = Depends(security)
SESSION_USER_ID_ATTR = "user_id"


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller context resolved from the inbound request."""

    user_id: int


def _session_user_id(request: Request) -> int:
    raw = getattr(request.state, SESSION_USER_ID_ATTR, None)
    if raw is None:
        raise NoLoginError("user not logged in")
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        logger.warning("auth.session.invalid_user_id value_type=%s", type(raw).__name__)
        raise ContextUserNotFoundError("session does not carry a valid user id")
    return raw


def _local_user_id(credentials: HTTPAuthorizationCredentials | None) -> int:
    token = credentials.credentials.strip() if credentials is not None else ""
    if not token:
        raise NoLoginError("missing bearer token")
    expected = settings.local_auth_token.strip()
    if not expected or not compare_digest(token, expected):
        logger.info("auth.local.rejected")
        raise NoLoginError("invalid bearer token")
    return settings.local_auth_user_id


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = SECURITY_DEP,
) -> AuthContext:
    """Resolve required caller identity for the configured auth mode."""
    if settings.auth_mode == AuthMode.LOCAL:
        return AuthContext(user_id=_local_user_id(credentials))
    return AuthContext(user_id=_session_user_id(request))
