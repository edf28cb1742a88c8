"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

One auth method: the `Authorization: Bearer <token>` header. The header must
have exactly that shape; anything else is refused before TokenService runs.

try_get_identity() is the soft variant (returns None on failure).
get_identity() wraps it and raises Unauthenticated (401).
require_role() builds a dependency that also runs the authorization gate,
so a missing/invalid token is always 401 and a valid token with the wrong
role is 403.

The verified Identity reaches handlers as an explicit, typed parameter:

    @router.post("/jobs")
    def create_job(identity: Identity = Depends(require_recruiter)): ...

There is no ambient per-request context to look identity up from.

Layer rule: may import from fastapi (this module is part of the dependency
injection system) but not from api/ or jobs/.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth import policy
from auth.models import Identity, Role
from auth.tokens import TokenError, TokenService
from core.errors import Unauthenticated

logger = logging.getLogger("jobboard.auth")

_SCHEME = "Bearer"


def parse_bearer(header: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" value, or None."""
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != _SCHEME or not parts[1]:
        return None
    return parts[1]


def try_get_identity(request: Request) -> Identity | None:
    """Attempt to authenticate the request. Never raises.

    Token failures are logged with their TokenError subclass name only --
    the token itself is never written to the log.
    """
    token = parse_bearer(request.headers.get("Authorization"))
    if token is None:
        return None
    token_service: TokenService = request.app.state.token_service
    try:
        return token_service.verify(token)
    except TokenError as exc:
        logger.info(
            "Rejected bearer token on %s %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
        )
        return None


def get_identity(request: Request) -> Identity:
    """Require authentication. Raises Unauthenticated (401) otherwise."""
    identity = try_get_identity(request)
    if identity is None:
        raise Unauthenticated("A valid bearer token is required.")
    return identity


def require_role(*roles: Role, message: str | None = None):
    """Build a dependency that authenticates, then authorizes against roles."""
    allowed = frozenset(roles)

    def dependency(request: Request) -> Identity:
        return policy.authorize(get_identity(request), allowed, message)

    return dependency


require_recruiter = require_role(*policy.CREATE_JOB, message="Only recruiters can post jobs.")
