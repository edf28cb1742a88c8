"""
auth/tokens.py -- Bearer token issuance and verification.

Security design decisions:
  JWT via python-jose, HS256 only. Tokens carry sub (numeric user id), role,
       iat and exp. They are self-contained: no server-side session store,
       so identity is rebuilt from the signed claims on every request.

  Algorithm pinning: the verifier compares the header's "alg" against the
       one fixed algorithm *before* touching the signature, and passes the
       same single-entry allow-list to jws.verify. A token claiming "none",
       RS256, HS512, etc. is rejected as BadSignature. The header never picks
       the algorithm.

  Secret injection: TokenService receives the signing secret at construction
       (api/main.py builds it from Settings once at startup). Tests build
       services with distinct secrets freely.

  Clock injection: issue() and verify() accept `now` so expiry can be tested
       at exact boundaries. A token is expired when exp <= now -- expiry is
       checked after the signature and wins regardless of it being valid.

Failure taxonomy (all subclasses of TokenError):
  MalformedToken  -- not three base64url segments, bad JSON, claims not an object
  InvalidClaim    -- (a MalformedToken) claim present with the wrong type/value
  BadSignature    -- wrong secret, tampered token, or disallowed algorithm
  Expired         -- exp <= now
  MissingClaim    -- sub, role or exp absent

Callers treat every TokenError the same way (401). The subclasses exist so
the auth dependency can log *why* a token was refused.

Layer rule: no imports from api/ or jobs/.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from jose import jws, jwt
from jose.exceptions import JWSError

from auth.models import Identity, Role

_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("sub", "role", "exp")


class TokenError(Exception):
    """Base class for every reason a bearer token is refused."""


class MalformedToken(TokenError):
    pass


class InvalidClaim(MalformedToken):
    pass


class BadSignature(TokenError):
    pass


class Expired(TokenError):
    pass


class MissingClaim(TokenError):
    pass


def _is_int(value) -> bool:
    # bool is an int subclass; "sub": true must not pass as user 1.
    return isinstance(value, int) and not isinstance(value, bool)


class TokenService:
    """Issues and verifies signed, time-bound identity assertions.

    Usage:
        tokens = TokenService(settings.secret_key, ttl_seconds=86400)
        token = tokens.issue(user.id, user.role)
        identity = tokens.verify(token)      # raises TokenError subclasses
    """

    def __init__(self, secret: str, ttl_seconds: int = 24 * 60 * 60) -> None:
        if not secret:
            raise ValueError("TokenService requires a non-empty signing secret.")
        self._secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)

    def issue(self, subject_id: int, role: Role | str, now: datetime | None = None) -> str:
        """Encode a signed token for subject_id/role expiring ttl after now."""
        now = now or datetime.now(timezone.utc)
        claims = {
            "sub": subject_id,
            "role": Role(role).value,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str, now: datetime | None = None) -> Identity:
        """Return the Identity asserted by token, or raise a TokenError subclass.

        Nothing read from the token is trusted until the signature checks out.
        The unverified header is consulted only to refuse foreign algorithms.
        """
        now = now or datetime.now(timezone.utc)

        try:
            header = jws.get_unverified_header(token)
        except JWSError as exc:
            raise MalformedToken(str(exc)) from exc
        if header.get("alg") != _ALGORITHM:
            raise BadSignature(f"unexpected signing algorithm {header.get('alg')!r}")

        try:
            payload = jws.verify(token, self._secret, algorithms=[_ALGORITHM])
        except JWSError as exc:
            raise BadSignature(str(exc)) from exc

        try:
            claims = json.loads(payload)
        except ValueError as exc:
            raise MalformedToken("claims are not valid JSON") from exc
        if not isinstance(claims, dict):
            raise MalformedToken("claims must be a JSON object")

        for name in _REQUIRED_CLAIMS:
            if name not in claims:
                raise MissingClaim(f"token has no {name!r} claim")

        exp = claims["exp"]
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise InvalidClaim("exp must be a numeric timestamp")
        if exp <= now.timestamp():
            raise Expired("token has expired")

        sub = claims["sub"]
        if not _is_int(sub):
            raise InvalidClaim("sub must be an integer user id")
        try:
            role = Role(claims["role"])
        except (TypeError, ValueError) as exc:
            raise InvalidClaim(f"unknown role {claims['role']!r}") from exc

        return Identity(subject_id=sub, role=role)
