"""
auth/passwords.py -- Password hashing, verification, and credential login.

Security design decisions:
  bcrypt, used directly (no passlib wrapper). Bcrypt is the right choice for
      low-entropy secrets because its work factor makes brute force expensive.
      The work factor comes from Settings.bcrypt_rounds (12 by default).

  72-byte window: bcrypt only reads the first 72 bytes of its input, and
      bcrypt >= 4.1 raises on longer inputs instead of truncating. We truncate
      explicitly so hashing never fails on input length. Registration rejects
      passwords over 72 bytes anyway (auth.models.validate_password_plaintext).

  Errors: a mismatch is an ordinary False. HashingError is reserved for
      broken state -- a malformed stored hash, or the hashing backend failing
      (e.g. no entropy source for the salt).

  Timing equalization: authenticate_user() always runs one bcrypt comparison,
      against _DUMMY_HASH when the email is unknown, so response time does not
      reveal whether an account exists.

Layer rule: no imports from api/ or jobs/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("jobboard.auth")

_settings = get_settings()

_BCRYPT_MAX_BYTES = 72


class HashingError(Exception):
    """The hash could not be computed or the stored hash is corrupt."""


def _secret_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    try:
        salt = bcrypt.gensalt(rounds=rounds or _settings.bcrypt_rounds)
        return bcrypt.hashpw(_secret_bytes(plain), salt).decode("utf-8")
    except (OSError, ValueError) as exc:
        raise HashingError("could not hash password") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares digests in constant time. A malformed hash raises
    ValueError ("Invalid salt"), which we surface as HashingError rather than
    treating it as a wrong password -- a corrupt row is a server problem.
    """
    try:
        return bcrypt.checkpw(_secret_bytes(plain), hashed.encode("utf-8"))
    except ValueError as exc:
        raise HashingError("stored password hash is malformed") from exc


# Computed once at module load so the first login is not measurably slower
# than the rest.
_DUMMY_HASH: str = hash_password("jobboard_timing_dummy")


@dataclass
class Password:
    """A credential: ephemeral plaintext plus its persisted hash.

    plaintext is held only between parsing a request and hashing it, so
    validate_user() can run length checks. set() computes the hash and drops
    the plaintext. Neither field appears in repr().
    """

    plaintext: str | None = field(default=None, repr=False)
    hash: str | None = field(default=None, repr=False)

    def set(self, plain: str, rounds: int | None = None) -> None:
        self.hash = hash_password(plain, rounds)
        self.plaintext = None

    def matches(self, plain: str) -> bool:
        if self.hash is None:
            return False
        return verify_password(plain, self.hash)


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Returns the User on success, None on any credential failure. Unknown email
    and wrong password are indistinguishable to the caller.
    """
    user = store.get_by_email(email)
    if user is None or user.password.hash is None:
        # Equalize timing -- do NOT return early before running bcrypt.
        verify_password(password, _DUMMY_HASH)
        return None
    if not user.password.matches(password):
        return None
    return user
