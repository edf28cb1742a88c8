"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Dataclasses own domain shape; stores and routes do the
work. The one piece of logic kept here is validate_user(), which sits next to
the entity it checks, the same way jobs/models.py keeps validate_job().

Layer rule: no imports from api/ or jobs/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from auth.passwords import Password
from core.validator import EMAIL_RX, Validator, byte_length, matches


class Role(str, Enum):
    candidate = "candidate"
    recruiter = "recruiter"


@dataclass(frozen=True)
class Identity:
    """Who is making this request, as asserted by a verified bearer token.

    Built fresh from token claims on every request and never persisted.
    Frozen so a handler cannot "upgrade" its own identity mid-request.
    """

    subject_id: int
    role: Role


@dataclass
class User:
    """A registered account.

    password.hash is the only persisted form of the credential.
    password.plaintext is set only between parsing a registration body and
    validating it -- it is never written to the DB or returned by the API.
    """

    name: str
    email: str
    role: Role = Role.candidate
    id: int | None = None
    password: Password = field(default_factory=Password, repr=False)
    created_at: str | None = None


def validate_email(v: Validator, email: str) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(matches(email, EMAIL_RX), "email", "must be a valid email address")


def validate_password_plaintext(v: Validator, password: str) -> None:
    v.check(password != "", "password", "must be provided")
    v.check(byte_length(password) >= 8, "password", "must be at least 8 bytes long")
    # bcrypt only reads the first 72 bytes; longer secrets would silently lose entropy.
    v.check(byte_length(password) <= 72, "password", "must not be more than 72 bytes long")


def validate_user(v: Validator, user: User) -> None:
    """Run the registration checks for user, in order."""
    v.check(user.name != "", "name", "must be provided")
    v.check(byte_length(user.name) <= 500, "name", "must not be more than 500 bytes long")

    validate_email(v, user.email)

    if user.password.plaintext is not None:
        validate_password_plaintext(v, user.password.plaintext)
