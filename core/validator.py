"""
core/validator.py -- Field-keyed validation accumulator.

Pattern: Notification. Domain-specific validators (validate_user,
validate_job, validate_filters) take a Validator and a candidate entity and
run a fixed, ordered sequence of checks. The caller inspects valid() once at
the end and raises ValidationFailed(fields=v.errors) if anything failed.

At most one message is kept per field: the first failure wins and later
checks against an already-failed field are ignored. That keeps responses
short ("must be provided" rather than "must be provided" plus a format error
for the same empty string).

Layer rule: no imports from api/, auth/, or jobs/.
"""

from __future__ import annotations

import re

# RFC 5322 derived (the WHATWG "valid e-mail address" production).
EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class Validator:
    """Collects the first validation message for each field.

    Usage:
        v = Validator()
        v.check(name != "", "name", "must be provided")
        if not v.valid():
            raise ValidationFailed(fields=v.errors)
    """

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, field: str, message: str) -> None:
        """Record message for field unless the field already has one."""
        self.errors.setdefault(field, message)

    def check(self, ok: bool, field: str, message: str) -> None:
        if not ok:
            self.add_error(field, message)


def matches(value: str, rx: re.Pattern) -> bool:
    """Return True if the whole of value matches the compiled pattern."""
    return rx.fullmatch(value) is not None


def byte_length(value: str) -> int:
    """Length in UTF-8 bytes -- the unit bcrypt and the DB columns care about."""
    return len(value.encode("utf-8"))
