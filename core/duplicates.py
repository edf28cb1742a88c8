"""
core/duplicates.py -- Translate storage uniqueness violations into domain errors.

Stores catch sqlalchemy.exc.IntegrityError around inserts and hand it to a
DuplicateMapper. The mapper answers one question: "is this a violation of a
uniqueness invariant we know about?" If so, the caller gets the typed domain
error (DuplicateEmail, DuplicateApplication, ...), which the API reports as 409.
Anything else -- NOT NULL or foreign-key failures, lost connections, timeouts,
syntax errors -- comes back unchanged and ends up as a 500.

Driver error shapes:
  PostgreSQL (psycopg 3 / psycopg2): SQLSTATE 23505 on exc.orig.sqlstate or
      exc.orig.pgcode; the violated constraint name is on
      exc.orig.diag.constraint_name.
  SQLite: no SQLSTATE. The message names the columns instead:
      "UNIQUE constraint failed: applications.job_id, applications.user_id"

A UniqueRule lists both the constraint name and its (table, columns) so the
same rule matches on either backend.

Layer rule: no imports from api/, auth/, or jobs/. Stores pass their rules in.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from core.errors import Conflict

UNIQUE_VIOLATION = "23505"

_SQLITE_UNIQUE_RX = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w.]+(?:,\s*[\w.]+)*)")


@dataclass(frozen=True)
class UniqueRule:
    """One known uniqueness invariant and the domain error it maps to."""

    constraint: str
    table: str
    columns: tuple[str, ...]
    error: type[Conflict]

    def qualified_columns(self) -> frozenset[str]:
        return frozenset(f"{self.table}.{c}" for c in self.columns)


def _sqlstate(orig: BaseException | None) -> str | None:
    # psycopg 3 exposes .sqlstate, psycopg2 exposes .pgcode
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _constraint_name(orig: BaseException | None) -> str | None:
    diag = getattr(orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def _sqlite_columns(orig: BaseException | None) -> frozenset[str] | None:
    match = _SQLITE_UNIQUE_RX.search(str(orig))
    if match is None:
        return None
    return frozenset(c.strip() for c in match.group("cols").split(","))


class DuplicateMapper:
    """Maps IntegrityError instances onto a fixed set of UniqueRules.

    Usage:
        mapper = DuplicateMapper([UniqueRule("uq_users_email", "users", ("email",), DuplicateEmail)])
        try:
            conn.execute(insert)
        except IntegrityError as exc:
            raise mapper.translate(exc) from exc
    """

    def __init__(self, rules: Iterable[UniqueRule]) -> None:
        self._rules = tuple(rules)

    def match(self, exc: BaseException) -> UniqueRule | None:
        """Return the rule violated by exc, or None if exc is not a known unique violation."""
        if not isinstance(exc, IntegrityError):
            return None
        orig = exc.orig

        state = _sqlstate(orig)
        if state is not None:
            if state != UNIQUE_VIOLATION:
                return None
            name = _constraint_name(orig)
            for rule in self._rules:
                if name == rule.constraint:
                    return rule
            # Constraint name unavailable (older drivers) -- fall back to the message.
            name = name or str(orig)
            for rule in self._rules:
                if rule.constraint in name:
                    return rule
            return None

        columns = _sqlite_columns(orig)
        if columns is None:
            return None
        for rule in self._rules:
            if columns == rule.qualified_columns():
                return rule
        return None

    def translate(self, exc: BaseException) -> BaseException:
        """Return the domain error for a known unique violation, else exc itself."""
        rule = self.match(exc)
        if rule is None:
            return exc
        return rule.error()
