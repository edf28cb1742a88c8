"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as jobs/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Only the bcrypt hash is stored; plaintext never reaches this module.

  One account per email is enforced by the uq_users_email constraint, not
  by a look-before-insert check -- two concurrent registrations race, and
  the database is the only place that can settle the race. The losing insert
  raises IntegrityError, which the DuplicateMapper turns into DuplicateEmail.

Layer rule: no imports from api/ or jobs/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.passwords import Password
from core.config import get_settings
from core.database import create_store_engine
from core.duplicates import DuplicateMapper, UniqueRule
from core.errors import Conflict


class DuplicateEmail(Conflict):
    code = "duplicate_email"
    message = "a user with this email address already exists"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(500), nullable=False),
    Column("email", String(320), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.candidate.value),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("email", name="uq_users_email"),
)

_duplicates = DuplicateMapper(
    [UniqueRule("uq_users_email", "users", ("email",), DuplicateEmail)],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user = User(name="Ana", email="ana@x.com")
        user.password.set("longenough1")
        store.create_user(user)
        store.get_by_email("ana@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout_seconds or settings.db_timeout_seconds,
        )
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert user and return its assigned ID.

        Fills in user.id and user.created_at. Raises DuplicateEmail if the
        email is taken; any other storage failure propagates unchanged.
        """
        if user.password.hash is None:
            raise ValueError("user.password must be set before create_user()")
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        password_hash=user.password.hash,
                        role=Role(user.role).value,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise _duplicates.translate(exc) from exc
        user.id = result.inserted_primary_key[0]
        user.created_at = created_at
        return user.id

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=Role(row.role),
        password=Password(hash=row.password_hash),
        created_at=row.created_at,
    )
