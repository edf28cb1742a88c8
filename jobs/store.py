"""
jobs/store.py -- SQLAlchemy-backed persistence layer for postings and applications.

Uses SQLAlchemy Core (not ORM) so the dataclasses in jobs/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. JobStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Security:
  All values are bound parameters. The only identifier-position input is
  the listing sort, which arrives as a jobs.filters.Filters and is resolved
  to Column objects from _jobs -- see Filters.order_by().

  Title/company search uses icontains(..., autoescape=True): the term is a
  bound parameter and LIKE wildcards inside it (% and _) match literally.

Usage:
    store = JobStore()                                # DATABASE_URL
    store = JobStore("postgresql://user:pw@host/db")  # explicit
    job_id = store.create_job(job)
    jobs, metadata = store.list_jobs("engineer", "", Filters(sort="-salary"))
    store.create_application(JobApplication(job_id=job_id, user_id=7))
    store.close()
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from core.database import create_store_engine
from core.duplicates import DuplicateMapper, UniqueRule
from core.errors import Conflict, NotFound
from jobs.filters import Filters, Metadata, calculate_metadata
from jobs.models import Job, JobApplication


class DuplicateApplication(Conflict):
    code = "duplicate_application"
    message = "you have already applied to this job"


class JobNotFound(NotFound):
    code = "job_not_found"
    message = "Job not found."


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_jobs = Table(
    "jobs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(500), nullable=False),
    Column("description", Text, nullable=False),
    Column("company", String(200), nullable=False),
    Column("salary", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),  # posting recruiter
    Column("created_at", String(32), nullable=False),
)

_applications = Table(
    "applications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("status", String(30), nullable=False, server_default="applied"),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
)

_duplicates = DuplicateMapper(
    [UniqueRule("uq_applications_job_user", "applications", ("job_id", "user_id"), DuplicateApplication)],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _search_clauses(title: str, company: str) -> list:
    clauses = []
    if title:
        clauses.append(_jobs.c.title.icontains(title, autoescape=True))
    if company:
        clauses.append(_jobs.c.company.icontains(company, autoescape=True))
    return clauses


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class JobStore:
    def __init__(self, db_url: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout_seconds or settings.db_timeout_seconds,
        )
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(self, job: Job) -> int:
        """Insert a posting and return its ID. Fills in job.id and job.created_at."""
        created_at = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _jobs.insert().values(
                    title=job.title,
                    description=job.description,
                    company=job.company,
                    salary=job.salary,
                    user_id=job.user_id,
                    created_at=created_at,
                )
            )
            conn.commit()
        job.id = result.inserted_primary_key[0]
        job.created_at = created_at
        return job.id

    def get_job(self, job_id: int) -> Job | None:
        """Return the posting with job_id, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_jobs.select().where(_jobs.c.id == job_id)).fetchone()
        return _row_to_job(row) if row is not None else None

    def list_jobs(self, title: str, company: str, filters: Filters) -> tuple[list[Job], Metadata]:
        """Return one page of postings matching the search terms, plus paging metadata.

        Empty title/company mean "no filter on that field". Ordering, limit
        and offset come from filters, which must already have passed
        validate_filters().
        """
        where = _search_clauses(title, company)
        query = (
            _jobs.select()
            .where(*where)
            .order_by(*filters.order_by(_jobs))
            .limit(filters.limit())
            .offset(filters.offset())
        )
        count_query = select(func.count()).select_from(_jobs).where(*where)
        with self.engine.connect() as conn:
            total = conn.execute(count_query).scalar() or 0
            rows = conn.execute(query).fetchall()
        return [_row_to_job(r) for r in rows], calculate_metadata(total, filters.page, filters.page_size)

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def create_application(self, application: JobApplication) -> int:
        """Record that application.user_id applied to application.job_id.

        Raises JobNotFound if the job does not exist and DuplicateApplication
        if this user already applied to it. Other storage errors propagate.
        """
        if self.get_job(application.job_id) is None:
            raise JobNotFound()
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _applications.insert().values(
                        job_id=application.job_id,
                        user_id=application.user_id,
                        status=application.status,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise _duplicates.translate(exc) from exc
        application.id = result.inserted_primary_key[0]
        application.created_at = created_at
        return application.id

    def get_applications_for_user(self, user_id: int) -> list[JobApplication]:
        """Return every application user_id has made, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _applications.select()
                .where(_applications.c.user_id == user_id)
                .order_by(_applications.c.created_at.desc(), _applications.c.id.desc())
            ).fetchall()
        return [_row_to_application(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_job(row) -> Job:
    return Job(
        id=row.id,
        title=row.title,
        description=row.description,
        company=row.company,
        salary=row.salary,
        user_id=row.user_id,
        created_at=row.created_at,
    )


def _row_to_application(row) -> JobApplication:
    return JobApplication(
        id=row.id,
        job_id=row.job_id,
        user_id=row.user_id,
        status=row.status,
        created_at=row.created_at,
    )
