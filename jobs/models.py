"""
jobs/models.py -- Domain dataclasses for job postings and applications.

Pure data containers plus validate_job(), which runs the fixed, ordered set
of checks for a posting. Query logic lives in jobs/store.py; sort/paging
logic lives in jobs/filters.py.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.validator import Validator, byte_length

# Largest value a PostgreSQL INTEGER column holds.
MAX_SALARY = 2_147_483_647


@dataclass
class Job:
    """A job posting.

    salary is a whole-currency annual figure so listings can sort on it.
    user_id is the recruiter who posted it. id is None before insert.
    """

    title: str
    description: str
    company: str
    salary: int
    user_id: int | None = None
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class JobApplication:
    """One candidate's application to one job.

    (job_id, user_id) is unique -- applying twice is a Conflict.
    """

    job_id: int
    user_id: int
    status: str = "applied"
    id: int | None = None
    created_at: str = ""


def validate_job(v: Validator, job: Job) -> None:
    v.check(job.title != "", "title", "must be provided")
    v.check(byte_length(job.title) <= 500, "title", "must not be more than 500 bytes long")

    v.check(job.description != "", "description", "must be provided")
    v.check(byte_length(job.description) <= 5000, "description", "must not be more than 5000 bytes long")

    v.check(job.company != "", "company", "must be provided")
    v.check(byte_length(job.company) <= 200, "company", "must not be more than 200 bytes long")

    v.check(job.salary > 0, "salary", "must be a positive integer")
    v.check(job.salary <= MAX_SALARY, "salary", f"must not be more than {MAX_SALARY}")
