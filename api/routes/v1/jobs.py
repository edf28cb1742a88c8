"""
api/routes/v1/jobs.py -- Job posting, listing, and application routes.

Routes:
  GET    /jobs                        -- public listing with search, sort, paging
  POST   /jobs                        -- create posting (recruiter only)
  GET    /jobs/{job_id}               -- public posting detail
  POST   /jobs/{job_id}/applications  -- apply (any authenticated account)

Request pipeline for mutating routes:
  bearer token -> Identity (401 on failure)
  -> authorization gate (403 on wrong role)
  -> Validator (422 with {field: message})
  -> store call (409 on uniqueness violation, 404 on missing job)

Listing:
  sort must be one of jobs.filters.JOB_SORT_SAFELIST; anything else quietly
  falls back to id ASC. page/page_size must be positive integers -- a
  non-integer or out-of-range value is a 422, not a silent default.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Request

from api.limiter import limiter
from api.models import ApplicationResponse, JobCreate, JobListResponse, JobResponse, MetadataResponse
from auth import policy
from auth.dependencies import require_recruiter, require_role
from auth.models import Identity
from core.errors import ValidationFailed
from core.validator import Validator
from jobs.filters import DEFAULT_SORT_COLUMN, JOB_SORT_SAFELIST, Filters, validate_filters
from jobs.models import Job, JobApplication, validate_job
from jobs.store import JobNotFound, JobStore

logger = logging.getLogger("jobboard.jobs")

# Auth policy:
# - GET  /api/v1/jobs:                         public
# - GET  /api/v1/jobs/{id}:                    public
# - POST /api/v1/jobs:                         recruiter only (require_recruiter)
# - POST /api/v1/jobs/{id}/applications:       any authenticated role
router = APIRouter()

_DEFAULT_PAGE = 1
_DEFAULT_PAGE_SIZE = 20
# Largest id a BIGINT / SQLite INTEGER primary key can hold.
_MAX_JOB_ID = 2**63 - 1


def _read_int(raw: Optional[str], key: str, default: int, v: Validator) -> int:
    """Parse an integer query parameter, recording a validation error on garbage."""
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        v.add_error(key, "must be an integer value")
        return default


# ---------------------------------------------------------------------------
# GET /jobs -- list postings
# ---------------------------------------------------------------------------


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(
    request: Request,
    title: str = "",
    company: str = "",
    sort: str = DEFAULT_SORT_COLUMN,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
) -> JobListResponse:
    """Return one page of postings.

    Query params:
      title, company -- case-insensitive substring filters
      sort           -- id | title | company | salary, optionally prefixed with "-"
      page           -- 1-based page number (default 1)
      page_size      -- rows per page, 1..100 (default 20)
    """
    v = Validator()
    filters = Filters(
        page=_read_int(page, "page", _DEFAULT_PAGE, v),
        page_size=_read_int(page_size, "page_size", _DEFAULT_PAGE_SIZE, v),
        sort=sort or DEFAULT_SORT_COLUMN,
        sort_safelist=JOB_SORT_SAFELIST,
    )
    validate_filters(v, filters)
    if not v.valid():
        raise ValidationFailed(fields=v.errors)

    job_store: JobStore = request.app.state.job_store
    jobs, metadata = job_store.list_jobs(title.strip(), company.strip(), filters)
    return JobListResponse(
        jobs=[JobResponse.from_job(j) for j in jobs],
        metadata=MetadataResponse.from_metadata(metadata),
    )


# ---------------------------------------------------------------------------
# POST /jobs -- create a posting
# ---------------------------------------------------------------------------


@router.post("/jobs", response_model=JobResponse, status_code=201)
@limiter.limit("30/minute")
def create_job(
    request: Request,
    body: JobCreate,
    identity: Identity = Depends(require_recruiter),
) -> JobResponse:
    """Publish a new posting owned by the calling recruiter."""
    job = Job(
        title=body.title,
        description=body.description,
        company=body.company,
        salary=body.salary,
        user_id=identity.subject_id,
    )

    v = Validator()
    validate_job(v, job)
    if not v.valid():
        raise ValidationFailed(fields=v.errors)

    job_store: JobStore = request.app.state.job_store
    job_store.create_job(job)
    logger.info("Job created job_id=%s user_id=%s title=%r", job.id, job.user_id, job.title)
    return JobResponse.from_job(job)


# ---------------------------------------------------------------------------
# GET /jobs/{job_id} -- posting detail
# ---------------------------------------------------------------------------


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(request: Request, job_id: int = Path(ge=1, le=_MAX_JOB_ID)) -> JobResponse:
    job_store: JobStore = request.app.state.job_store
    job = job_store.get_job(job_id)
    if job is None:
        raise JobNotFound(f"Job {job_id} not found.")
    return JobResponse.from_job(job)


# ---------------------------------------------------------------------------
# POST /jobs/{job_id}/applications -- apply
# ---------------------------------------------------------------------------


@router.post("/jobs/{job_id}/applications", response_model=ApplicationResponse, status_code=201)
@limiter.limit("30/minute")
def apply_to_job(
    request: Request,
    job_id: int = Path(ge=1, le=_MAX_JOB_ID),
    identity: Identity = Depends(require_role(*policy.APPLY_TO_JOB)),
) -> ApplicationResponse:
    """Apply the calling account to job_id.

    A second application by the same account to the same job is a 409;
    the unique (job_id, user_id) constraint decides, not a pre-check.
    """
    job_store: JobStore = request.app.state.job_store
    application = JobApplication(job_id=job_id, user_id=identity.subject_id)
    job_store.create_application(application)
    logger.info("Application created job_id=%s user_id=%s", job_id, identity.subject_id)
    return ApplicationResponse.from_application(application)
