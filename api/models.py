"""
API request and response models for JobBoard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
jobs/models.py, which own the internal domain representation. Route handlers
map between the two.

Request models only enforce *shape* (types, field presence with defaults).
Business rules -- "must be provided", length bounds, email format, salary
sign -- run through core.validator so the client gets the field-keyed 422
body described in the API docs rather than Pydantic's error list.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import User
from jobs.filters import Metadata
from jobs.models import Job, JobApplication

StrippedStr = Annotated[str, StringConstraints(strip_whitespace=True)]

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users."""

    name: StrippedStr = ""
    email: StrippedStr = ""
    # Not stripped: leading/trailing spaces are part of the secret.
    password: str = Field(default="", json_schema_extra={"format": "password"})


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login."""

    email: StrippedStr = ""
    password: str = Field(default="", json_schema_extra={"format": "password"})


class JobCreate(BaseModel):
    """Request body for POST /api/v1/jobs."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = ""
    description: str = ""
    company: str = ""
    salary: int = 0


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. Never includes the password or its hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.value,
            created_at=user.created_at or "",
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class JobResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    company: str
    salary: int
    user_id: int
    created_at: str

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        return cls(
            id=job.id,
            title=job.title,
            description=job.description,
            company=job.company,
            salary=job.salary,
            user_id=job.user_id,
            created_at=job.created_at,
        )


class MetadataResponse(BaseModel):
    """Paging metadata. All zero when the listing is empty."""

    model_config = ConfigDict(frozen=True)

    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> "MetadataResponse":
        return cls(
            current_page=metadata.current_page,
            page_size=metadata.page_size,
            first_page=metadata.first_page,
            last_page=metadata.last_page,
            total_records=metadata.total_records,
        )


class JobListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    jobs: list[JobResponse]
    metadata: MetadataResponse


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    job_id: int
    user_id: int
    status: str
    created_at: str

    @classmethod
    def from_application(cls, application: JobApplication) -> "ApplicationResponse":
        return cls(
            id=application.id,
            job_id=application.job_id,
            user_id=application.user_id,
            status=application.status,
            created_at=application.created_at,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
