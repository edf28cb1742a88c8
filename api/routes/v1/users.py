"""
api/routes/v1/users.py -- Account registration, login, and profile endpoints.

Routes:
  POST /api/v1/users                    -- register (always as candidate)
  POST /api/v1/users/login              -- email/password login; returns {token}
  GET  /api/v1/users/me                 -- current account (requires auth)
  GET  /api/v1/users/me/applications    -- current account's applications (requires auth)

Security:
  Login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline
      get_by_email() + verify_password().
  Unknown email and wrong password get the identical 401 body and headers.
  Cache-Control: no-store on login responses (the body is a credential).
  Self-registration cannot choose a role. Recruiters are provisioned with
      `python main.py create-user --role recruiter`.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ApplicationResponse, LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import get_identity
from auth.models import Identity, Role, User, validate_email, validate_user
from auth.passwords import Password, authenticate_user
from auth.store import DuplicateEmail, UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import Conflict, NotFound, ValidationFailed
from core.validator import Validator
from jobs.store import JobStore

# Auth policy:
# - POST /api/v1/users:                   public
# - POST /api/v1/users/login:             public, rate-limited
# - GET  /api/v1/users/me:                requires auth (get_identity)
# - GET  /api/v1/users/me/applications:   requires auth (get_identity)
router = APIRouter()

_settings = get_settings()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
@limiter.limit("20/minute")
def register_user(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a candidate account.

    Validation runs on the plaintext before any bcrypt work. The plaintext is
    discarded as soon as the hash exists; the response never contains either.
    """
    user_store: UserStore = request.app.state.user_store

    user = User(
        name=body.name,
        email=body.email,
        role=Role.candidate,
        password=Password(plaintext=body.password),
    )

    v = Validator()
    validate_user(v, user)
    if not v.valid():
        raise ValidationFailed(fields=v.errors)

    user.password.set(body.password)

    try:
        user_store.create_user(user)
    except DuplicateEmail as exc:
        v.add_error("email", exc.message)
        raise Conflict(fields=v.errors) from exc

    return UserResponse.from_user(user)


@router.post("/users/login", response_model=LoginResponse)
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a signed bearer token.

    Returns the same generic error for unknown email and wrong password
    ("bad_credentials") so the endpoint cannot be used to enumerate accounts.
    A missing or malformed field is a field-keyed 422, like registration.
    """
    v = Validator()
    validate_email(v, body.email)
    v.check(body.password != "", "password", "must be provided")
    if not v.valid():
        raise ValidationFailed(fields=v.errors)

    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token_service: TokenService = request.app.state.token_service
    token = token_service.issue(user.id, user.role)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=UserResponse)
def me(request: Request, identity: Identity = Depends(get_identity)) -> UserResponse:
    """Return the account behind the presented token."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(identity.subject_id)
    if user is None:
        raise NotFound("User not found.")
    return UserResponse.from_user(user)


@router.get("/users/me/applications", response_model=list[ApplicationResponse])
def my_applications(request: Request, identity: Identity = Depends(get_identity)) -> list[ApplicationResponse]:
    """List the applications made by the current account, newest first."""
    job_store: JobStore = request.app.state.job_store
    return [ApplicationResponse.from_application(a) for a in job_store.get_applications_for_user(identity.subject_id)]
