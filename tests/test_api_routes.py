"""
tests/test_api_routes.py -- Integration tests for the user and job routes.

These tests exercise the full stack: FastAPI routing -> bearer-token
dependency -> authorization gate -> Validator -> UserStore/JobStore ->
exception handlers -> response model serialization.

Coverage:
  - Registration: 201 without credential material, 422 field map, 409 duplicate
  - Login: token on success, identical 401 for unknown email and wrong password
  - Rate limiting: the 11th login in a minute is a 429
  - Auth failures: missing, malformed, expired, foreign-secret tokens -> 401
  - Role gate: candidate POST /jobs -> 403, recruiter -> 201
  - Listing: substring search, safelisted sort, fallback sort, paging, 422s
  - Applications: 201, duplicate 409, missing job 404
  - Unexpected errors: opaque 500

Fixtures used (from conftest.py):
  - api_client: ApiContext with a candidate and a recruiter plus their tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Role
from auth.tokens import TokenService
from conftest import CANDIDATE_PASSWORD, ApiContext


def _post_job(ctx: ApiContext, **overrides) -> dict:
    body = {
        "title": "Backend Engineer",
        "description": "Build and run the listings service.",
        "company": "Acme",
        "salary": 85000,
    }
    body.update(overrides)
    resp = ctx.client.post("/api/v1/jobs", json=body, headers=ctx.auth(ctx.recruiter_token))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_returns_user_without_password(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"name": "Ana", "email": "ana@example.com", "password": "longenough1"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] > 0
        assert data["name"] == "Ana"
        assert data["email"] == "ana@example.com"
        assert data["role"] == "candidate"
        assert "password" not in data
        assert "password_hash" not in data
        assert "longenough1" not in resp.text

    def test_register_ignores_requested_role(self, api_client: ApiContext) -> None:
        """Self-registration always creates candidates."""
        resp = api_client.client.post(
            "/api/v1/users",
            json={"name": "Sneaky", "email": "sneaky@example.com", "password": "longenough1", "role": "recruiter"},
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "candidate"

    def test_register_validation_errors_are_field_keyed(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/users", json={"name": "", "email": "not-an-email", "password": "short"})
        assert resp.status_code == 422
        assert resp.json() == {
            "name": "must be provided",
            "email": "must be a valid email address",
            "password": "must be at least 8 bytes long",
        }

    def test_register_rejects_password_over_72_bytes(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"name": "Long", "email": "long@example.com", "password": "x" * 73},
        )
        assert resp.status_code == 422
        assert resp.json() == {"password": "must not be more than 72 bytes long"}

    def test_password_whitespace_is_kept(self, api_client: ApiContext) -> None:
        """Name and email are trimmed; the password is used exactly as sent."""
        reg = api_client.client.post(
            "/api/v1/users",
            json={"name": "  Spacey  ", "email": " spacey@example.com ", "password": "  spaced pw  "},
        )
        assert reg.status_code == 201
        assert reg.json()["name"] == "Spacey"
        assert reg.json()["email"] == "spacey@example.com"

        ok = api_client.client.post("/api/v1/users/login", json={"email": "spacey@example.com", "password": "  spaced pw  "})
        trimmed = api_client.client.post("/api/v1/users/login", json={"email": "spacey@example.com", "password": "spaced pw"})
        assert ok.status_code == 200
        assert trimmed.status_code == 401

    def test_duplicate_email_returns_409(self, api_client: ApiContext) -> None:
        body = {"name": "Dup", "email": "dup@example.com", "password": "longenough1"}
        first = api_client.client.post("/api/v1/users", json=body)
        assert first.status_code == 201

        second = api_client.client.post("/api/v1/users", json=body)
        assert second.status_code == 409
        assert second.json() == {"email": "a user with this email address already exists"}


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_returns_verifiable_token(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/users/login",
            json={"email": "cara@example.com", "password": CANDIDATE_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        identity = api_client.tokens.verify(resp.json()["token"])
        assert identity.subject_id == api_client.candidate.id
        assert identity.role is Role.candidate

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, api_client: ApiContext) -> None:
        wrong_password = api_client.client.post(
            "/api/v1/users/login",
            json={"email": "cara@example.com", "password": "not-the-password"},
        )
        unknown_email = api_client.client.post(
            "/api/v1/users/login",
            json={"email": "nobody@example.com", "password": "not-the-password"},
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"]["code"] == "bad_credentials"
        assert wrong_password.headers["cache-control"] == unknown_email.headers["cache-control"] == "no-store"

    def test_missing_fields_are_field_keyed(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/users/login", json={})
        assert resp.status_code == 422
        assert resp.json() == {"email": "must be provided", "password": "must be provided"}

    def test_malformed_email_is_field_keyed(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/users/login", json={"email": "not-an-email", "password": "x"})
        assert resp.status_code == 422
        assert resp.json() == {"email": "must be a valid email address"}

    def test_eleventh_attempt_in_a_minute_is_429(self, api_client: ApiContext, monkeypatch) -> None:
        """LOGIN_RATE_LIMIT (10/minute) applies per client address."""
        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()
        try:
            codes = [
                api_client.client.post(
                    "/api/v1/users/login",
                    json={"email": "cara@example.com", "password": "not-the-password"},
                ).status_code
                for _ in range(11)
            ]
        finally:
            limiter.reset()
        assert codes == [401] * 10 + [429]


# ---------------------------------------------------------------------------
# Authentication failures
# ---------------------------------------------------------------------------


class TestAuthFailure:
    def test_me_without_token(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/me")
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_me_with_wrong_scheme(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/me", headers={"Authorization": f"Token {api_client.candidate_token}"})
        assert resp.status_code == 401

    def test_me_with_garbage_token(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_me_with_expired_token(self, api_client: ApiContext) -> None:
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = api_client.tokens.issue(api_client.candidate.id, Role.candidate, now=issued)
        resp = api_client.client.get("/api/v1/users/me", headers=api_client.auth(token))
        assert resp.status_code == 401

    def test_me_with_foreign_secret(self, api_client: ApiContext) -> None:
        forged = TokenService("x" * 40).issue(api_client.recruiter.id, Role.recruiter)
        resp = api_client.client.get("/api/v1/users/me", headers=api_client.auth(forged))
        assert resp.status_code == 401

    def test_me_with_valid_token(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/me", headers=api_client.auth(api_client.recruiter_token))
        assert resp.status_code == 200
        assert resp.json()["email"] == "rita@example.com"
        assert resp.json()["role"] == "recruiter"


# ---------------------------------------------------------------------------
# Job creation and role gate
# ---------------------------------------------------------------------------


class TestCreateJob:
    def test_no_token_is_401(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/jobs", json={"title": "x"})
        assert resp.status_code == 401

    def test_candidate_is_403(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/jobs",
            json={"title": "T", "description": "D", "company": "C", "salary": 1},
            headers=api_client.auth(api_client.candidate_token),
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == {
            "code": "forbidden",
            "message": "Only recruiters can post jobs.",
            "detail": None,
        }

    def test_recruiter_is_201(self, api_client: ApiContext) -> None:
        job = _post_job(api_client, title="Data Engineer")
        assert job["id"] > 0
        assert job["title"] == "Data Engineer"
        assert job["user_id"] == api_client.recruiter.id

    def test_invalid_job_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/jobs",
            json={"title": "T", "description": "", "company": "C", "salary": -5},
            headers=api_client.auth(api_client.recruiter_token),
        )
        assert resp.status_code == 422
        assert resp.json() == {"description": "must be provided", "salary": "must be a positive integer"}

    def test_get_job_detail_and_missing(self, api_client: ApiContext) -> None:
        job = _post_job(api_client, title="Detail Job")
        resp = api_client.client.get(f"/api/v1/jobs/{job['id']}")
        assert resp.status_code == 200
        assert resp.json() == job

        missing = api_client.client.get("/api/v1/jobs/999999")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "job_not_found"

    def test_salary_beyond_integer_column_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/jobs",
            json={"title": "T", "description": "D", "company": "C", "salary": 10**20},
            headers=api_client.auth(api_client.recruiter_token),
        )
        assert resp.status_code == 422
        assert resp.json() == {"salary": "must not be more than 2147483647"}

    def test_largest_salary_is_accepted(self, api_client: ApiContext) -> None:
        job = _post_job(api_client, salary=2_147_483_647)
        assert job["salary"] == 2_147_483_647

    def test_job_id_beyond_bigint_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/jobs/100000000000000000000")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListJobs:
    def test_sort_by_salary_descending_with_id_tiebreak(self, api_client: ApiContext) -> None:
        low = _post_job(api_client, company="SortCo", salary=50000)
        high_a = _post_job(api_client, company="SortCo", salary=90000)
        mid = _post_job(api_client, company="SortCo", salary=70000)
        high_b = _post_job(api_client, company="SortCo", salary=90000)

        resp = api_client.client.get("/api/v1/jobs", params={"company": "sortco", "sort": "-salary"})
        assert resp.status_code == 200
        ids = [j["id"] for j in resp.json()["jobs"]]
        assert ids == [high_a["id"], high_b["id"], mid["id"], low["id"]]

    def test_unknown_sort_falls_back_to_id_ascending(self, api_client: ApiContext) -> None:
        created = [_post_job(api_client, company="FallbackCo", salary=s)["id"] for s in (3, 1, 2)]
        for sort in ("foo", "-foo", "salary; DROP TABLE jobs"):
            resp = api_client.client.get("/api/v1/jobs", params={"company": "FallbackCo", "sort": sort})
            assert resp.status_code == 200
            assert [j["id"] for j in resp.json()["jobs"]] == created

    def test_title_search_is_case_insensitive_substring(self, api_client: ApiContext) -> None:
        _post_job(api_client, title="Senior Python Developer", company="SearchCo")
        _post_job(api_client, title="Java Developer", company="SearchCo")
        resp = api_client.client.get("/api/v1/jobs", params={"title": "PYTHON", "company": "searchco"})
        titles = [j["title"] for j in resp.json()["jobs"]]
        assert titles == ["Senior Python Developer"]

    def test_pagination_metadata(self, api_client: ApiContext) -> None:
        for _ in range(3):
            _post_job(api_client, company="PageCo")
        resp = api_client.client.get("/api/v1/jobs", params={"company": "PageCo", "page": "2", "page_size": "2"})
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["jobs"]) == 1
        assert body["metadata"] == {
            "current_page": 2,
            "page_size": 2,
            "first_page": 1,
            "last_page": 2,
            "total_records": 3,
        }

    def test_empty_listing_has_zero_metadata(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/jobs", params={"company": "NoSuchCompanyAnywhere"})
        assert resp.status_code == 200
        assert resp.json()["jobs"] == []
        assert set(resp.json()["metadata"].values()) == {0}

    def test_invalid_paging_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/jobs", params={"page": "0", "page_size": "101"})
        assert resp.status_code == 422
        assert resp.json() == {"page": "must be greater than zero", "page_size": "must be a maximum of 100"}

    def test_non_integer_page_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/jobs", params={"page": "abc"})
        assert resp.status_code == 422
        assert resp.json() == {"page": "must be an integer value"}


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


class TestApply:
    def test_apply_then_duplicate_is_409(self, api_client: ApiContext) -> None:
        job = _post_job(api_client, title="Apply Once")
        url = f"/api/v1/jobs/{job['id']}/applications"
        headers = api_client.auth(api_client.candidate_token)

        first = api_client.client.post(url, headers=headers)
        assert first.status_code == 201
        assert first.json()["job_id"] == job["id"]
        assert first.json()["user_id"] == api_client.candidate.id
        assert first.json()["status"] == "applied"

        second = api_client.client.post(url, headers=headers)
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "duplicate_application"

        mine = api_client.client.get("/api/v1/users/me/applications", headers=headers)
        assert job["id"] in [a["job_id"] for a in mine.json()]

    def test_apply_to_missing_job_is_404(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/jobs/999999/applications", headers=api_client.auth(api_client.candidate_token))
        assert resp.status_code == 404

    def test_apply_to_out_of_range_job_id_is_422(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/jobs/100000000000000000000/applications",
            headers=api_client.auth(api_client.candidate_token),
        )
        assert resp.status_code == 422

    def test_apply_without_token_is_401(self, api_client: ApiContext) -> None:
        job = _post_job(api_client, title="Needs Auth")
        resp = api_client.client.post(f"/api/v1/jobs/{job['id']}/applications")
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class TestErrorEnvelope:
    def test_unknown_route_uses_envelope(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "http_404"

    def test_internal_error_is_opaque(self, api_client: ApiContext, monkeypatch) -> None:
        def boom(*args, **kwargs):
            raise RuntimeError("connection to db-host:5432 refused, password=hunter2")

        monkeypatch.setattr(app.state.job_store, "list_jobs", boom)
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/api/v1/jobs")
        assert resp.status_code == 500
        assert resp.json() == {
            "error": {"code": "internal_error", "message": "An unexpected error occurred.", "detail": None}
        }
        assert "hunter2" not in resp.text
