"""
Tests for the exception handlers.
Every failure must leave the API in the same error envelope with no secrets.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError

from core.middleware.error_handling import sanitize_error_message, setup_error_handlers
from core.workflow.errors import (
    ExpiredError,
    ForbiddenTransitionError,
    NotFoundError,
    OutOfOrderError,
    ValidationError,
)


class TestSanitization:
    """Secrets never reach a response body."""

    @pytest.mark.parametrize("message,secret", [
        ('password="secret123"', "secret123"),
        ("token=abc.def.ghi", "abc.def.ghi"),
        ("api_key: sk_live_12345", "sk_live_12345"),
        ("client_secret=hunter2", "hunter2"),
        ("authorization: Bearer xyz", "Bearer"),
        ("could not connect to postgresql+asyncpg://app:pw@db:5432/hiring", "app:pw@db"),
        ("broker redis://:pw@cache:6379/0 refused", ":pw@cache"),
    ])
    def test_redacts(self, message, secret):
        sanitized = sanitize_error_message(message)
        assert secret not in sanitized
        assert "[REDACTED]" in sanitized

    def test_plain_message_unchanged(self):
        message = "Cannot approve a posting in hr_review"
        assert sanitize_error_message(message) == message

    def test_empty_string(self):
        assert sanitize_error_message("") == ""


class Payload(BaseModel):
    count: int


@pytest.fixture
def client():
    """App raising each error family from a route."""
    app = FastAPI()
    setup_error_handlers(app)

    @app.get("/ok")
    async def ok():
        return {"status": "ok"}

    @app.get("/forbidden")
    async def forbidden():
        raise ForbiddenTransitionError("Only executive may approve; caller is hr", job_id="job-1")

    @app.get("/invalid")
    async def invalid():
        raise ValidationError("comments required for reject")

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Job posting job-9 not found", job_id="job-9")

    @app.get("/out-of-order")
    async def out_of_order():
        raise OutOfOrderError("Technical stage must be submitted first", application_id="app-1")

    @app.get("/expired")
    async def expired():
        raise ExpiredError("Submission after deadline")

    @app.get("/http")
    async def http_error():
        raise HTTPException(status_code=401, detail="Missing role with token=abc123")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    @app.get("/db-down")
    async def db_down():
        raise OperationalError("connect to postgresql://app:pw@db/hiring failed", None, None)

    @app.get("/db-integrity")
    async def db_integrity():
        raise IntegrityError("duplicate key", None, None)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("Unexpected failure with api_key=secret")

    return TestClient(app, raise_server_exceptions=False)


class TestWorkflowErrors:
    """Workflow errors keep their own status code and code."""

    @pytest.mark.parametrize("path,status,code", [
        ("/forbidden", 403, "FORBIDDEN_TRANSITION"),
        ("/invalid", 400, "VALIDATION_ERROR"),
        ("/missing", 404, "NOT_FOUND"),
        ("/out-of-order", 409, "OUT_OF_ORDER"),
        ("/expired", 410, "STAGE_EXPIRED"),
    ])
    def test_status_mapping(self, client, path, status, code):
        response = client.get(path)
        assert response.status_code == status
        assert response.json()["error"]["code"] == code

    def test_envelope(self, client):
        error = client.get("/forbidden").json()["error"]
        assert error["message"] == "Only executive may approve; caller is hr"
        assert error["path"] == "/forbidden"
        assert error["method"] == "GET"
        assert error["details"] == {"job_id": "job-1"}

    def test_request_id_echoed(self, client):
        error = client.get("/missing", headers={"x-request-id": "req-42"}).json()["error"]
        assert error["request_id"] == "req-42"


class TestFrameworkErrors:
    """HTTP, request validation, database and unexpected errors."""

    def test_success_passes_through(self, client):
        assert client.get("/ok").json() == {"status": "ok"}

    def test_http_exception(self, client):
        response = client.get("/http")
        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "HTTP_EXCEPTION"
        assert "abc123" not in error["message"]

    def test_request_validation(self, client):
        response = client.post("/validate", json={"count": "many"})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "REQUEST_VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.count"

    def test_database_unavailable(self, client):
        response = client.get("/db-down")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_ERROR"
        assert "pw@db" not in response.text

    def test_database_error(self, client):
        response = client.get("/db-integrity")
        assert response.status_code == 500
        assert response.json()["error"]["message"] == "A database error occurred"

    def test_unexpected_error(self, client):
        response = client.get("/boom")
        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_SERVER_ERROR"
        assert "secret" not in response.text
