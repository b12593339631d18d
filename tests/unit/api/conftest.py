"""Fixtures for endpoint tests."""

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_notifier, get_store
from api.main import app
from core.integrations.notifications import InMemoryNotificationDispatcher
from database.repositories import InMemoryWorkflowStore
from tests.factories import HEADERS, quiz_payload


@pytest.fixture
def api_store():
    return InMemoryWorkflowStore()


@pytest.fixture
def api_notifier():
    return InMemoryNotificationDispatcher()


@pytest.fixture
def client(api_store, api_notifier):
    """Test client wired to in-memory collaborators."""
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_notifier] = lambda: api_notifier
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def published_job(client):
    """Id of a posting taken through review and approval over HTTP."""
    body = {
        "title": "Backend Engineer",
        "department": "Engineering",
        "technical_assessment": quiz_payload("technical"),
    }
    job_id = client.post("/api/v1/postings", json=body, headers=HEADERS["project_leader"]).json()["id"]
    client.post(f"/api/v1/postings/{job_id}/submit", headers=HEADERS["project_leader"])
    client.post(
        f"/api/v1/postings/{job_id}/enhancement",
        json={"hr_assessment": quiz_payload("hr")},
        headers=HEADERS["hr"],
    )
    response = client.post(
        f"/api/v1/postings/{job_id}/decision",
        json={"outcome": "approve"},
        headers=HEADERS["executive"],
    )
    assert response.status_code == 200, response.text
    return job_id
