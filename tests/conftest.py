"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("JSON_LOGS", "false")

from datetime import timedelta

import pytest

from core.integrations.notifications import InMemoryNotificationDispatcher
from core.workflow.actors import Actor, ActorRole
from core.workflow.approvals import apply_decision, make_decision
from core.workflow.postings import complete_enhancement, create_posting, submit_for_review
from database.repositories import InMemoryWorkflowStore
from tests.factories import T0, make_hr_quiz, make_technical_quiz


@pytest.fixture
def project_leader():
    return Actor(role=ActorRole.PROJECT_LEADER, id="pl-1")


@pytest.fixture
def hr_actor():
    return Actor(role=ActorRole.HR, id="hr-1")


@pytest.fixture
def executive():
    return Actor(role=ActorRole.EXECUTIVE, id="ceo-1")


@pytest.fixture
def candidate():
    return Actor(role=ActorRole.CANDIDATE, id="cand-1")


@pytest.fixture
def technical_quiz():
    return make_technical_quiz()


@pytest.fixture
def hr_quiz():
    return make_hr_quiz()


@pytest.fixture
def draft_posting(project_leader, technical_quiz):
    """Draft with a technical assessment, created at T0."""
    return create_posting(
        title="Backend Engineer",
        department="Engineering",
        actor=project_leader,
        technical_assessment=technical_quiz,
        location="Remote",
        created_at=T0,
        job_id="job-1",
    )


@pytest.fixture
def review_posting(draft_posting, project_leader):
    submit_for_review(draft_posting, project_leader, at=T0 + timedelta(hours=1))
    return draft_posting


@pytest.fixture
def approval_posting(review_posting, hr_actor, hr_quiz):
    complete_enhancement(review_posting, hr_actor, hr_quiz, at=T0 + timedelta(hours=3))
    return review_posting


@pytest.fixture
def published_posting(approval_posting, executive):
    decision = make_decision(
        "job-1", executive, "approve", timestamp=T0 + timedelta(hours=6)
    )
    apply_decision(approval_posting, decision)
    return approval_posting


@pytest.fixture
def store():
    return InMemoryWorkflowStore()


@pytest.fixture
def notifier():
    return InMemoryNotificationDispatcher()
