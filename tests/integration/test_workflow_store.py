"""
Integration tests for the SQLAlchemy workflow store and the Celery tasks,
backed by a throwaway SQLite database.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from core.workflow.assessments import SessionStage, open_session, start_stage
from core.workflow.errors import NotFoundError
from core.workflow.notifications import notification_for_transition
from core.workflow.postings import PostingStatus
from database.engine import build_engine, build_session_factory, close_db, init_db
from database.repositories import SQLAlchemyWorkflowStore
from tests.factories import T0
from workers.tasks import postings as posting_tasks
from workers.tasks.notifications import deliver_workflow_notification


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/workflow.db", echo=False)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def sql_store(engine):
    return SQLAlchemyWorkflowStore(build_session_factory(engine))


class TestPostingPersistence:
    """Postings survive a round trip through the database."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, sql_store, published_posting):
        await sql_store.save(published_posting)

        loaded = await sql_store.load("job-1")
        assert loaded == published_posting
        assert loaded.display_status == "published(active)"
        assert loaded.hr_assessment.questions[0].category == "behavioral"

    @pytest.mark.asyncio
    async def test_update_in_place(self, sql_store, draft_posting):
        await sql_store.save(draft_posting)
        draft_posting.title = "Staff Backend Engineer"
        draft_posting.status = PostingStatus.HR_REVIEW
        await sql_store.save(draft_posting)

        postings = await sql_store.list_postings()
        assert len(postings) == 1
        assert postings[0].title == "Staff Backend Engineer"
        assert postings[0].status == PostingStatus.HR_REVIEW

    @pytest.mark.asyncio
    async def test_loaded_copy_is_private(self, sql_store, draft_posting):
        await sql_store.save(draft_posting)
        loaded = await sql_store.load("job-1")
        loaded.title = "Changed"
        assert (await sql_store.load("job-1")).title == "Backend Engineer"

    @pytest.mark.asyncio
    async def test_missing(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.load("nope")


class TestSessionPersistence:
    """Assessment sessions keep their stage attempts."""

    @pytest.mark.asyncio
    async def test_round_trip(self, sql_store, published_posting):
        start = T0 + timedelta(days=1)
        session = open_session(published_posting, application_id="app-1", candidate_id="cand-1", created_at=start)
        start_stage(session, "technical", published_posting.technical_assessment, started_at=start)
        await sql_store.save_session(session)

        loaded = await sql_store.load_session("app-1")
        assert loaded.stage == SessionStage.TECHNICAL
        assert loaded.technical.expires_at == start + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_list_by_job(self, sql_store, published_posting):
        for n, job_id in enumerate(["job-1", "job-1", "job-2"]):
            session = open_session(published_posting, application_id=f"app-{n}")
            session.job_id = job_id
            await sql_store.save_session(session)

        assert len(await sql_store.list_sessions()) == 3
        assert {s.application_id for s in await sql_store.list_sessions("job-1")} == {"app-0", "app-1"}

    @pytest.mark.asyncio
    async def test_missing(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.load_session("nope")


class TestWorkerTasks:
    """Celery tasks run eagerly against the same store."""

    @pytest.mark.asyncio
    async def test_sweep_archives_due_postings(self, engine, sql_store, published_posting):
        published_posting.closes_at = T0
        await sql_store.save(published_posting)

        with patch.object(posting_tasks, "build_engine", return_value=engine):
            archived = await posting_tasks._sweep()

        assert archived == ["job-1"]
        assert (await sql_store.load("job-1")).status == PostingStatus.ARCHIVED

    def test_expire_task_reports_archived(self):
        with patch.object(posting_tasks, "_sweep", new=AsyncMock(return_value=["job-1", "job-2"])):
            result = posting_tasks.expire_due_postings.apply().get()
        assert result == {"status": "success", "archived": ["job-1", "job-2"], "count": 2}

    def test_deliver_notification(self, review_posting):
        note = notification_for_transition(review_posting, review_posting.transitions[-1])
        result = deliver_workflow_notification.apply(args=[note.model_dump(mode="json")]).get()
        assert result["status"] == "delivered"
        assert result["type"] == "hr_enhancement_required"
        assert result["recipient_role"] == "hr"
