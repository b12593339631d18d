"""
Persistence collaborators for the workflow core.

Both stores keep serialized snapshots, so an entity loaded from a store is a
private copy: nothing a caller does to it is visible until ``save``.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.workflow.assessments import AssessmentSession
from core.workflow.errors import NotFoundError
from core.workflow.postings import JobPosting
from database.models.workflow import AssessmentSessionRecord, JobPostingRecord

logger = logging.getLogger(__name__)


class SQLAlchemyWorkflowStore:
    """Async SQLAlchemy store; each save runs in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load(self, job_id: str) -> JobPosting:
        async with self.session_factory() as session:
            row = await session.get(JobPostingRecord, job_id)
            if row is None:
                raise NotFoundError(f"Job posting {job_id} not found", job_id=job_id)
            return JobPosting.model_validate(row.payload)

    async def save(self, posting: JobPosting) -> None:
        payload = posting.model_dump(mode="json")
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(JobPostingRecord, posting.id)
                if row is None:
                    session.add(JobPostingRecord(
                        id=posting.id,
                        title=posting.title,
                        department=posting.department,
                        created_by=posting.created_by,
                        status=posting.status.value,
                        publication_state=_value(posting.publication_state),
                        payload=payload,
                        created_at=posting.created_at,
                    ))
                else:
                    row.title = posting.title
                    row.department = posting.department
                    row.status = posting.status.value
                    row.publication_state = _value(posting.publication_state)
                    row.payload = payload
        logger.debug(f"Saved posting {posting.id} ({posting.display_status})")

    async def load_session(self, application_id: str) -> AssessmentSession:
        async with self.session_factory() as session:
            row = await session.get(AssessmentSessionRecord, application_id)
            if row is None:
                raise NotFoundError(
                    f"Assessment session {application_id} not found",
                    application_id=application_id,
                )
            return AssessmentSession.model_validate(row.payload)

    async def save_session(self, assessment: AssessmentSession) -> None:
        payload = assessment.model_dump(mode="json")
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(AssessmentSessionRecord, assessment.application_id)
                if row is None:
                    session.add(AssessmentSessionRecord(
                        application_id=assessment.application_id,
                        job_id=assessment.job_id,
                        candidate_id=assessment.candidate_id,
                        stage=assessment.stage.value,
                        payload=payload,
                        created_at=assessment.created_at,
                    ))
                else:
                    row.stage = assessment.stage.value
                    row.payload = payload
        logger.debug(f"Saved session {assessment.application_id} ({assessment.stage.value})")

    async def list_postings(self) -> list[JobPosting]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(JobPostingRecord).order_by(JobPostingRecord.created_at.desc())
            )
            return [JobPosting.model_validate(row.payload) for row in result.scalars().all()]

    async def list_sessions(self, job_id: Optional[str] = None) -> list[AssessmentSession]:
        async with self.session_factory() as session:
            query = select(AssessmentSessionRecord)
            if job_id:
                query = query.where(AssessmentSessionRecord.job_id == job_id)
            result = await session.execute(query.order_by(AssessmentSessionRecord.created_at.desc()))
            return [AssessmentSession.model_validate(row.payload) for row in result.scalars().all()]


class InMemoryWorkflowStore:
    """Dictionary-backed store for development and tests."""

    def __init__(self):
        self._postings: dict[str, dict[str, Any]] = {}
        self._sessions: dict[str, dict[str, Any]] = {}

    async def load(self, job_id: str) -> JobPosting:
        try:
            return JobPosting.model_validate(self._postings[job_id])
        except KeyError:
            raise NotFoundError(f"Job posting {job_id} not found", job_id=job_id) from None

    async def save(self, posting: JobPosting) -> None:
        self._postings[posting.id] = posting.model_dump(mode="json")

    async def load_session(self, application_id: str) -> AssessmentSession:
        try:
            return AssessmentSession.model_validate(self._sessions[application_id])
        except KeyError:
            raise NotFoundError(
                f"Assessment session {application_id} not found",
                application_id=application_id,
            ) from None

    async def save_session(self, assessment: AssessmentSession) -> None:
        self._sessions[assessment.application_id] = assessment.model_dump(mode="json")

    async def list_postings(self) -> list[JobPosting]:
        return [JobPosting.model_validate(p) for p in self._postings.values()]

    async def list_sessions(self, job_id: Optional[str] = None) -> list[AssessmentSession]:
        return [
            AssessmentSession.model_validate(s)
            for s in self._sessions.values()
            if job_id is None or s["job_id"] == job_id
        ]


def _value(enum_value) -> Optional[str]:
    return enum_value.value if enum_value is not None else None
