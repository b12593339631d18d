"""
Narrow interfaces the workflow core depends on.

Implementations live outside the core: ``database.repositories`` for
persistence and ``core.integrations.notifications`` for notifications. The
identity collaborator is the ``Actor`` built by ``api.dependencies``.
"""

from typing import Optional, Protocol, runtime_checkable

from core.workflow.assessments import AssessmentSession
from core.workflow.notifications import WorkflowNotification
from core.workflow.postings import JobPosting


@runtime_checkable
class WorkflowStore(Protocol):
    """Persistence collaborator. ``save`` must be atomic per entity."""

    async def load(self, job_id: str) -> JobPosting:
        ...

    async def save(self, posting: JobPosting) -> None:
        ...

    async def load_session(self, application_id: str) -> AssessmentSession:
        ...

    async def save_session(self, session: AssessmentSession) -> None:
        ...

    async def list_postings(self) -> list[JobPosting]:
        ...

    async def list_sessions(self, job_id: Optional[str] = None) -> list[AssessmentSession]:
        ...


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Notification collaborator. Fire-and-forget: dispatch enqueues, delivery happens elsewhere."""

    async def dispatch(self, notification: WorkflowNotification) -> None:
        ...
