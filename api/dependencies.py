"""FastAPI dependencies for dependency injection."""

from typing import Optional
from fastapi import Header, HTTPException, status

from core.integrations.notifications import CeleryNotificationDispatcher
from core.workflow.actors import Actor, ActorRole
from core.workflow.collaborators import NotificationDispatcher, WorkflowStore
from database.engine import AsyncSessionLocal
from database.repositories import SQLAlchemyWorkflowStore

# Roles a caller may claim; system events never come in over HTTP
CALLER_ROLES = {role.value: role for role in ActorRole if role != ActorRole.SYSTEM}

_store = SQLAlchemyWorkflowStore(AsyncSessionLocal)
_notifier = CeleryNotificationDispatcher()


async def get_actor(
    x_actor_role: Optional[str] = Header(None, description="project_leader, hr, executive or candidate"),
    x_actor_id: Optional[str] = Header(None, description="Caller id"),
) -> Actor:
    """
    Build the caller identity from the trusted identity headers.
    Authentication happens upstream; the role is taken as given.
    """
    role = CALLER_ROLES.get((x_actor_role or "").strip().lower())
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or unknown X-Actor-Role header",
        )
    return Actor(role=role, id=(x_actor_id or "").strip() or None)


def get_store() -> WorkflowStore:
    """Workflow persistence collaborator."""
    return _store


def get_notifier() -> NotificationDispatcher:
    """Workflow notification collaborator."""
    return _notifier
