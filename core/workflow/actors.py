"""Roles that drive the workflow and the actor identity supplied per request."""

from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel


class ActorRole(str, PyEnum):
    """Workflow roles."""

    PROJECT_LEADER = "project_leader"  # Authors postings and makes hiring decisions
    HR = "hr"  # Adds the behavioral assessment
    EXECUTIVE = "executive"  # Approves and moderates published postings
    CANDIDATE = "candidate"  # Takes assessments
    SYSTEM = "system"  # Time-based events


class Actor(BaseModel):
    """Caller identity. Trusted as given; authentication happens elsewhere."""

    role: ActorRole
    id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.role.value}:{self.id}" if self.id else self.role.value


SYSTEM_ACTOR = Actor(role=ActorRole.SYSTEM, id="system")
