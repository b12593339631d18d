"""Assessment session Pydantic schemas."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from core.workflow.assessments import HiringOutcome


class ApplicationCreate(BaseModel):
    """A candidate applying to a published posting."""

    job_id: str = Field(min_length=1, max_length=64)
    application_id: Optional[str] = Field(None, max_length=64, description="Generated when omitted")


class StageStartResponse(BaseModel):
    """A started stage and the quiz to answer, without the answer key."""

    application_id: str
    stage: str
    started_at: datetime
    expires_at: datetime
    quiz: dict[str, Any]


class StageSubmission(BaseModel):
    """Selected option index per question id."""

    answers: dict[str, int] = Field(default_factory=dict)


class StageSubmissionResponse(BaseModel):
    """Outcome of a stage submission as shown to the candidate."""

    application_id: str
    stage: str
    percent: int = Field(description="Score rounded half-up")
    passed: bool
    next_stage: str


class HiringDecisionRequest(BaseModel):
    """Project Leader decision on a completed application."""

    decision: HiringOutcome
    feedback: str = Field(default="")
    rating: Optional[int] = Field(None, ge=1, le=5)
