"""Job posting Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from core.workflow.postings import DecisionOutcome, PostingEvent, RequestedModification
from core.workflow.quiz import AssessmentStage, Quiz, create_quiz


class QuestionCreate(BaseModel):
    """A multiple-choice question as authored."""

    id: Optional[str] = Field(None, max_length=64, description="Stable question id; generated when omitted")
    prompt: str = Field(min_length=1, description="Question text")
    options: list[str] = Field(description="Exactly four answer options")
    correct_option_index: int = Field(description="Index of the correct option (0-3)")
    points: float = Field(description="Points awarded for a correct answer")
    category: Optional[str] = Field(None, description="Reporting category; required for HR questions")


class QuizCreate(BaseModel):
    """A quiz as authored by the Project Leader or HR."""

    title: str = Field(default="", max_length=255)
    questions: list[QuestionCreate]
    time_limit_minutes: int = Field(description="Minutes allowed once the stage is started")
    passing_score_percent: float = Field(description="Minimum percent to pass (0-100)")

    def to_quiz(self, stage: AssessmentStage) -> Quiz:
        """Build and validate the domain quiz for the given stage."""
        return create_quiz(
            questions=[q.model_dump(exclude_none=True) for q in self.questions],
            time_limit_minutes=self.time_limit_minutes,
            passing_score_percent=self.passing_score_percent,
            owning_stage=stage,
            title=self.title,
        )


class PostingCreate(BaseModel):
    """Schema for creating a draft posting."""

    title: str = Field(min_length=1, max_length=255, description="Job title")
    department: str = Field(min_length=1, max_length=100, description="Department")
    location: str = Field(default="", max_length=255)
    description: str = Field(default="")
    closes_at: Optional[datetime] = Field(None, description="Applications close after this time")
    technical_assessment: Optional[QuizCreate] = None

    @field_validator("title", "department", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip whitespace from required text fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class EnhancementRequest(BaseModel):
    """HR enhancement: the behavioral quiz to attach."""

    hr_assessment: QuizCreate


class DecisionRequest(BaseModel):
    """Executive decision on a posting awaiting approval."""

    outcome: DecisionOutcome
    comments: str = Field(default="", description="Required for reject and request_changes")
    conditions: list[str] = Field(default_factory=list, description="Advisory conditions")
    requested_modifications: list[RequestedModification] = Field(default_factory=list)


class VisibilityRequest(BaseModel):
    """Executive moderation of a published posting."""

    event: PostingEvent = Field(description="hide, flag, reactivate or mark_expired")
    note: Optional[str] = Field(None, max_length=1000)
