"""
Quiz model and scoring.

A quiz is an ordered list of four-option questions with a point value each.
Scoring awards a question's points only when the selected option is the
correct one; unanswered questions score zero.
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum as PyEnum
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, Field, computed_field
from pydantic import ValidationError as PydanticValidationError

from core.workflow.errors import ValidationError


OPTIONS_PER_QUESTION = 4


class AssessmentStage(str, PyEnum):
    """Stage that owns (and is evaluated by) a quiz."""

    TECHNICAL = "technical"
    HR = "hr"


HR_CATEGORIES = frozenset({
    "behavioral",
    "cultural_fit",
    "communication",
    "teamwork",
    "leadership",
    "adaptability",
})

TECHNICAL_CATEGORIES = frozenset({
    "programming",
    "system_design",
    "algorithms",
    "database",
    "frameworks",
    "general",
})


class Question(BaseModel):
    """A single multiple-choice question."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    prompt: str
    options: list[str]
    correct_option_index: int
    points: float
    # Reporting only; never affects pass/fail.
    category: Optional[str] = None


class Quiz(BaseModel):
    """An ordered, timed quiz owned by one assessment stage."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owning_stage: AssessmentStage = AssessmentStage.TECHNICAL
    title: str = ""
    questions: list[Question]
    time_limit_minutes: int
    passing_score_percent: float

    @computed_field
    @property
    def max_points(self) -> float:
        return sum(q.points for q in self.questions)

    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]

    def public_view(self) -> dict[str, Any]:
        """Candidate-facing payload: everything except the answer key."""
        return {
            "id": self.id,
            "owning_stage": self.owning_stage.value,
            "title": self.title,
            "time_limit_minutes": self.time_limit_minutes,
            "passing_score_percent": self.passing_score_percent,
            "max_points": self.max_points,
            "questions": [
                {
                    "id": q.id,
                    "prompt": q.prompt,
                    "options": list(q.options),
                    "points": q.points,
                    "category": q.category,
                }
                for q in self.questions
            ],
        }


class ScoreResult(BaseModel):
    """Outcome of scoring one set of answers against a quiz."""

    total_points: float
    max_points: float
    percent: float
    passed: bool
    category_breakdown: dict[str, float] = Field(default_factory=dict)

    @computed_field
    @property
    def rounded_percent(self) -> int:
        return round_half_up(self.percent)


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_quiz(quiz: Quiz, stage: Optional[AssessmentStage] = None) -> Quiz:
    """
    Check the structural rules every quiz must satisfy.

    Args:
        quiz: Quiz to check
        stage: When given, the quiz must be owned by this stage

    Returns:
        The same quiz, for chaining

    Raises:
        ValidationError: On the first violated rule
    """
    if stage is not None and quiz.owning_stage != stage:
        raise ValidationError(
            f"Quiz is owned by the {quiz.owning_stage.value} stage, expected {stage.value}",
            quiz_id=quiz.id,
        )
    if not quiz.questions:
        raise ValidationError("Quiz must contain at least one question", quiz_id=quiz.id)
    if quiz.time_limit_minutes <= 0:
        raise ValidationError("Time limit must be greater than zero minutes", quiz_id=quiz.id)
    if not 0 <= quiz.passing_score_percent <= 100:
        raise ValidationError("Passing score must be between 0 and 100", quiz_id=quiz.id)

    seen: set[str] = set()
    for position, question in enumerate(quiz.questions, start=1):
        label = f"Question {position} ({question.id})"
        if question.id in seen:
            raise ValidationError(f"{label}: duplicate question id", quiz_id=quiz.id)
        seen.add(question.id)

        if len(question.options) != OPTIONS_PER_QUESTION:
            raise ValidationError(
                f"{label}: expected exactly {OPTIONS_PER_QUESTION} options, "
                f"got {len(question.options)}",
                quiz_id=quiz.id,
            )
        if any(not option or not option.strip() for option in question.options):
            raise ValidationError(f"{label}: options must be non-empty", quiz_id=quiz.id)
        if not 0 <= question.correct_option_index < OPTIONS_PER_QUESTION:
            raise ValidationError(
                f"{label}: correct option index {question.correct_option_index} out of range",
                quiz_id=quiz.id,
            )
        if question.points <= 0:
            raise ValidationError(f"{label}: points must be positive", quiz_id=quiz.id)
        if quiz.owning_stage == AssessmentStage.HR and question.category not in HR_CATEGORIES:
            raise ValidationError(
                f"{label}: HR questions need one of {sorted(HR_CATEGORIES)}",
                quiz_id=quiz.id,
            )
        if (
            quiz.owning_stage == AssessmentStage.TECHNICAL
            and question.category is not None
            and question.category not in TECHNICAL_CATEGORIES
        ):
            raise ValidationError(
                f"{label}: technical category must be one of {sorted(TECHNICAL_CATEGORIES)}",
                quiz_id=quiz.id,
            )

    if quiz.max_points <= 0:
        raise ValidationError("Quiz must be worth more than zero points", quiz_id=quiz.id)
    return quiz


def create_quiz(
    questions: Iterable[Question | Mapping[str, Any]],
    time_limit_minutes: int,
    passing_score_percent: float,
    owning_stage: AssessmentStage = AssessmentStage.TECHNICAL,
    title: str = "",
    quiz_id: Optional[str] = None,
) -> Quiz:
    """Build a quiz, rejecting malformed shapes with ``ValidationError``."""
    try:
        parsed = [
            q if isinstance(q, Question) else Question.model_validate(q)
            for q in questions
        ]
        kwargs: dict[str, Any] = {
            "owning_stage": AssessmentStage(owning_stage),
            "title": title,
            "questions": parsed,
            "time_limit_minutes": time_limit_minutes,
            "passing_score_percent": passing_score_percent,
        }
        if quiz_id:
            kwargs["id"] = quiz_id
        quiz = Quiz(**kwargs)
    except (PydanticValidationError, ValueError) as exc:
        raise ValidationError(f"Malformed quiz: {exc}") from exc
    return validate_quiz(quiz)


def score(quiz: Quiz, answers: Mapping[str, int]) -> ScoreResult:
    """
    Score answers against a quiz.

    Args:
        quiz: The quiz being answered
        answers: Mapping of question id to selected option index

    Returns:
        ScoreResult; ``passed`` compares the unrounded percent
    """
    total = 0.0
    earned_by_category: dict[str, float] = {}
    max_by_category: dict[str, float] = {}

    for question in quiz.questions:
        earned = question.points if answers.get(question.id) == question.correct_option_index else 0.0
        total += earned
        if question.category:
            earned_by_category[question.category] = earned_by_category.get(question.category, 0.0) + earned
            max_by_category[question.category] = max_by_category.get(question.category, 0.0) + question.points

    max_points = quiz.max_points
    if max_points <= 0:
        raise ValidationError("Cannot score a quiz worth zero points", quiz_id=quiz.id)

    percent = total / max_points * 100
    breakdown = {
        category: earned_by_category[category] / max_by_category[category] * 100
        for category in max_by_category
    }
    return ScoreResult(
        total_points=total,
        max_points=max_points,
        percent=percent,
        passed=percent >= quiz.passing_score_percent,
        category_breakdown=breakdown,
    )
