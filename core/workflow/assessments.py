"""
Assessment session orchestrator.

Sequences one candidate application through the technical quiz and then the
HR quiz. Each stage gets exactly one attempt: it is started once, submitted
once, and a submission after the stage deadline is rejected rather than
scored.

    not_started -> technical(in_progress) -> technical(submitted)
                -> hr(in_progress) -> hr(submitted) -> completed
"""

import logging
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Mapping, Optional

from pydantic import BaseModel, Field, computed_field

from core.utils.datetime import add_minutes, ensure_aware, now
from core.workflow.actors import Actor, ActorRole
from core.workflow.errors import (
    AlreadyAttemptedError,
    ExpiredError,
    ForbiddenTransitionError,
    InvalidStateTransitionError,
    OutOfOrderError,
    ValidationError,
)
from core.workflow.postings import JobPosting, is_publicly_visible
from core.workflow.quiz import AssessmentStage, Quiz, round_half_up, score

logger = logging.getLogger(__name__)


# Combined-score cut-offs for candidates who passed both stages.
HIGHLY_RECOMMENDED_THRESHOLD = 85
RECOMMENDED_THRESHOLD = 70


class SessionStage(str, PyEnum):
    """Stage the session is currently waiting on."""

    TECHNICAL = "technical"
    HR = "hr"
    COMPLETED = "completed"


class Recommendation(str, PyEnum):
    """Hiring recommendation derived from both stage results."""

    HIGHLY_RECOMMENDED = "highly_recommended"
    RECOMMENDED = "recommended"
    CONSIDER = "consider"
    NOT_RECOMMENDED = "not_recommended"


class HiringOutcome(str, PyEnum):
    """Project Leader decision on a completed application."""

    ACCEPT = "accept"
    REJECT = "reject"
    PENDING = "pending"


NEXT_STAGE = {
    AssessmentStage.TECHNICAL: SessionStage.HR,
    AssessmentStage.HR: SessionStage.COMPLETED,
}


class StageResult(BaseModel):
    """Scored submission for one stage."""

    total_points: float
    max_points: float
    percent: float
    passed: bool
    submitted_at: datetime
    category_breakdown: dict[str, float] = Field(default_factory=dict)
    answers: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def rounded_percent(self) -> int:
        return round_half_up(self.percent)


class StageAttempt(BaseModel):
    """Timing window and result of one stage."""

    quiz_id: Optional[str] = None
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    result: Optional[StageResult] = None

    @property
    def status(self) -> str:
        if self.result is not None:
            return "submitted"
        if self.started_at is not None:
            return "in_progress"
        return "not_started"


class HiringDecision(BaseModel):
    """Final call by the Project Leader after both assessments."""

    decision: HiringOutcome
    feedback: str = ""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    decided_by: Optional[str] = None
    decided_at: datetime = Field(default_factory=now)


class AssessmentSession(BaseModel):
    """Per-application progress through the two assessment stages."""

    application_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    job_id: str
    candidate_id: Optional[str] = None
    stage: SessionStage = SessionStage.TECHNICAL
    technical: StageAttempt = Field(default_factory=StageAttempt)
    hr: StageAttempt = Field(default_factory=StageAttempt)
    hiring_decision: Optional[HiringDecision] = None
    created_at: datetime = Field(default_factory=now)

    @property
    def technical_result(self) -> Optional[StageResult]:
        return self.technical.result

    @property
    def hr_result(self) -> Optional[StageResult]:
        return self.hr.result

    def attempt(self, stage: AssessmentStage) -> StageAttempt:
        return self.technical if stage == AssessmentStage.TECHNICAL else self.hr

    @property
    def progress(self) -> str:
        """Fine-grained position in the session state machine."""
        if self.stage == SessionStage.COMPLETED:
            return "completed"
        if self.stage == SessionStage.HR:
            return "hr_in_progress" if self.hr.started_at else "technical_submitted"
        return "technical_in_progress" if self.technical.started_at else "not_started"

    @property
    def combined_percent(self) -> Optional[float]:
        if self.technical_result is None or self.hr_result is None:
            return None
        return (self.technical_result.percent + self.hr_result.percent) / 2


class AssessmentReport(BaseModel):
    """Combined outcome of both stages."""

    application_id: str
    job_id: str
    technical_percent: float
    hr_percent: float
    technical_passed: bool
    hr_passed: bool
    overall_passed: bool
    combined_percent: float
    recommendation: Recommendation


def parse_stage(stage: AssessmentStage | str) -> AssessmentStage:
    """Coerce a stage name, raising ValidationError for unknown stages."""
    try:
        return AssessmentStage(stage)
    except ValueError as exc:
        raise ValidationError(f"Unknown assessment stage: {stage!r}") from exc


def _check_quiz(stage: AssessmentStage, quiz: Optional[Quiz], session: AssessmentSession) -> Quiz:
    if quiz is None:
        raise ValidationError(
            f"Posting {session.job_id} has no {stage.value} assessment",
            application_id=session.application_id,
        )
    if quiz.owning_stage != stage:
        raise ValidationError(
            f"Quiz {quiz.id} belongs to the {quiz.owning_stage.value} stage, not {stage.value}",
            application_id=session.application_id,
        )
    return quiz


def open_session(
    posting: JobPosting,
    application_id: Optional[str] = None,
    candidate_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> AssessmentSession:
    """Start tracking an application against a published, active posting."""
    if not is_publicly_visible(posting):
        raise InvalidStateTransitionError(
            f"Posting {posting.id} is {posting.display_status} and not accepting applications",
            job_id=posting.id,
        )
    if posting.technical_assessment is None or posting.hr_assessment is None:
        raise ValidationError(
            f"Posting {posting.id} is missing an assessment",
            job_id=posting.id,
        )
    fields = dict(
        job_id=posting.id,
        candidate_id=candidate_id,
        created_at=ensure_aware(created_at or now()),
    )
    if application_id:
        fields["application_id"] = application_id
    return AssessmentSession(**fields)


def start_stage(
    session: AssessmentSession,
    stage: AssessmentStage | str,
    quiz: Quiz,
    started_at: Optional[datetime] = None,
) -> StageAttempt:
    """
    Open the timing window for a stage.

    Args:
        session: The candidate's session
        stage: technical or hr
        quiz: The quiz the candidate is about to take
        started_at: Start time, defaults to now

    Returns:
        The stage attempt with started_at and expires_at set

    Raises:
        OutOfOrderError: hr requested before a technical result exists
        AlreadyAttemptedError: The stage was already started or submitted
    """
    stage = parse_stage(stage)
    attempt = session.attempt(stage)

    if stage == AssessmentStage.HR and session.technical_result is None:
        raise OutOfOrderError(
            "The technical assessment must be submitted before the HR assessment",
            application_id=session.application_id,
        )
    if attempt.result is not None or attempt.started_at is not None:
        raise AlreadyAttemptedError(
            f"The {stage.value} assessment can only be attempted once",
            application_id=session.application_id,
        )
    quiz = _check_quiz(stage, quiz, session)

    begin = ensure_aware(started_at or now())
    attempt.quiz_id = quiz.id
    attempt.started_at = begin
    attempt.expires_at = add_minutes(begin, quiz.time_limit_minutes)

    logger.info(
        f"Application {session.application_id}: {stage.value} stage started, "
        f"expires {attempt.expires_at.isoformat()}"
    )
    return attempt


def submit_stage(
    session: AssessmentSession,
    stage: AssessmentStage | str,
    quiz: Quiz,
    answers: Mapping[str, int],
    submitted_at: Optional[datetime] = None,
) -> StageResult:
    """
    Score and store a stage submission, then advance the session.

    Raises:
        AlreadyAttemptedError: The stage already has a result
        OutOfOrderError: The stage was never started
        ExpiredError: submitted_at is after the stage deadline
    """
    stage = parse_stage(stage)
    attempt = session.attempt(stage)

    if attempt.result is not None:
        raise AlreadyAttemptedError(
            f"The {stage.value} assessment was already submitted",
            application_id=session.application_id,
        )
    if attempt.started_at is None or attempt.expires_at is None:
        raise OutOfOrderError(
            f"The {stage.value} assessment has not been started",
            application_id=session.application_id,
        )
    quiz = _check_quiz(stage, quiz, session)
    if attempt.quiz_id and attempt.quiz_id != quiz.id:
        raise ValidationError(
            f"Submission is for quiz {quiz.id} but the stage was started with {attempt.quiz_id}",
            application_id=session.application_id,
        )

    moment = ensure_aware(submitted_at or now())
    if moment > ensure_aware(attempt.expires_at):
        logger.warning(
            f"Application {session.application_id}: late {stage.value} submission "
            f"at {moment.isoformat()} (deadline {attempt.expires_at.isoformat()})"
        )
        raise ExpiredError(
            f"The {stage.value} assessment expired at {attempt.expires_at.isoformat()}",
            application_id=session.application_id,
        )

    outcome = score(quiz, answers)
    result = StageResult(
        total_points=outcome.total_points,
        max_points=outcome.max_points,
        percent=outcome.percent,
        passed=outcome.passed,
        submitted_at=moment,
        category_breakdown=outcome.category_breakdown,
        answers=dict(answers),
    )
    attempt.result = result
    session.stage = NEXT_STAGE[stage]

    logger.info(
        f"Application {session.application_id}: {stage.value} stage submitted "
        f"({result.rounded_percent}%, passed={result.passed})"
    )
    return result


def recommend(overall_passed: bool, combined_percent: float) -> Recommendation:
    """Map the combined outcome to a recommendation."""
    if not overall_passed:
        return Recommendation.NOT_RECOMMENDED
    if combined_percent >= HIGHLY_RECOMMENDED_THRESHOLD:
        return Recommendation.HIGHLY_RECOMMENDED
    if combined_percent >= RECOMMENDED_THRESHOLD:
        return Recommendation.RECOMMENDED
    return Recommendation.CONSIDER


def aggregate_result(session: AssessmentSession) -> AssessmentReport:
    """
    Combine both stage results. Each stage must pass on its own; a strong
    technical score never compensates for a failed HR stage or vice versa.

    Raises:
        OutOfOrderError: Either stage has no result yet
    """
    technical, hr = session.technical_result, session.hr_result
    if technical is None or hr is None:
        raise OutOfOrderError(
            "Both assessments must be submitted before aggregating results",
            application_id=session.application_id,
        )
    overall = technical.passed and hr.passed
    combined = (technical.percent + hr.percent) / 2
    return AssessmentReport(
        application_id=session.application_id,
        job_id=session.job_id,
        technical_percent=technical.percent,
        hr_percent=hr.percent,
        technical_passed=technical.passed,
        hr_passed=hr.passed,
        overall_passed=overall,
        combined_percent=combined,
        recommendation=recommend(overall, combined),
    )


def record_hiring_decision(
    session: AssessmentSession,
    actor: Actor,
    decision: HiringOutcome | str,
    feedback: str = "",
    rating: Optional[int] = None,
    decided_at: Optional[datetime] = None,
) -> HiringDecision:
    """Project Leader accepts, rejects, or parks a completed application."""
    if actor.role != ActorRole.PROJECT_LEADER:
        raise ForbiddenTransitionError(
            f"Only project_leader may decide on applications; caller is {actor.role.value}",
            application_id=session.application_id,
        )
    if session.stage != SessionStage.COMPLETED:
        raise OutOfOrderError(
            "Both assessments must be completed before a hiring decision",
            application_id=session.application_id,
        )
    current = session.hiring_decision
    if current is not None and current.decision != HiringOutcome.PENDING:
        raise InvalidStateTransitionError(
            f"Application already has a final decision ({current.decision.value})",
            application_id=session.application_id,
        )
    try:
        entry = HiringDecision(
            decision=HiringOutcome(decision),
            feedback=feedback or "",
            rating=rating,
            decided_by=actor.id,
            decided_at=ensure_aware(decided_at or now()),
        )
    except ValueError as exc:
        raise ValidationError(f"Invalid hiring decision: {exc}") from exc

    session.hiring_decision = entry
    logger.info(f"Application {session.application_id}: hiring decision {entry.decision.value} by {actor}")
    return entry
