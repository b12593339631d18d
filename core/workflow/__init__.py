"""
Job-posting lifecycle and sequential-assessment workflow.

This package provides the domain core:
- Quiz model and scoring
- Job posting state machine with role-gated transitions
- Approval decision processor
- Assessment session orchestrator (technical, then HR)
- Read-only dashboard projections
"""

from core.workflow.actors import Actor, ActorRole, SYSTEM_ACTOR

from core.workflow.errors import (
    WorkflowError,
    ValidationError,
    ForbiddenTransitionError,
    InvalidStateTransitionError,
    NotReviewableError,
    NotFoundError,
    OutOfOrderError,
    AlreadyAttemptedError,
    ExpiredError,
)

from core.workflow.quiz import (
    AssessmentStage,
    Question,
    Quiz,
    ScoreResult,
    create_quiz,
    score,
    validate_quiz,
)

from core.workflow.postings import (
    ApprovalDecision,
    DecisionOutcome,
    JobPosting,
    PostingEvent,
    PostingStatus,
    PublicationState,
    TransitionRecord,
    change_visibility,
    complete_enhancement,
    create_posting,
    expire_if_due,
    is_publicly_visible,
    revise_technical_assessment,
    submit_for_review,
)

from core.workflow.approvals import apply_decision, make_decision, replay_status

from core.workflow.assessments import (
    AssessmentReport,
    AssessmentSession,
    HiringOutcome,
    Recommendation,
    SessionStage,
    aggregate_result,
    open_session,
    record_hiring_decision,
    start_stage,
    submit_stage,
)

__all__ = [
    # Actors
    "Actor",
    "ActorRole",
    "SYSTEM_ACTOR",
    # Errors
    "WorkflowError",
    "ValidationError",
    "ForbiddenTransitionError",
    "InvalidStateTransitionError",
    "NotReviewableError",
    "NotFoundError",
    "OutOfOrderError",
    "AlreadyAttemptedError",
    "ExpiredError",
    # Quiz
    "AssessmentStage",
    "Question",
    "Quiz",
    "ScoreResult",
    "create_quiz",
    "score",
    "validate_quiz",
    # Postings
    "ApprovalDecision",
    "DecisionOutcome",
    "JobPosting",
    "PostingEvent",
    "PostingStatus",
    "PublicationState",
    "TransitionRecord",
    "change_visibility",
    "complete_enhancement",
    "create_posting",
    "expire_if_due",
    "is_publicly_visible",
    "revise_technical_assessment",
    "submit_for_review",
    # Approvals
    "apply_decision",
    "make_decision",
    "replay_status",
    # Assessments
    "AssessmentReport",
    "AssessmentSession",
    "HiringOutcome",
    "Recommendation",
    "SessionStage",
    "aggregate_result",
    "open_session",
    "record_hiring_decision",
    "start_stage",
    "submit_stage",
]
