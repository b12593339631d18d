"""Assessment session service functions."""

from typing import List, Mapping, Optional, Tuple
import logging

from api.services.postings import load_posting, rejections_logged
from core.workflow import assessments as orchestrator
from core.workflow.actors import Actor, ActorRole
from core.workflow.assessments import (
    AssessmentReport,
    AssessmentSession,
    HiringDecision,
    HiringOutcome,
    SessionStage,
    StageAttempt,
    StageResult,
    parse_stage,
)
from core.workflow.collaborators import NotificationDispatcher, WorkflowStore
from core.workflow.errors import ForbiddenTransitionError
from core.workflow.notifications import notification_for_report
from core.workflow.quiz import AssessmentStage, Quiz
from core.workflow.views import SessionFilter, filter_sessions

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({ActorRole.PROJECT_LEADER, ActorRole.HR, ActorRole.EXECUTIVE})


def _require_staff(actor: Actor, application_id: Optional[str] = None) -> None:
    if actor.role not in STAFF_ROLES:
        raise ForbiddenTransitionError(
            f"{actor.role.value} cannot view assessment results",
            application_id=application_id,
        )


def _require_owner(actor: Actor, session: AssessmentSession) -> None:
    """Candidates may only act on their own application."""
    if actor.role != ActorRole.CANDIDATE:
        raise ForbiddenTransitionError(
            f"Only candidates take assessments; caller is {actor.role.value}",
            application_id=session.application_id,
        )
    if session.candidate_id and session.candidate_id != actor.id:
        raise ForbiddenTransitionError(
            "Application belongs to another candidate",
            application_id=session.application_id,
        )


async def _stage_quiz(store: WorkflowStore, session: AssessmentSession, stage: AssessmentStage) -> Quiz:
    posting = await load_posting(store, session.job_id)
    return posting.technical_assessment if stage == AssessmentStage.TECHNICAL else posting.hr_assessment


# ==================== Candidate ===================== #
async def apply_for_posting(
    store: WorkflowStore,
    actor: Actor,
    job_id: str,
    application_id: Optional[str] = None,
) -> AssessmentSession:
    """Open an assessment session for the calling candidate."""
    if actor.role != ActorRole.CANDIDATE:
        raise ForbiddenTransitionError(
            f"Only candidates can apply; caller is {actor.role.value}",
            job_id=job_id,
        )
    posting = await load_posting(store, job_id)
    with rejections_logged("application", actor, job_id):
        session = orchestrator.open_session(
            posting,
            application_id=application_id,
            candidate_id=actor.id,
        )
    await store.save_session(session)
    logger.info(f"Application {session.application_id} opened for job {job_id} by {actor}")
    return session


async def start_assessment_stage(
    store: WorkflowStore,
    actor: Actor,
    application_id: str,
    stage: AssessmentStage | str,
) -> Tuple[AssessmentSession, StageAttempt, Quiz]:
    """Start a stage's timer and hand back the quiz to take."""
    stage = parse_stage(stage)
    session = await store.load_session(application_id)
    with rejections_logged(f"{stage.value} start", actor, application_id):
        _require_owner(actor, session)
        quiz = await _stage_quiz(store, session, stage)
        attempt = orchestrator.start_stage(session, stage, quiz)
    await store.save_session(session)
    return session, attempt, quiz


async def submit_assessment_stage(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher],
    actor: Actor,
    application_id: str,
    stage: AssessmentStage | str,
    answers: Mapping[str, int],
) -> Tuple[AssessmentSession, StageResult]:
    """Score a stage submission; notify the Project Leader once both stages are in."""
    stage = parse_stage(stage)
    session = await store.load_session(application_id)
    with rejections_logged(f"{stage.value} submission", actor, application_id):
        _require_owner(actor, session)
        quiz = await _stage_quiz(store, session, stage)
        result = orchestrator.submit_stage(session, stage, quiz, answers)
    await store.save_session(session)

    if session.stage == SessionStage.COMPLETED and notifier is not None:
        report = orchestrator.aggregate_result(session)
        posting = await load_posting(store, session.job_id)
        await notifier.dispatch(notification_for_report(session, report, posting))
    return session, result


async def get_session(store: WorkflowStore, actor: Actor, application_id: str) -> AssessmentSession:
    """Staff see any session; candidates only their own."""
    session = await store.load_session(application_id)
    if actor.role == ActorRole.CANDIDATE:
        _require_owner(actor, session)
    else:
        _require_staff(actor, application_id)
    return session


# ==================== Staff ===================== #
async def list_sessions(
    store: WorkflowStore,
    actor: Actor,
    criteria: Optional[SessionFilter] = None,
) -> List[AssessmentSession]:
    """Sessions matching the filter."""
    _require_staff(actor)
    criteria = criteria or SessionFilter()
    return filter_sessions(await store.list_sessions(criteria.job_id), criteria)


async def get_report(store: WorkflowStore, actor: Actor, application_id: str) -> AssessmentReport:
    """Combined result for a completed session."""
    _require_staff(actor, application_id)
    session = await store.load_session(application_id)
    with rejections_logged("report", actor, application_id):
        return orchestrator.aggregate_result(session)


async def decide_application(
    store: WorkflowStore,
    actor: Actor,
    application_id: str,
    decision: HiringOutcome,
    feedback: str = "",
    rating: Optional[int] = None,
) -> HiringDecision:
    """Record the Project Leader's hiring decision."""
    session = await store.load_session(application_id)
    with rejections_logged(f"hiring decision {HiringOutcome(decision).value}", actor, application_id):
        entry = orchestrator.record_hiring_decision(session, actor, decision, feedback, rating)
    await store.save_session(session)
    return entry
