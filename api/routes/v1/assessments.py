"""
Assessment session endpoints.

Candidates apply, then take the technical and the HR quiz in that order.
Staff review sessions and reports; the Project Leader records the decision.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_actor, get_notifier, get_store
from api.schemas.assessments import (
    ApplicationCreate,
    HiringDecisionRequest,
    StageStartResponse,
    StageSubmission,
    StageSubmissionResponse,
)
from api.schemas.common import ErrorResponse, PaginatedResponse, PaginationParams
from api.services import assessments as assessment_service
from core.workflow.actors import Actor, ActorRole
from core.workflow.assessments import SessionStage
from core.workflow.collaborators import NotificationDispatcher, WorkflowStore
from core.workflow.quiz import AssessmentStage
from core.workflow.views import SessionFilter, candidate_view, session_view

router = APIRouter(
    prefix="/assessments",
    tags=["assessments"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


def _view_for(actor: Actor, session) -> dict:
    return candidate_view(session) if actor.role == ActorRole.CANDIDATE else session_view(session)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Apply",
    description="Open an assessment session against a published, active posting. Candidates only.",
)
async def apply_for_posting(
    payload: ApplicationCreate,
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    session = await assessment_service.apply_for_posting(
        store, actor, payload.job_id, application_id=payload.application_id
    )
    return candidate_view(session)


@router.get(
    "",
    summary="List Sessions",
    description="Filter and sort assessment sessions. Staff only.",
)
async def list_sessions(
    job_id: Optional[str] = Query(None, description="Filter by posting"),
    stage: Optional[List[SessionStage]] = Query(None, description="Filter by current stage"),
    passed: Optional[bool] = Query(None, description="Completed sessions that passed (or failed) overall"),
    score_min: Optional[float] = Query(None, ge=0, le=100),
    score_max: Optional[float] = Query(None, ge=0, le=100),
    search: Optional[str] = Query(None, description="Search application or candidate id"),
    sort_by: str = Query("newest", pattern="^(newest|oldest|score_high|score_low)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    criteria = SessionFilter(
        job_id=job_id,
        stages=stage or [],
        passed=passed,
        score_min=score_min,
        score_max=score_max,
        search=search,
        sort_by=sort_by,
    )
    found = await assessment_service.list_sessions(store, actor, criteria)
    pagination = PaginationParams(page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[session_view(s) for s in pagination.slice(found)],
        total=len(found),
        pagination=pagination,
    )


@router.get(
    "/{application_id}",
    summary="Get Session",
)
async def get_session(
    application_id: str = Path(..., description="Application ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    """Candidates see their own progress; staff see scores and the report."""
    session = await assessment_service.get_session(store, actor, application_id)
    return _view_for(actor, session)


@router.post(
    "/{application_id}/stages/{stage}/start",
    response_model=StageStartResponse,
    summary="Start Stage",
    description="Start the stage timer and receive the quiz. The answer key is never included.",
)
async def start_stage(
    application_id: str = Path(..., description="Application ID"),
    stage: AssessmentStage = Path(..., description="technical or hr"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    session, attempt, quiz = await assessment_service.start_assessment_stage(
        store, actor, application_id, stage
    )
    return StageStartResponse(
        application_id=session.application_id,
        stage=stage.value,
        started_at=attempt.started_at,
        expires_at=attempt.expires_at,
        quiz=quiz.public_view(),
    )


@router.post(
    "/{application_id}/stages/{stage}/submit",
    response_model=StageSubmissionResponse,
    summary="Submit Stage",
    description="Submit answers once. Late submissions are rejected with 410.",
)
async def submit_stage(
    payload: StageSubmission,
    application_id: str = Path(..., description="Application ID"),
    stage: AssessmentStage = Path(..., description="technical or hr"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    session, result = await assessment_service.submit_assessment_stage(
        store, notifier, actor, application_id, stage, payload.answers
    )
    return StageSubmissionResponse(
        application_id=session.application_id,
        stage=stage.value,
        percent=result.rounded_percent,
        passed=result.passed,
        next_stage=session.stage.value,
    )


@router.get(
    "/{application_id}/report",
    summary="Assessment Report",
    description="Combined result of both stages. Staff only.",
)
async def get_report(
    application_id: str = Path(..., description="Application ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    report = await assessment_service.get_report(store, actor, application_id)
    return report.model_dump(mode="json")


@router.post(
    "/{application_id}/decision",
    summary="Hiring Decision",
    description="Accept, reject or park a completed application. Project Leader only.",
)
async def decide_application(
    payload: HiringDecisionRequest,
    application_id: str = Path(..., description="Application ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    decision = await assessment_service.decide_application(
        store,
        actor,
        application_id,
        decision=payload.decision,
        feedback=payload.feedback,
        rating=payload.rating,
    )
    return {"application_id": application_id, **decision.model_dump(mode="json")}
