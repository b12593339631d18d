"""
Job posting lifecycle endpoints.

Authoring by the Project Leader, enhancement by HR, approval and moderation
by the executive, and the public listing for candidates.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_actor, get_notifier, get_store
from api.schemas.common import ErrorResponse, PaginatedResponse, PaginationParams
from api.schemas.postings import (
    DecisionRequest,
    EnhancementRequest,
    PostingCreate,
    QuizCreate,
    VisibilityRequest,
)
from api.services import postings as posting_service
from core.workflow.actors import Actor
from core.workflow.collaborators import NotificationDispatcher, WorkflowStore
from core.workflow.postings import PostingStatus, PublicationState
from core.workflow.quiz import AssessmentStage
from core.workflow.views import PostingFilter, posting_view

router = APIRouter(
    prefix="/postings",
    tags=["postings"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Posting",
    description="Create a draft posting. Project Leader only.",
)
async def create_posting(
    payload: PostingCreate,
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    """Create a draft, optionally with its technical assessment."""
    technical = (
        payload.technical_assessment.to_quiz(AssessmentStage.TECHNICAL)
        if payload.technical_assessment else None
    )
    posting = await posting_service.create_posting(
        store,
        actor,
        title=payload.title,
        department=payload.department,
        technical_assessment=technical,
        location=payload.location,
        description=payload.description,
        closes_at=payload.closes_at,
    )
    return posting_view(posting, actor.role)


@router.get(
    "",
    summary="List Postings",
    description="Search and filter postings. Candidates only see published, active postings.",
)
async def list_postings(
    search: Optional[str] = Query(None, description="Search title, department and location"),
    department: Optional[str] = Query(None, description="Filter by department"),
    status_filter: Optional[List[PostingStatus]] = Query(None, alias="status", description="Filter by status"),
    publication_state: Optional[List[PublicationState]] = Query(None, description="Filter by publication state"),
    created_by: Optional[str] = Query(None, description="Filter by author id"),
    sort_by: str = Query("newest", pattern="^(newest|oldest|title)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Retrieve a paginated list of postings visible to the caller."""
    criteria = PostingFilter(
        search=search,
        department=department,
        statuses=status_filter or [],
        publication_states=publication_state or [],
        created_by=created_by,
        sort_by=sort_by,
    )
    found = await posting_service.list_postings(store, actor, criteria, notifier)
    pagination = PaginationParams(page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[posting_view(p, actor.role) for p in pagination.slice(found)],
        total=len(found),
        pagination=pagination,
    )


@router.get(
    "/queue",
    summary="Work Queue",
    description="Postings waiting on the caller's role.",
)
async def posting_queue(
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Drafts for the Project Leader, hr_review for HR, ceo_approval for the executive."""
    found = await posting_service.posting_queue(store, actor, notifier)
    return {
        "role": actor.role.value,
        "total": len(found),
        "items": [posting_view(p, actor.role) for p in found],
    }


@router.get(
    "/{job_id}",
    summary="Get Posting",
)
async def get_posting(
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Retrieve a posting in the shape appropriate for the caller's role."""
    posting = await posting_service.get_posting(store, actor, job_id, notifier)
    return posting_view(posting, actor.role)


@router.put(
    "/{job_id}/technical-assessment",
    summary="Replace Technical Assessment",
    description="Replace the technical quiz on a draft. Project Leader only.",
)
async def update_technical_assessment(
    payload: QuizCreate,
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    posting = await posting_service.update_technical_assessment(
        store, actor, job_id, payload.to_quiz(AssessmentStage.TECHNICAL)
    )
    return posting_view(posting, actor.role)


@router.post(
    "/{job_id}/submit",
    summary="Submit For HR Review",
)
async def submit_posting(
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    posting = await posting_service.submit_posting(store, notifier, actor, job_id)
    return posting_view(posting, actor.role)


@router.post(
    "/{job_id}/enhancement",
    summary="Complete HR Enhancement",
    description="Attach the HR assessment and forward for executive approval. HR only.",
)
async def enhance_posting(
    payload: EnhancementRequest,
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    hr_quiz = payload.hr_assessment.to_quiz(AssessmentStage.HR)
    posting = await posting_service.enhance_posting(store, notifier, actor, job_id, hr_quiz)
    return posting_view(posting, actor.role)


@router.post(
    "/{job_id}/decision",
    summary="Approval Decision",
    description="Approve, reject or request changes. Executive only; comments are required unless approving.",
)
async def decide_posting(
    payload: DecisionRequest,
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    posting = await posting_service.decide_posting(
        store,
        notifier,
        actor,
        job_id,
        outcome=payload.outcome,
        comments=payload.comments,
        conditions=payload.conditions,
        requested_modifications=payload.requested_modifications,
    )
    return posting_view(posting, actor.role)


@router.post(
    "/{job_id}/visibility",
    summary="Change Visibility",
    description="Hide, flag, reactivate or mark expired a published posting. Executive only.",
)
async def change_visibility(
    payload: VisibilityRequest,
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    posting = await posting_service.change_posting_visibility(
        store, notifier, actor, job_id, payload.event, payload.note
    )
    return posting_view(posting, actor.role)


@router.get(
    "/{job_id}/analytics",
    summary="Posting Analytics",
    description="Application pass rates and stage timings. Staff only.",
)
async def posting_analytics(
    job_id: str = Path(..., description="Posting ID"),
    actor: Actor = Depends(get_actor),
    store: WorkflowStore = Depends(get_store),
):
    return await posting_service.posting_analytics(store, actor, job_id)
