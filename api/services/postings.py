"""Job posting service functions."""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from core.workflow import approvals, postings as lifecycle
from core.workflow.actors import Actor, ActorRole
from core.workflow.collaborators import NotificationDispatcher, WorkflowStore
from core.workflow.errors import ForbiddenTransitionError, NotFoundError, WorkflowError, describe
from core.workflow.notifications import notification_for_transition
from core.workflow.postings import DecisionOutcome, JobPosting, PostingEvent, TransitionRecord
from core.workflow.quiz import Quiz
from core.workflow.views import PostingFilter, filter_postings, queue_for, workflow_analytics

logger = logging.getLogger(__name__)


@contextmanager
def rejections_logged(action: str, actor: Actor, key: Optional[str] = None):
    """Log a refused workflow operation at WARNING and re-raise it."""
    try:
        yield
    except WorkflowError as e:
        logger.warning(f"{action} refused for {actor}: {describe(e, key)}")
        raise


async def _notify(notifier: Optional[NotificationDispatcher], posting: JobPosting, record: TransitionRecord) -> None:
    if notifier is not None:
        await notifier.dispatch(notification_for_transition(posting, record))


async def _refresh(
    store: WorkflowStore,
    posting: JobPosting,
    notifier: Optional[NotificationDispatcher] = None,
) -> JobPosting:
    """Apply a due closing date before the posting is read or acted on."""
    record = lifecycle.expire_if_due(posting)
    if record is not None:
        await store.save(posting)
        await _notify(notifier, posting, record)
    return posting


async def load_posting(
    store: WorkflowStore,
    job_id: str,
    notifier: Optional[NotificationDispatcher] = None,
) -> JobPosting:
    """Load a posting with any due expiry applied."""
    return await _refresh(store, await store.load(job_id), notifier)


# ==================== Queries ===================== #
async def get_posting(
    store: WorkflowStore,
    actor: Actor,
    job_id: str,
    notifier: Optional[NotificationDispatcher] = None,
) -> JobPosting:
    """Get a posting. Candidates only see publicly visible postings."""
    posting = await load_posting(store, job_id, notifier)
    if actor.role == ActorRole.CANDIDATE and not lifecycle.is_publicly_visible(posting):
        raise NotFoundError(f"Job posting {job_id} not found", job_id=job_id)
    return posting


async def list_postings(
    store: WorkflowStore,
    actor: Actor,
    criteria: Optional[PostingFilter] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> List[JobPosting]:
    """List postings matching the filter, restricted to public ones for candidates."""
    found = [await _refresh(store, p, notifier) for p in await store.list_postings()]
    if actor.role == ActorRole.CANDIDATE:
        found = [p for p in found if lifecycle.is_publicly_visible(p)]
    return filter_postings(found, criteria or PostingFilter())


async def posting_queue(
    store: WorkflowStore,
    actor: Actor,
    notifier: Optional[NotificationDispatcher] = None,
) -> List[JobPosting]:
    """Postings waiting on the caller's role."""
    found = [await _refresh(store, p, notifier) for p in await store.list_postings()]
    return queue_for(actor.role, found, user_id=actor.id)


async def posting_analytics(store: WorkflowStore, actor: Actor, job_id: str) -> Dict[str, Any]:
    """Pass rates and stage timings for one posting."""
    if actor.role == ActorRole.CANDIDATE:
        raise ForbiddenTransitionError("Candidates cannot view posting analytics", job_id=job_id)
    posting = await load_posting(store, job_id)
    return workflow_analytics(posting, await store.list_sessions(job_id))


# ==================== Lifecycle ===================== #
async def create_posting(
    store: WorkflowStore,
    actor: Actor,
    title: str,
    department: str,
    technical_assessment: Optional[Quiz] = None,
    location: str = "",
    description: str = "",
    closes_at: Optional[datetime] = None,
) -> JobPosting:
    """Create and persist a draft posting."""
    with rejections_logged("create posting", actor):
        posting = lifecycle.create_posting(
            title=title,
            department=department,
            actor=actor,
            technical_assessment=technical_assessment,
            location=location,
            description=description,
            closes_at=closes_at,
        )
    await store.save(posting)
    return posting


async def update_technical_assessment(
    store: WorkflowStore,
    actor: Actor,
    job_id: str,
    quiz: Quiz,
) -> JobPosting:
    """Replace the technical quiz on a draft."""
    posting = await load_posting(store, job_id)
    with rejections_logged("technical assessment update", actor, job_id):
        lifecycle.revise_technical_assessment(posting, actor, quiz)
    await store.save(posting)
    return posting


async def submit_posting(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher],
    actor: Actor,
    job_id: str,
) -> JobPosting:
    """Send a draft to HR review."""
    posting = await load_posting(store, job_id, notifier)
    with rejections_logged(PostingEvent.SUBMIT_FOR_REVIEW.value, actor, job_id):
        record = lifecycle.submit_for_review(posting, actor)
    await store.save(posting)
    await _notify(notifier, posting, record)
    return posting


async def enhance_posting(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher],
    actor: Actor,
    job_id: str,
    hr_assessment: Quiz,
) -> JobPosting:
    """Attach the HR quiz and forward the posting for executive approval."""
    posting = await load_posting(store, job_id, notifier)
    with rejections_logged(PostingEvent.COMPLETE_ENHANCEMENT.value, actor, job_id):
        record = lifecycle.complete_enhancement(posting, actor, hr_assessment)
    await store.save(posting)
    await _notify(notifier, posting, record)
    return posting


async def decide_posting(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher],
    actor: Actor,
    job_id: str,
    outcome: DecisionOutcome,
    comments: str = "",
    conditions: Optional[List[str]] = None,
    requested_modifications: Optional[List[Dict[str, Any]]] = None,
) -> JobPosting:
    """Apply an executive approval decision."""
    posting = await load_posting(store, job_id, notifier)
    with rejections_logged(f"decision {DecisionOutcome(outcome).value}", actor, job_id):
        decision = approvals.make_decision(
            job_id=job_id,
            reviewer=actor,
            outcome=outcome,
            comments=comments,
            conditions=conditions,
            requested_modifications=requested_modifications,
        )
        record = approvals.apply_decision(posting, decision)
    await store.save(posting)
    await _notify(notifier, posting, record)
    return posting


async def change_posting_visibility(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher],
    actor: Actor,
    job_id: str,
    event: PostingEvent,
    note: Optional[str] = None,
) -> JobPosting:
    """Hide, flag, reactivate or mark a published posting expired."""
    posting = await load_posting(store, job_id, notifier)
    with rejections_logged(f"visibility {PostingEvent(event).value}", actor, job_id):
        record = lifecycle.change_visibility(posting, event, actor, note=note)
    await store.save(posting)
    await _notify(notifier, posting, record)
    return posting


async def expire_due_postings(
    store: WorkflowStore,
    notifier: Optional[NotificationDispatcher] = None,
    at: Optional[datetime] = None,
) -> List[str]:
    """Archive every published posting past its closing date.

    Returns:
        Ids of the postings archived by this sweep
    """
    archived = []
    for posting in await store.list_postings():
        record = lifecycle.expire_if_due(posting, at)
        if record is None:
            continue
        await store.save(posting)
        await _notify(notifier, posting, record)
        archived.append(posting.id)
    return archived
