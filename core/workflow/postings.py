"""
Job posting state machine.

Owns the lifecycle of a posting from the Project Leader's draft through HR
enhancement, executive approval and publication. Every event is gated by the
actor role first and by the current state second; a rejected event leaves the
posting untouched.

States:
    draft -> hr_review -> ceo_approval -> published(active|hidden|flagged|expired) -> archived
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, Field

from core.utils.datetime import ensure_aware, now
from core.workflow.actors import Actor, ActorRole, SYSTEM_ACTOR
from core.workflow.errors import (
    ForbiddenTransitionError,
    InvalidStateTransitionError,
    ValidationError,
)
from core.workflow.quiz import AssessmentStage, Quiz, validate_quiz

logger = logging.getLogger(__name__)


# ==================== Enums ===================== #
class PostingStatus(str, PyEnum):
    """Lifecycle status of a job posting."""

    DRAFT = "draft"  # Project Leader authoring
    HR_REVIEW = "hr_review"  # HR adding the behavioral assessment
    CEO_APPROVAL = "ceo_approval"  # Awaiting executive decision
    PUBLISHED = "published"  # Live; see PublicationState
    ARCHIVED = "archived"  # Terminal


class PublicationState(str, PyEnum):
    """Sub-state of a published posting."""

    ACTIVE = "active"
    HIDDEN = "hidden"
    FLAGGED = "flagged"
    EXPIRED = "expired"


class PostingEvent(str, PyEnum):
    """Events accepted by the posting state machine."""

    SUBMIT_FOR_REVIEW = "submit_for_review"
    COMPLETE_ENHANCEMENT = "complete_enhancement"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    HIDE = "hide"
    FLAG = "flag"
    REACTIVATE = "reactivate"
    MARK_EXPIRED = "mark_expired"
    EXPIRE = "expire"


class DecisionOutcome(str, PyEnum):
    """Reviewer disposition on a posting under review."""

    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"


State = tuple[PostingStatus, Optional[PublicationState]]

DRAFT: State = (PostingStatus.DRAFT, None)
HR_REVIEW: State = (PostingStatus.HR_REVIEW, None)
CEO_APPROVAL: State = (PostingStatus.CEO_APPROVAL, None)
ARCHIVED: State = (PostingStatus.ARCHIVED, None)


def published(sub_state: PublicationState) -> State:
    return (PostingStatus.PUBLISHED, sub_state)


ANY_PUBLISHED = frozenset(published(s) for s in PublicationState)


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""

    event: PostingEvent
    actor: ActorRole
    sources: frozenset
    target: State


TRANSITIONS: dict[PostingEvent, Transition] = {
    t.event: t
    for t in (
        Transition(PostingEvent.SUBMIT_FOR_REVIEW, ActorRole.PROJECT_LEADER,
                   frozenset({DRAFT}), HR_REVIEW),
        Transition(PostingEvent.COMPLETE_ENHANCEMENT, ActorRole.HR,
                   frozenset({HR_REVIEW}), CEO_APPROVAL),
        Transition(PostingEvent.APPROVE, ActorRole.EXECUTIVE,
                   frozenset({CEO_APPROVAL}), published(PublicationState.ACTIVE)),
        Transition(PostingEvent.REJECT, ActorRole.EXECUTIVE,
                   frozenset({CEO_APPROVAL}), DRAFT),
        Transition(PostingEvent.REQUEST_CHANGES, ActorRole.EXECUTIVE,
                   frozenset({CEO_APPROVAL}), HR_REVIEW),
        Transition(PostingEvent.HIDE, ActorRole.EXECUTIVE,
                   frozenset({published(PublicationState.ACTIVE)}),
                   published(PublicationState.HIDDEN)),
        Transition(PostingEvent.FLAG, ActorRole.EXECUTIVE,
                   frozenset({published(PublicationState.ACTIVE)}),
                   published(PublicationState.FLAGGED)),
        Transition(PostingEvent.REACTIVATE, ActorRole.EXECUTIVE,
                   frozenset({
                       published(PublicationState.HIDDEN),
                       published(PublicationState.FLAGGED),
                       published(PublicationState.EXPIRED),
                   }),
                   published(PublicationState.ACTIVE)),
        Transition(PostingEvent.MARK_EXPIRED, ActorRole.EXECUTIVE,
                   frozenset({
                       published(PublicationState.ACTIVE),
                       published(PublicationState.HIDDEN),
                       published(PublicationState.FLAGGED),
                   }),
                   published(PublicationState.EXPIRED)),
        Transition(PostingEvent.EXPIRE, ActorRole.SYSTEM, ANY_PUBLISHED, ARCHIVED),
    )
}

VISIBILITY_EVENTS = frozenset({
    PostingEvent.HIDE,
    PostingEvent.FLAG,
    PostingEvent.REACTIVATE,
    PostingEvent.MARK_EXPIRED,
})

DECISION_EVENTS: dict[DecisionOutcome, PostingEvent] = {
    DecisionOutcome.APPROVE: PostingEvent.APPROVE,
    DecisionOutcome.REJECT: PostingEvent.REJECT,
    DecisionOutcome.REQUEST_CHANGES: PostingEvent.REQUEST_CHANGES,
}


# ==================== Models ===================== #
class RequestedModification(BaseModel):
    """A change the reviewer asks for alongside ``request_changes``."""

    section: str = Field(pattern="^(job_details|technical_quiz|hr_quiz|requirements)$")
    description: str
    priority: str = Field(default="medium", pattern="^(low|medium|high)$")


class ApprovalDecision(BaseModel):
    """A reviewer's decision on a posting in ``ceo_approval``."""

    job_id: str
    reviewer_role: ActorRole
    reviewer_id: Optional[str] = None
    outcome: DecisionOutcome
    comments: str = ""
    # Advisory metadata, stored but never enforced.
    conditions: list[str] = Field(default_factory=list)
    requested_modifications: list[RequestedModification] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=now)


class TransitionRecord(BaseModel):
    """Audit entry appended on every successful transition."""

    event: PostingEvent
    actor_role: ActorRole
    actor_id: Optional[str] = None
    from_status: PostingStatus
    from_state: Optional[PublicationState] = None
    to_status: PostingStatus
    to_state: Optional[PublicationState] = None
    at: datetime
    note: Optional[str] = None

    @property
    def source(self) -> State:
        return (self.from_status, self.from_state)

    @property
    def target(self) -> State:
        return (self.to_status, self.to_state)


class JobPosting(BaseModel):
    """A job opening moving through authoring, approval and publication."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    department: str
    created_by: str
    location: str = ""
    description: str = ""

    status: PostingStatus = PostingStatus.DRAFT
    publication_state: Optional[PublicationState] = None

    technical_assessment: Optional[Quiz] = None
    hr_assessment: Optional[Quiz] = None

    approval_history: list[ApprovalDecision] = Field(default_factory=list)
    transitions: list[TransitionRecord] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=now)
    last_transition_at: datetime = Field(default_factory=now)
    published_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

    @property
    def state(self) -> State:
        return (self.status, self.publication_state)

    @property
    def display_status(self) -> str:
        if self.publication_state is not None:
            return f"{self.status.value}({self.publication_state.value})"
        return self.status.value


# ==================== Transition engine ===================== #
def check_transition(posting: JobPosting, event: PostingEvent, actor: Actor) -> Transition:
    """
    Validate an event against the transition table without mutating anything.

    Raises:
        ForbiddenTransitionError: The actor's role is not the one for this event
        InvalidStateTransitionError: The posting's state is not a source for this event
    """
    transition = TRANSITIONS[PostingEvent(event)]
    if actor.role != transition.actor:
        raise ForbiddenTransitionError(
            f"Only {transition.actor.value} may {transition.event.value}; "
            f"caller is {actor.role.value}",
            job_id=posting.id,
            event=transition.event,
        )
    if posting.state not in transition.sources:
        raise InvalidStateTransitionError(
            f"Cannot {transition.event.value} a posting in {posting.display_status}",
            job_id=posting.id,
            event=transition.event,
            status=posting.display_status,
        )
    return transition


def commit_transition(
    posting: JobPosting,
    transition: Transition,
    actor: Actor,
    at: datetime,
    note: Optional[str] = None,
) -> TransitionRecord:
    to_status, to_state = transition.target
    record = TransitionRecord(
        event=transition.event,
        actor_role=actor.role,
        actor_id=actor.id,
        from_status=posting.status,
        from_state=posting.publication_state,
        to_status=to_status,
        to_state=to_state,
        at=at,
        note=note,
    )
    posting.status = to_status
    posting.publication_state = to_state
    posting.last_transition_at = at
    if transition.event == PostingEvent.APPROVE:
        posting.published_at = at
    if to_status in (PostingStatus.DRAFT, PostingStatus.HR_REVIEW):
        # HR quiz only exists once a posting has left hr_review
        posting.hr_assessment = None
    posting.transitions.append(record)

    logger.info(
        f"Posting {posting.id}: {transition.event.value} by {actor} "
        f"({record.from_status.value} -> {posting.display_status})"
    )
    return record


def apply_event(
    posting: JobPosting,
    event: PostingEvent,
    actor: Actor,
    at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> TransitionRecord:
    """Run a table-driven transition that carries no payload."""
    transition = check_transition(posting, event, actor)
    return commit_transition(posting, transition, actor, ensure_aware(at or now()), note)


# ==================== Role operations ===================== #
def create_posting(
    title: str,
    department: str,
    actor: Actor,
    technical_assessment: Optional[Quiz] = None,
    location: str = "",
    description: str = "",
    closes_at: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    job_id: Optional[str] = None,
) -> JobPosting:
    """Create a draft posting on behalf of a Project Leader."""
    if actor.role != ActorRole.PROJECT_LEADER:
        raise ForbiddenTransitionError(
            f"Only project_leader may create postings; caller is {actor.role.value}"
        )
    if not title or not title.strip():
        raise ValidationError("Posting title is required")
    if not department or not department.strip():
        raise ValidationError("Posting department is required")
    if technical_assessment is not None:
        validate_quiz(technical_assessment, AssessmentStage.TECHNICAL)

    created = ensure_aware(created_at or now())
    fields = dict(
        title=title.strip(),
        department=department.strip(),
        created_by=actor.id or "unknown",
        location=location,
        description=description,
        technical_assessment=technical_assessment,
        closes_at=ensure_aware(closes_at) if closes_at else None,
        created_at=created,
        last_transition_at=created,
    )
    if job_id:
        fields["id"] = job_id
    posting = JobPosting(**fields)
    logger.info(f"Posting {posting.id} created by {actor}")
    return posting


def revise_technical_assessment(posting: JobPosting, actor: Actor, quiz: Quiz) -> JobPosting:
    """Replace the technical quiz while the posting is still a draft."""
    if actor.role != ActorRole.PROJECT_LEADER:
        raise ForbiddenTransitionError(
            "Only project_leader may author the technical assessment",
            job_id=posting.id,
        )
    if posting.status != PostingStatus.DRAFT:
        raise InvalidStateTransitionError(
            f"Technical assessment is locked once the posting leaves draft "
            f"(current: {posting.display_status})",
            job_id=posting.id,
        )
    validate_quiz(quiz, AssessmentStage.TECHNICAL)
    posting.technical_assessment = quiz
    return posting


def submit_for_review(posting: JobPosting, actor: Actor, at: Optional[datetime] = None) -> TransitionRecord:
    """Project Leader hands the draft to HR."""
    transition = check_transition(posting, PostingEvent.SUBMIT_FOR_REVIEW, actor)
    if posting.technical_assessment is None:
        raise ValidationError(
            "A technical assessment is required before submitting for HR review",
            job_id=posting.id,
        )
    return commit_transition(posting, transition, actor, ensure_aware(at or now()))


def complete_enhancement(
    posting: JobPosting,
    actor: Actor,
    hr_quiz: Quiz,
    at: Optional[datetime] = None,
) -> TransitionRecord:
    """HR attaches the behavioral quiz and forwards the posting for approval."""
    transition = check_transition(posting, PostingEvent.COMPLETE_ENHANCEMENT, actor)
    validate_quiz(hr_quiz, AssessmentStage.HR)
    posting.hr_assessment = hr_quiz
    return commit_transition(posting, transition, actor, ensure_aware(at or now()))


def change_visibility(
    posting: JobPosting,
    event: PostingEvent,
    actor: Actor,
    at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> TransitionRecord:
    """Executive moderation of a published posting (hide, flag, reactivate, mark expired)."""
    event = PostingEvent(event)
    if event not in VISIBILITY_EVENTS:
        raise ValidationError(f"{event.value} is not a visibility change", job_id=posting.id)
    return apply_event(posting, event, actor, at, note)


def expire_if_due(posting: JobPosting, at: Optional[datetime] = None) -> Optional[TransitionRecord]:
    """
    Apply the system ``expire`` event when the posting's closing date has passed.

    Args:
        posting: Posting to check
        at: Evaluation time, defaults to now

    Returns:
        The transition record, or None when nothing was due
    """
    moment = ensure_aware(at or now())
    if posting.status != PostingStatus.PUBLISHED or posting.closes_at is None:
        return None
    if ensure_aware(posting.closes_at) > moment:
        return None
    return apply_event(posting, PostingEvent.EXPIRE, SYSTEM_ACTOR, moment, note="closing date reached")


# ==================== Queries ===================== #
def is_publicly_visible(posting: JobPosting) -> bool:
    """Only published, active postings accept candidates."""
    return posting.state == published(PublicationState.ACTIVE)


def allowed_events(posting: JobPosting, role: ActorRole) -> list[PostingEvent]:
    """Events the given role could fire right now."""
    return [
        t.event for t in TRANSITIONS.values()
        if t.actor == role and posting.state in t.sources
    ]


def visited_states(posting: JobPosting) -> list[State]:
    """States the posting has occupied, in order, starting from draft."""
    states: list[State] = [DRAFT]
    for record in posting.transitions:
        states.append(record.target)
    return states


def is_valid_path(states: list[State]) -> bool:
    """True when every consecutive pair of states is a row of the transition table."""
    edges = {
        (source, t.target)
        for t in TRANSITIONS.values()
        for source in t.sources
    }
    return all((a, b) in edges for a, b in zip(states, states[1:]))
