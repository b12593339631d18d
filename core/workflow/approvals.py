"""
Approval decision processor.

Applies an executive decision (approve / reject / request changes) to a
posting waiting in ``ceo_approval``. The history append and the status change
happen together or not at all.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from core.utils.datetime import ensure_aware
from core.workflow.actors import Actor
from core.workflow.errors import ForbiddenTransitionError, NotReviewableError, ValidationError
from core.workflow.postings import (
    ApprovalDecision,
    DECISION_EVENTS,
    DecisionOutcome,
    JobPosting,
    PostingStatus,
    RequestedModification,
    TRANSITIONS,
    TransitionRecord,
    commit_transition,
    check_transition,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ApprovalDecision",
    "DecisionOutcome",
    "RequestedModification",
    "apply_decision",
    "make_decision",
    "pending_reviews",
    "replay_status",
]


def make_decision(
    job_id: str,
    reviewer: Actor,
    outcome: DecisionOutcome | str,
    comments: str = "",
    conditions: Optional[Iterable[str]] = None,
    requested_modifications: Optional[Iterable[RequestedModification]] = None,
    timestamp: Optional[datetime] = None,
) -> ApprovalDecision:
    """Convenience constructor binding the reviewer identity into a decision."""
    fields = dict(
        job_id=job_id,
        reviewer_role=reviewer.role,
        reviewer_id=reviewer.id,
        outcome=DecisionOutcome(outcome),
        comments=comments or "",
        conditions=[c for c in (conditions or []) if c and c.strip()],
        requested_modifications=list(requested_modifications or []),
    )
    if timestamp is not None:
        fields["timestamp"] = ensure_aware(timestamp)
    return ApprovalDecision(**fields)


def apply_decision(posting: JobPosting, decision: ApprovalDecision) -> TransitionRecord:
    """
    Validate and apply a reviewer decision.

    Args:
        posting: Posting under review
        decision: The reviewer's decision

    Returns:
        The transition record appended to the posting

    Raises:
        ForbiddenTransitionError: Reviewer is not an executive
        NotReviewableError: Posting is not in ceo_approval
        ValidationError: Missing comments on reject/request_changes, or job id mismatch
    """
    event = DECISION_EVENTS[decision.outcome]
    reviewer = Actor(role=decision.reviewer_role, id=decision.reviewer_id)
    if reviewer.role != TRANSITIONS[event].actor:
        raise ForbiddenTransitionError(
            f"Only {TRANSITIONS[event].actor.value} may decide on a posting; "
            f"caller is {reviewer.role.value}",
            job_id=posting.id,
            event=event,
        )
    if posting.status != PostingStatus.CEO_APPROVAL:
        raise NotReviewableError(
            f"Posting {posting.id} is {posting.display_status}, not awaiting approval",
            job_id=posting.id,
        )

    transition = check_transition(posting, event, reviewer)

    if decision.job_id != posting.id:
        raise ValidationError(
            f"Decision targets job {decision.job_id}, not {posting.id}",
            job_id=posting.id,
        )
    if decision.outcome != DecisionOutcome.APPROVE and not decision.comments.strip():
        raise ValidationError(
            "comments required for rejection/changes",
            job_id=posting.id,
            outcome=decision.outcome,
        )

    at = ensure_aware(decision.timestamp)
    posting.approval_history.append(decision)
    record = commit_transition(posting, transition, reviewer, at, note=decision.comments or None)

    if decision.conditions:
        logger.info(
            f"Posting {posting.id}: {decision.outcome.value} recorded with "
            f"{len(decision.conditions)} advisory condition(s)"
        )
    return record


def replay_status(prior_status: PostingStatus, decision: ApprovalDecision) -> PostingStatus:
    """
    Status a posting reaches when ``decision`` is applied from ``prior_status``.

    Raises:
        NotReviewableError: prior_status is not ceo_approval
    """
    if prior_status != PostingStatus.CEO_APPROVAL:
        raise NotReviewableError(f"Decisions only apply from ceo_approval, not {prior_status.value}")
    target_status, _ = TRANSITIONS[DECISION_EVENTS[decision.outcome]].target
    return target_status


def pending_reviews(postings: Iterable[JobPosting]) -> list[JobPosting]:
    """Postings an executive can decide on, oldest submission first."""
    queue = [p for p in postings if p.status == PostingStatus.CEO_APPROVAL]
    return sorted(queue, key=lambda p: p.last_transition_at)
