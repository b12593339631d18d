"""
Read-only projections for the creator, HR, executive and candidate dashboards.

Nothing here is a system of record: every function re-derives its output from
the postings and sessions it is handed and never caches a status.
"""

from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, Field

from core.utils.datetime import format_iso, hours_between
from core.workflow.actors import ActorRole
from core.workflow.approvals import pending_reviews
from core.workflow.assessments import AssessmentSession, SessionStage, aggregate_result
from core.workflow.postings import (
    JobPosting,
    PostingEvent,
    PostingStatus,
    PublicationState,
    allowed_events,
    is_publicly_visible,
)
from core.workflow.quiz import round_half_up


class PostingFilter(BaseModel):
    """Dashboard filter for postings."""

    search: Optional[str] = None
    department: Optional[str] = None
    statuses: list[PostingStatus] = Field(default_factory=list)
    publication_states: list[PublicationState] = Field(default_factory=list)
    created_by: Optional[str] = None
    sort_by: Literal["newest", "oldest", "title"] = "newest"


class SessionFilter(BaseModel):
    """Dashboard filter for assessment sessions."""

    job_id: Optional[str] = None
    stages: list[SessionStage] = Field(default_factory=list)
    passed: Optional[bool] = None
    score_min: Optional[float] = Field(default=None, ge=0, le=100)
    score_max: Optional[float] = Field(default=None, ge=0, le=100)
    search: Optional[str] = None
    sort_by: Literal["newest", "oldest", "score_high", "score_low"] = "newest"


# ==================== Postings ===================== #
def queue_for(
    role: ActorRole,
    postings: Iterable[JobPosting],
    user_id: Optional[str] = None,
) -> list[JobPosting]:
    """Postings waiting on the given role."""
    postings = list(postings)
    if role == ActorRole.PROJECT_LEADER:
        queue = [p for p in postings if p.status == PostingStatus.DRAFT]
        if user_id:
            queue = [p for p in queue if p.created_by == user_id]
        return sorted(queue, key=lambda p: p.last_transition_at, reverse=True)
    if role == ActorRole.HR:
        queue = [p for p in postings if p.status == PostingStatus.HR_REVIEW]
        return sorted(queue, key=lambda p: p.last_transition_at)
    if role == ActorRole.EXECUTIVE:
        return pending_reviews(postings)
    if role == ActorRole.CANDIDATE:
        return sorted(
            (p for p in postings if is_publicly_visible(p)),
            key=lambda p: p.published_at or p.created_at,
            reverse=True,
        )
    return []


def filter_postings(postings: Iterable[JobPosting], criteria: PostingFilter) -> list[JobPosting]:
    """Apply search, field filters and sort order."""
    results = list(postings)

    if criteria.search:
        term = criteria.search.lower()
        results = [
            p for p in results
            if term in p.title.lower() or term in p.department.lower() or term in p.location.lower()
        ]
    if criteria.department:
        results = [p for p in results if p.department.lower() == criteria.department.lower()]
    if criteria.statuses:
        results = [p for p in results if p.status in criteria.statuses]
    if criteria.publication_states:
        results = [p for p in results if p.publication_state in criteria.publication_states]
    if criteria.created_by:
        results = [p for p in results if p.created_by == criteria.created_by]

    if criteria.sort_by == "title":
        return sorted(results, key=lambda p: p.title.lower())
    return sorted(results, key=lambda p: p.created_at, reverse=criteria.sort_by == "newest")


def posting_view(posting: JobPosting, role: ActorRole) -> dict[str, Any]:
    """
    Dashboard payload for a posting.

    Candidates get the public listing only; staff roles also see the
    assessments, history and the events they may fire next.
    """
    view: dict[str, Any] = {
        "id": posting.id,
        "title": posting.title,
        "department": posting.department,
        "location": posting.location,
        "description": posting.description,
        "status": posting.status.value,
        "publication_state": posting.publication_state.value if posting.publication_state else None,
        "display_status": posting.display_status,
        "published_at": format_iso(posting.published_at),
        "closes_at": format_iso(posting.closes_at),
    }
    if role == ActorRole.CANDIDATE:
        view["assessments"] = {
            "technical_minutes": posting.technical_assessment.time_limit_minutes
            if posting.technical_assessment else None,
            "hr_minutes": posting.hr_assessment.time_limit_minutes
            if posting.hr_assessment else None,
        }
        return view

    view.update({
        "created_by": posting.created_by,
        "created_at": format_iso(posting.created_at),
        "last_transition_at": format_iso(posting.last_transition_at),
        "technical_assessment": posting.technical_assessment.model_dump(mode="json")
        if posting.technical_assessment else None,
        "hr_assessment": posting.hr_assessment.model_dump(mode="json")
        if posting.hr_assessment else None,
        "approval_history": [d.model_dump(mode="json") for d in posting.approval_history],
        "transitions": [t.model_dump(mode="json") for t in posting.transitions],
        "allowed_events": [e.value for e in allowed_events(posting, role)],
    })
    return view


# ==================== Sessions ===================== #
def filter_sessions(sessions: Iterable[AssessmentSession], criteria: SessionFilter) -> list[AssessmentSession]:
    """Apply field filters and sort order to sessions."""
    results = list(sessions)

    if criteria.job_id:
        results = [s for s in results if s.job_id == criteria.job_id]
    if criteria.stages:
        results = [s for s in results if s.stage in criteria.stages]
    if criteria.search:
        term = criteria.search.lower()
        results = [
            s for s in results
            if term in s.application_id.lower() or term in (s.candidate_id or "").lower()
        ]
    if criteria.passed is not None:
        results = [
            s for s in results
            if s.stage == SessionStage.COMPLETED
            and aggregate_result(s).overall_passed == criteria.passed
        ]
    if criteria.score_min is not None:
        results = [s for s in results if s.combined_percent is not None and s.combined_percent >= criteria.score_min]
    if criteria.score_max is not None:
        results = [s for s in results if s.combined_percent is not None and s.combined_percent <= criteria.score_max]

    if criteria.sort_by in ("score_high", "score_low"):
        scored = [s for s in results if s.combined_percent is not None]
        unscored = [s for s in results if s.combined_percent is None]
        scored.sort(key=lambda s: s.combined_percent, reverse=criteria.sort_by == "score_high")
        return scored + unscored
    return sorted(results, key=lambda s: s.created_at, reverse=criteria.sort_by == "newest")


def _stage_view(session: AssessmentSession, stage: str) -> dict[str, Any]:
    attempt = session.technical if stage == "technical" else session.hr
    result = attempt.result
    return {
        "status": attempt.status,
        "started_at": format_iso(attempt.started_at),
        "expires_at": format_iso(attempt.expires_at),
        "submitted_at": format_iso(result.submitted_at) if result else None,
        "percent": result.rounded_percent if result else None,
        "passed": result.passed if result else None,
    }


def candidate_view(session: AssessmentSession) -> dict[str, Any]:
    """What the candidate sees about their own application."""
    return {
        "application_id": session.application_id,
        "job_id": session.job_id,
        "stage": session.stage.value,
        "progress": session.progress,
        "technical": _stage_view(session, "technical"),
        "hr": _stage_view(session, "hr"),
        "decision": session.hiring_decision.decision.value if session.hiring_decision else None,
    }


def session_view(session: AssessmentSession) -> dict[str, Any]:
    """Staff payload: candidate view plus report, breakdown and decision details."""
    view = candidate_view(session)
    view["candidate_id"] = session.candidate_id
    view["created_at"] = format_iso(session.created_at)
    for stage, attempt in (("technical", session.technical), ("hr", session.hr)):
        if attempt.result:
            view[stage]["exact_percent"] = attempt.result.percent
            view[stage]["category_breakdown"] = attempt.result.category_breakdown
    view["report"] = (
        aggregate_result(session).model_dump(mode="json")
        if session.stage == SessionStage.COMPLETED else None
    )
    view["hiring_decision"] = (
        session.hiring_decision.model_dump(mode="json") if session.hiring_decision else None
    )
    return view


# ==================== Analytics ===================== #
def _rate(part: int, whole: int) -> Optional[float]:
    return round(part / whole * 100, 2) if whole else None


def _first_transition_at(posting: JobPosting, event: PostingEvent):
    for record in posting.transitions:
        if record.event == event:
            return record.at
    return None


def _last_transition_at(posting: JobPosting, event: PostingEvent):
    found = None
    for record in posting.transitions:
        if record.event == event:
            found = record.at
    return found


def workflow_analytics(posting: JobPosting, sessions: Iterable[AssessmentSession]) -> dict[str, Any]:
    """
    Stage timings for a posting and pass rates for its applications.

    Args:
        posting: The posting
        sessions: Sessions; only those for this posting are counted

    Returns:
        Dictionary with application and performance metrics
    """
    own = [s for s in sessions if s.job_id == posting.id]
    technical_done = [s for s in own if s.technical_result is not None]
    hr_done = [s for s in own if s.hr_result is not None]
    completed = [s for s in own if s.stage == SessionStage.COMPLETED]
    reports = [aggregate_result(s) for s in completed]

    submitted = _first_transition_at(posting, PostingEvent.SUBMIT_FOR_REVIEW)
    enhanced = _last_transition_at(posting, PostingEvent.COMPLETE_ENHANCEMENT)

    return {
        "job_id": posting.id,
        "status": posting.display_status,
        "application_metrics": {
            "total_applications": len(own),
            "completed_assessments": len(completed),
            "technical_pass_rate": _rate(sum(1 for s in technical_done if s.technical_result.passed), len(technical_done)),
            "hr_pass_rate": _rate(sum(1 for s in hr_done if s.hr_result.passed), len(hr_done)),
            "overall_pass_rate": _rate(sum(1 for r in reports if r.overall_passed), len(reports)),
            "average_score": round_half_up(sum(r.combined_percent for r in reports) / len(reports))
            if reports else None,
        },
        "performance_metrics": {
            "hours_to_hr_enhancement": hours_between(submitted, enhanced),
            "hours_to_ceo_approval": hours_between(enhanced, posting.published_at),
            "hours_to_publication": hours_between(posting.created_at, posting.published_at),
        },
    }
