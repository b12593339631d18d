"""Notification payloads emitted after workflow transitions and assessment reports."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, Field

from core.utils.datetime import now
from core.workflow.actors import ActorRole
from core.workflow.assessments import AssessmentReport, AssessmentSession
from core.workflow.postings import JobPosting, PostingEvent, TransitionRecord
from core.workflow.quiz import round_half_up


class NotificationType(str, PyEnum):
    """What happened."""

    HR_ENHANCEMENT_REQUIRED = "hr_enhancement_required"
    CEO_APPROVAL_REQUIRED = "ceo_approval_required"
    JOB_APPROVED = "job_approved"
    JOB_REJECTED = "job_rejected"
    CHANGES_REQUESTED = "changes_requested"
    JOB_STATUS_CHANGED = "job_status_changed"
    ASSESSMENT_COMPLETED = "assessment_completed"


class NotificationPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WorkflowNotification(BaseModel):
    """A message for the role whose turn it now is."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: NotificationType
    title: str
    message: str
    recipient_role: ActorRole
    recipient_id: Optional[str] = None
    job_id: Optional[str] = None
    application_id: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_required: bool = False
    created_at: datetime = Field(default_factory=now)


# event -> (type, recipient role, priority, action required)
_TRANSITION_ROUTING: dict[PostingEvent, tuple[NotificationType, ActorRole, NotificationPriority, bool]] = {
    PostingEvent.SUBMIT_FOR_REVIEW: (
        NotificationType.HR_ENHANCEMENT_REQUIRED, ActorRole.HR, NotificationPriority.HIGH, True,
    ),
    PostingEvent.COMPLETE_ENHANCEMENT: (
        NotificationType.CEO_APPROVAL_REQUIRED, ActorRole.EXECUTIVE, NotificationPriority.HIGH, True,
    ),
    PostingEvent.APPROVE: (
        NotificationType.JOB_APPROVED, ActorRole.PROJECT_LEADER, NotificationPriority.MEDIUM, False,
    ),
    PostingEvent.REJECT: (
        NotificationType.JOB_REJECTED, ActorRole.PROJECT_LEADER, NotificationPriority.HIGH, True,
    ),
    PostingEvent.REQUEST_CHANGES: (
        NotificationType.CHANGES_REQUESTED, ActorRole.HR, NotificationPriority.HIGH, True,
    ),
}

_TITLES = {
    NotificationType.HR_ENHANCEMENT_REQUIRED: "HR enhancement required",
    NotificationType.CEO_APPROVAL_REQUIRED: "Executive approval required",
    NotificationType.JOB_APPROVED: "Job posting approved",
    NotificationType.JOB_REJECTED: "Job posting rejected",
    NotificationType.CHANGES_REQUESTED: "Changes requested",
    NotificationType.JOB_STATUS_CHANGED: "Job posting status changed",
    NotificationType.ASSESSMENT_COMPLETED: "Assessment completed",
}


def notification_for_transition(posting: JobPosting, record: TransitionRecord) -> WorkflowNotification:
    """Build the notification for a posting transition."""
    kind, role, priority, action = _TRANSITION_ROUTING.get(
        record.event,
        (NotificationType.JOB_STATUS_CHANGED, ActorRole.PROJECT_LEADER, NotificationPriority.LOW, False),
    )
    message = f'"{posting.title}" ({posting.department}) is now {posting.display_status}'
    if record.note:
        message = f"{message}: {record.note}"
    return WorkflowNotification(
        type=kind,
        title=_TITLES[kind],
        message=message,
        recipient_role=role,
        recipient_id=posting.created_by if role == ActorRole.PROJECT_LEADER else None,
        job_id=posting.id,
        priority=priority,
        action_required=action,
        created_at=record.at,
    )


def notification_for_report(
    session: AssessmentSession,
    report: AssessmentReport,
    posting: Optional[JobPosting] = None,
) -> WorkflowNotification:
    """Tell the Project Leader a candidate finished both stages and needs a decision."""
    job_label = f'"{posting.title}"' if posting else f"job {session.job_id}"
    return WorkflowNotification(
        type=NotificationType.ASSESSMENT_COMPLETED,
        title=_TITLES[NotificationType.ASSESSMENT_COMPLETED],
        message=(
            f"Application {session.application_id} for {job_label} completed both assessments "
            f"(technical {round_half_up(report.technical_percent)}%, HR {round_half_up(report.hr_percent)}%, "
            f"{report.recommendation.value})"
        ),
        recipient_role=ActorRole.PROJECT_LEADER,
        recipient_id=posting.created_by if posting else None,
        job_id=session.job_id,
        application_id=session.application_id,
        priority=NotificationPriority.HIGH if report.overall_passed else NotificationPriority.MEDIUM,
        action_required=True,
    )
