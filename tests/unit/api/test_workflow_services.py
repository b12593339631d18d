"""
Tests for the posting and assessment service layer.

Services load from the store, apply the domain operation, save and notify.
A refused operation must leave the stored entity untouched.
"""

from datetime import timedelta
import logging

import pytest

from api.services import assessments as assessment_service
from api.services import postings as posting_service
from core.utils.datetime import now
from core.workflow.actors import Actor, ActorRole
from core.workflow.assessments import SessionStage
from core.workflow.errors import (
    ExpiredError,
    ForbiddenTransitionError,
    NotFoundError,
    ValidationError,
)
from core.workflow.notifications import NotificationType
from core.workflow.postings import DecisionOutcome, PostingEvent, PostingStatus
from core.workflow.views import PostingFilter, SessionFilter
from tests.factories import hr_answers, make_hr_quiz, make_technical_quiz, technical_answers


async def _publish(store, notifier, project_leader, hr_actor, executive, closes_at=None):
    posting = await posting_service.create_posting(
        store, project_leader, "Platform Engineer", "Engineering",
        technical_assessment=make_technical_quiz(), closes_at=closes_at,
    )
    await posting_service.submit_posting(store, notifier, project_leader, posting.id)
    await posting_service.enhance_posting(store, notifier, hr_actor, posting.id, make_hr_quiz())
    return await posting_service.decide_posting(
        store, notifier, executive, posting.id, DecisionOutcome.APPROVE
    )


class TestPostingServices:
    """Lifecycle through the store."""

    @pytest.mark.asyncio
    async def test_full_approval_flow(self, store, notifier, project_leader, hr_actor, executive):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)

        stored = await store.load(posting.id)
        assert stored.display_status == "published(active)"
        assert [n.type for n in notifier.sent] == [
            NotificationType.HR_ENHANCEMENT_REQUIRED,
            NotificationType.CEO_APPROVAL_REQUIRED,
            NotificationType.JOB_APPROVED,
        ]

    @pytest.mark.asyncio
    async def test_refused_decision_is_not_saved(self, store, notifier, project_leader, hr_actor, caplog):
        posting = await posting_service.create_posting(
            store, project_leader, "Platform Engineer", "Engineering", technical_assessment=make_technical_quiz(),
        )
        await posting_service.submit_posting(store, notifier, project_leader, posting.id)

        with caplog.at_level(logging.WARNING, logger="api.services.postings"):
            with pytest.raises(ForbiddenTransitionError):
                await posting_service.decide_posting(
                    store, notifier, project_leader, posting.id, DecisionOutcome.APPROVE
                )

        stored = await store.load(posting.id)
        assert stored.status == PostingStatus.HR_REVIEW
        assert stored.approval_history == []
        assert len(notifier.sent) == 1
        assert "FORBIDDEN_TRANSITION" in caplog.text

    @pytest.mark.asyncio
    async def test_reject_without_comments(self, store, notifier, project_leader, hr_actor, executive):
        posting = await posting_service.create_posting(
            store, project_leader, "Platform Engineer", "Engineering", technical_assessment=make_technical_quiz(),
        )
        await posting_service.submit_posting(store, notifier, project_leader, posting.id)
        await posting_service.enhance_posting(store, notifier, hr_actor, posting.id, make_hr_quiz())

        with pytest.raises(ValidationError):
            await posting_service.decide_posting(store, notifier, executive, posting.id, DecisionOutcome.REJECT)
        assert (await store.load(posting.id)).status == PostingStatus.CEO_APPROVAL

    @pytest.mark.asyncio
    async def test_missing_posting(self, store, project_leader):
        with pytest.raises(NotFoundError):
            await posting_service.get_posting(store, project_leader, "nope")

    @pytest.mark.asyncio
    async def test_candidates_cannot_see_drafts(self, store, project_leader, candidate):
        posting = await posting_service.create_posting(store, project_leader, "Draft Role", "Ops")
        with pytest.raises(NotFoundError):
            await posting_service.get_posting(store, candidate, posting.id)
        assert await posting_service.list_postings(store, candidate) == []

    @pytest.mark.asyncio
    async def test_lazy_expiry_on_read(self, store, notifier, project_leader, hr_actor, executive):
        """A posting past its closing date is archived the next time it is read."""
        posting = await _publish(
            store, notifier, project_leader, hr_actor, executive,
            closes_at=now() + timedelta(seconds=1),
        )
        stored = await store.load(posting.id)
        stored.closes_at = now() - timedelta(minutes=1)
        await store.save(stored)

        found = await posting_service.get_posting(store, executive, posting.id, notifier)
        assert found.status == PostingStatus.ARCHIVED
        assert (await store.load(posting.id)).status == PostingStatus.ARCHIVED
        assert notifier.sent[-1].type == NotificationType.JOB_STATUS_CHANGED

    @pytest.mark.asyncio
    async def test_expiry_sweep(self, store, notifier, project_leader, hr_actor, executive):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive,
                                 closes_at=now() + timedelta(days=1))
        assert await posting_service.expire_due_postings(store, notifier) == []
        archived = await posting_service.expire_due_postings(store, notifier, at=now() + timedelta(days=2))
        assert archived == [posting.id]

    @pytest.mark.asyncio
    async def test_visibility_and_queue(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        await posting_service.change_posting_visibility(store, notifier, executive, posting.id, PostingEvent.HIDE)

        assert await posting_service.posting_queue(store, candidate) == []
        listed = await posting_service.list_postings(
            store, executive, PostingFilter(search="platform")
        )
        assert [p.display_status for p in listed] == ["published(hidden)"]

    @pytest.mark.asyncio
    async def test_analytics_staff_only(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        metrics = await posting_service.posting_analytics(store, executive, posting.id)
        assert metrics["application_metrics"]["total_applications"] == 0
        with pytest.raises(ForbiddenTransitionError):
            await posting_service.posting_analytics(store, candidate, posting.id)


class TestAssessmentServices:
    """Candidate journey through the store."""

    @pytest.mark.asyncio
    async def test_candidate_journey(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        session = await assessment_service.apply_for_posting(store, candidate, posting.id, application_id="app-1")
        assert session.candidate_id == "cand-1"

        _, attempt, quiz = await assessment_service.start_assessment_stage(store, candidate, "app-1", "technical")
        assert quiz.id == "tech-quiz"
        assert attempt.expires_at is not None
        await assessment_service.submit_assessment_stage(
            store, notifier, candidate, "app-1", "technical", technical_answers(4)
        )
        await assessment_service.start_assessment_stage(store, candidate, "app-1", "hr")
        session, result = await assessment_service.submit_assessment_stage(
            store, notifier, candidate, "app-1", "hr", hr_answers(3)
        )

        assert session.stage == SessionStage.COMPLETED
        assert result.rounded_percent == 75
        assert notifier.sent[-1].type == NotificationType.ASSESSMENT_COMPLETED

        report = await assessment_service.get_report(store, project_leader, "app-1")
        assert report.overall_passed is True

        decision = await assessment_service.decide_application(store, project_leader, "app-1", "accept", rating=4)
        assert decision.rating == 4
        assert (await store.load_session("app-1")).hiring_decision.decision.value == "accept"

    @pytest.mark.asyncio
    async def test_late_submission_keeps_session(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        await assessment_service.apply_for_posting(store, candidate, posting.id, application_id="app-1")
        await assessment_service.start_assessment_stage(store, candidate, "app-1", "technical")

        stored = await store.load_session("app-1")
        stored.technical.expires_at = now() - timedelta(minutes=1)
        await store.save_session(stored)

        with pytest.raises(ExpiredError):
            await assessment_service.submit_assessment_stage(
                store, notifier, candidate, "app-1", "technical", technical_answers(4)
            )
        assert (await store.load_session("app-1")).technical_result is None

    @pytest.mark.asyncio
    async def test_unknown_stage_rejected(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        await assessment_service.apply_for_posting(store, candidate, posting.id, application_id="app-1")

        with pytest.raises(ValidationError, match="Unknown assessment stage"):
            await assessment_service.start_assessment_stage(store, candidate, "app-1", "interview")
        with pytest.raises(ValidationError, match="Unknown assessment stage"):
            await assessment_service.submit_assessment_stage(store, notifier, candidate, "app-1", "interview", {})
        assert (await store.load_session("app-1")).stage == SessionStage.TECHNICAL

    @pytest.mark.asyncio
    async def test_other_candidate_is_forbidden(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        await assessment_service.apply_for_posting(store, candidate, posting.id, application_id="app-1")

        intruder = Actor(role=ActorRole.CANDIDATE, id="cand-2")
        with pytest.raises(ForbiddenTransitionError):
            await assessment_service.start_assessment_stage(store, intruder, "app-1", "technical")
        with pytest.raises(ForbiddenTransitionError):
            await assessment_service.get_session(store, intruder, "app-1")

    @pytest.mark.asyncio
    async def test_staff_cannot_apply(self, store, notifier, project_leader, hr_actor, executive):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        with pytest.raises(ForbiddenTransitionError):
            await assessment_service.apply_for_posting(store, hr_actor, posting.id)

    @pytest.mark.asyncio
    async def test_list_sessions_staff_only(self, store, notifier, project_leader, hr_actor, executive, candidate):
        posting = await _publish(store, notifier, project_leader, hr_actor, executive)
        await assessment_service.apply_for_posting(store, candidate, posting.id, application_id="app-1")

        found = await assessment_service.list_sessions(store, hr_actor, SessionFilter(job_id=posting.id))
        assert [s.application_id for s in found] == ["app-1"]
        with pytest.raises(ForbiddenTransitionError):
            await assessment_service.list_sessions(store, candidate)
