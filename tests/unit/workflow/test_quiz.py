"""
Tests for the quiz model and scoring.

Tests:
- Quiz shape validation
- Scoring, rounding and pass/fail
- Category breakdown
- Candidate-facing payload
"""

import pytest

from core.workflow.errors import ValidationError
from core.workflow.quiz import AssessmentStage, Question, Quiz, create_quiz, round_half_up, score, validate_quiz
from tests.factories import OPTIONS, make_hr_quiz, make_technical_quiz, technical_answers


def _question(**overrides):
    data = {
        "id": "q1",
        "prompt": "What does HTTP 404 mean?",
        "options": OPTIONS,
        "correct_option_index": 2,
        "points": 5,
    }
    data.update(overrides)
    return data


class TestQuizValidation:
    """Structural rules enforced by create_quiz."""

    def test_valid_quiz(self):
        """A well-formed quiz is accepted and totals its points."""
        quiz = create_quiz([_question(), _question(id="q2", points=10)], 15, 50)
        assert quiz.max_points == 15
        assert quiz.question_ids() == ["q1", "q2"]

    @pytest.mark.parametrize("overrides", [
        {"options": ["A", "B", "C"]},
        {"options": ["A", "B", "C", "D", "E"]},
        {"options": ["A", " ", "C", "D"]},
        {"correct_option_index": 4},
        {"correct_option_index": -1},
        {"points": 0},
        {"points": -2},
    ])
    def test_malformed_question_rejected(self, overrides):
        """Bad option count, blank option, index out of range and non-positive points all fail."""
        with pytest.raises(ValidationError):
            create_quiz([_question(**overrides)], 10, 50)

    def test_empty_quiz_rejected(self):
        with pytest.raises(ValidationError):
            create_quiz([], 10, 50)

    def test_zero_max_points_rejected(self):
        """A quiz worth nothing cannot be created."""
        with pytest.raises(ValidationError):
            create_quiz([_question(points=0)], 10, 50)

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_time_limit_must_be_positive(self, minutes):
        with pytest.raises(ValidationError):
            create_quiz([_question()], minutes, 50)

    @pytest.mark.parametrize("passing", [-1, 100.5, 150])
    def test_passing_score_range(self, passing):
        with pytest.raises(ValidationError):
            create_quiz([_question()], 10, passing)

    def test_duplicate_question_ids_rejected(self):
        with pytest.raises(ValidationError, match="duplicate"):
            create_quiz([_question(), _question()], 10, 50)

    def test_hr_questions_need_category(self):
        """HR questions must carry one of the behavioral categories."""
        with pytest.raises(ValidationError):
            create_quiz([_question()], 10, 50, owning_stage=AssessmentStage.HR)
        quiz = create_quiz([_question(category="teamwork")], 10, 50, owning_stage=AssessmentStage.HR)
        assert quiz.owning_stage == AssessmentStage.HR

    def test_technical_category_checked_when_given(self):
        """Technical questions may omit a category but may not invent one."""
        assert create_quiz([_question()], 10, 50).questions[0].category is None
        assert create_quiz([_question(category="algorithms")], 10, 50).questions[0].category == "algorithms"
        with pytest.raises(ValidationError, match="technical category"):
            create_quiz([_question(category="teamwork")], 10, 50)

    def test_stage_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="owned by the technical stage"):
            validate_quiz(make_technical_quiz(), AssessmentStage.HR)

    def test_wrong_types_become_validation_error(self):
        """Malformed payloads surface as workflow validation errors, not pydantic ones."""
        with pytest.raises(ValidationError, match="Malformed quiz"):
            create_quiz([{"prompt": "missing fields"}], 10, 50)


class TestScoring:
    """Scoring against the answer key."""

    def test_scenario_a_half_score_fails(self):
        """Two 5-point questions, 60% to pass, only the first correct: 50% and failed."""
        quiz = create_quiz(
            [_question(id="q1", correct_option_index=0), _question(id="q2", correct_option_index=1)],
            10,
            60,
        )
        result = score(quiz, {"q1": 0, "q2": 3})
        assert result.total_points == 5
        assert result.percent == 50
        assert result.passed is False

    def test_all_correct(self):
        result = score(make_technical_quiz(), technical_answers(4))
        assert result.percent == 100
        assert result.passed is True

    def test_unanswered_scores_zero(self):
        result = score(make_technical_quiz(), {})
        assert result.total_points == 0
        assert result.passed is False

    def test_unknown_question_ids_ignored(self):
        result = score(make_technical_quiz(), {"t1": 0, "nope": 0})
        assert result.total_points == 25

    def test_pass_at_exact_threshold(self):
        """Reaching the passing percent exactly counts as a pass."""
        quiz = make_technical_quiz(passing=75)
        assert score(quiz, technical_answers(3)).passed is True
        assert score(quiz, technical_answers(2)).passed is False

    def test_pass_uses_unrounded_percent(self):
        """66.67% rounds to 67 for display but does not pass a 67% bar."""
        quiz = make_technical_quiz(points=(1, 1, 1), passing=67)
        result = score(quiz, technical_answers(2, total=3))
        assert result.rounded_percent == 67
        assert result.passed is False

    def test_monotonic_in_correct_answers(self):
        """Adding a correct answer never lowers the percent."""
        quiz = make_technical_quiz(points=(3, 7, 1, 9))
        previous = -1.0
        for correct in range(5):
            percent = score(quiz, technical_answers(correct)).percent
            assert percent >= previous
            previous = percent

    def test_weighted_points(self):
        quiz = make_technical_quiz(points=(10, 30))
        assert score(quiz, {"t2": 0}).percent == 75

    def test_category_breakdown(self):
        """Breakdown is per category and does not affect pass/fail."""
        result = score(make_hr_quiz(), {"h1": 1, "h2": 0})
        assert result.category_breakdown["behavioral"] == 100
        assert result.category_breakdown["communication"] == 0
        assert set(result.category_breakdown) == {"behavioral", "communication", "teamwork", "cultural_fit"}


class TestRounding:
    """Half-up rounding used for display."""

    @pytest.mark.parametrize("value,expected", [
        (50.0, 50),
        (66.5, 67),
        (66.49, 66),
        (87.5, 88),
        (0.5, 1),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestPublicView:
    """Candidate payloads never carry the answer key."""

    def test_answer_key_hidden(self):
        view = make_technical_quiz().public_view()
        assert len(view["questions"]) == 4
        for question in view["questions"]:
            assert "correct_option_index" not in question
        assert view["max_points"] == 100

    def test_round_trip_through_json(self):
        """Stored quizzes reload with the same answer key."""
        quiz = make_hr_quiz()
        reloaded = Quiz.model_validate(quiz.model_dump(mode="json"))
        assert [q.correct_option_index for q in reloaded.questions] == [1, 1, 1, 1]
        assert isinstance(reloaded.questions[0], Question)
