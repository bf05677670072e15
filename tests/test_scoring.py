from __future__ import annotations

import pytest

from examsim.analysis.scoring import (
    QuestionStatus,
    ScoreResult,
    answers_match,
    format_duration,
    score_attempt,
)
from examsim.data.schemas import Exam


def _paris_exam(include_answer_key=True, **question):
    q = {"id": "1", "type": "open-ended", "question": "Capital of France?", "answerKey": "Paris"}
    q.update(question)
    doc = {"title": "Geo", "questions": [q]}
    if include_answer_key is not None:
        doc["includeAnswerKey"] = include_answer_key
    return Exam.from_dict(doc)


class TestScoreAttempt:
    def test_case_insensitive_match(self):
        result = score_attempt(_paris_exam(), {"1": "paris"})
        assert (result.correct, result.total) == (1, 1)
        assert result.label == "1/1"
        assert result.per_question[0].status is QuestionStatus.CORRECT

    def test_wrong_answer(self):
        result = score_attempt(_paris_exam(), {"1": "Lyon"})
        assert (result.correct, result.total) == (0, 1)
        assert result.per_question[0].status is QuestionStatus.INCORRECT

    def test_unanswered_still_counts_toward_total(self):
        result = score_attempt(_paris_exam(), {})
        assert (result.correct, result.total) == (0, 1)
        assert result.per_question[0].status is QuestionStatus.NOT_ANSWERED
        assert not result.per_question[0].answered

    def test_no_trimming(self):
        result = score_attempt(_paris_exam(), {"1": " Paris "})
        assert result.correct == 0

    @pytest.mark.parametrize("flag", [False, None])
    def test_scoring_disabled(self, flag):
        result = score_attempt(_paris_exam(include_answer_key=flag), {"1": "Paris"})
        assert not result.scored
        assert result.correct is None and result.total is None
        assert result.label == "Not Scored"
        assert result.percentage is None
        assert result.per_question[0].status is QuestionStatus.NOT_SCORED

    def test_not_scored_differs_from_zero_of_zero(self):
        doc = {
            "title": "x",
            "includeAnswerKey": True,
            "questions": [{"id": "1", "type": "open-ended", "question": "q"}],
        }
        result = score_attempt(Exam.from_dict(doc), {"1": "anything"})
        assert result.scored
        assert result.label == "0/0"
        assert result.percentage is None
        assert result.per_question[0].status is QuestionStatus.NOT_SCORED

    def test_end_to_end(self, two_question_exam):
        exam = Exam.from_dict(two_question_exam)
        result = score_attempt(exam, {"1": "42", "2": "b"})
        assert result.label == "1/2"
        assert result.percentage == pytest.approx(50.0)
        assert [v.status for v in result.per_question] == [
            QuestionStatus.CORRECT,
            QuestionStatus.INCORRECT,
        ]
        assert result.verdict_for("2").correct_answer == "a"
        assert result.verdict_for("missing") is None

    def test_multilingual_answers_resolve_to_primary(self, multilingual_exam):
        exam = Exam.from_dict(multilingual_exam)
        answers = {"1": {"en": "Paris", "es": "París"}, "2": "madrid"}
        result = score_attempt(exam, answers)
        assert (result.correct, result.total) == (2, 2)
        assert result.per_question[2].status is QuestionStatus.NOT_ANSWERED
        assert result.per_question[2].scorable is False

    def test_numeric_question_ids(self):
        doc = {
            "title": "x",
            "includeAnswerKey": True,
            "questions": [{"id": 4.0, "type": "open-ended", "question": "q", "answerKey": "y"}],
        }
        result = score_attempt(Exam.from_dict(doc), {"4": "Y"})
        assert result.correct == 1

    def test_counts(self, two_question_exam):
        result = score_attempt(Exam.from_dict(two_question_exam), {"1": "42"})
        assert result.counts() == {
            "Not Answered": 1,
            "Not Scored": 0,
            "Correct": 1,
            "Incorrect": 0,
        }

    def test_score_never_exceeds_total(self, multilingual_exam):
        exam = Exam.from_dict(multilingual_exam)
        result = score_attempt(exam, {"1": "Paris", "2": "Madrid", "3": "Pacific"})
        assert isinstance(result, ScoreResult)
        assert 0 <= result.correct <= result.total <= len(exam.questions)


@pytest.mark.parametrize(
    "correct,submitted,expected",
    [
        ("Paris", "PARIS", True),
        ("Paris", "", False),
        ("N/A", "N/A", False),
        ("", "", False),
        ("Straße", "STRASSE", False),
    ],
)
def test_answers_match(correct, submitted, expected):
    assert answers_match(correct, submitted) is expected


@pytest.mark.parametrize(
    "ms,expected",
    [
        (0, "00:00"),
        (999, "00:00"),
        (65000, "01:05"),
        (599999, "09:59"),
        (6000000, "100:00"),
        (-5000, "00:00"),
    ],
)
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected
