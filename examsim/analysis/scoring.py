"""Scoring of completed exam attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..data.langtext import NOT_AVAILABLE, resolve
from ..data.schemas import Exam, Question


class QuestionStatus(str, Enum):
    NOT_ANSWERED = "Not Answered"
    NOT_SCORED = "Not Scored"
    CORRECT = "Correct"
    INCORRECT = "Incorrect"

    def __str__(self) -> str:
        return self.value


NOT_SCORED_LABEL = "Not Scored"


@dataclass
class QuestionVerdict:
    index: int
    question_id: str
    status: QuestionStatus
    scorable: bool
    user_answer: str | None
    correct_answer: str | None

    @property
    def answered(self) -> bool:
        return self.status is not QuestionStatus.NOT_ANSWERED


@dataclass
class ScoreResult:
    """Outcome of scoring one attempt.

    ``correct`` and ``total`` are ``None`` when the exam does not allow
    scoring; that is a different outcome from scoring ``0/0``.
    """

    scored: bool
    correct: int | None = None
    total: int | None = None
    per_question: list[QuestionVerdict] = field(default_factory=list)

    @property
    def label(self) -> str:
        if not self.scored:
            return NOT_SCORED_LABEL
        return f"{self.correct}/{self.total}"

    @property
    def percentage(self) -> float | None:
        if not self.scored or not self.total:
            return None
        return 100.0 * self.correct / self.total  # type: ignore[operator]

    def verdict_for(self, question_id: str) -> QuestionVerdict | None:
        for v in self.per_question:
            if v.question_id == question_id:
                return v
        return None

    def counts(self) -> dict[str, int]:
        out = {s.value: 0 for s in QuestionStatus}
        for v in self.per_question:
            out[v.status.value] += 1
        return out


def answers_match(correct: str, submitted: str) -> bool:
    """Case-insensitive exact comparison; no trimming or normalization."""
    if not submitted or submitted == NOT_AVAILABLE or not correct:
        return False
    return submitted.lower() == correct.lower()


def _verdict(
    index: int,
    question: Question,
    answers: Mapping[str, Any],
    scoring_enabled: bool,
    primary: str,
    secondary: str | None,
) -> QuestionVerdict:
    key = question.key
    submitted = answers.get(key)
    scorable = scoring_enabled and question.has_answer_key
    correct_text = resolve(question.answer_key, primary, secondary) if scorable else None

    if submitted is None:
        return QuestionVerdict(index, key, QuestionStatus.NOT_ANSWERED, scorable, None, correct_text)

    user_text = resolve(submitted, primary, secondary)
    if not scorable:
        status = QuestionStatus.NOT_SCORED
    elif answers_match(correct_text or "", user_text):
        status = QuestionStatus.CORRECT
    else:
        status = QuestionStatus.INCORRECT
    return QuestionVerdict(index, key, status, scorable, user_text, correct_text)


def score_attempt(exam: Exam, answers: Mapping[str, Any]) -> ScoreResult:
    """Score submitted answers against the exam's answer key.

    Args:
        exam: Validated exam
        answers: Question id (stringified) -> submitted string or option value

    Returns:
        ScoreResult with per-question verdicts in exam order
    """
    primary = exam.primary_language
    secondary = exam.secondary_language
    enabled = exam.scoring_enabled
    answers = answers or {}

    verdicts = [
        _verdict(i, q, answers, enabled, primary, secondary)
        for i, q in enumerate(exam.questions)
    ]
    if not enabled:
        return ScoreResult(scored=False, per_question=verdicts)

    total = sum(1 for v in verdicts if v.scorable)
    correct = sum(1 for v in verdicts if v.status is QuestionStatus.CORRECT)
    return ScoreResult(scored=True, correct=correct, total=total, per_question=verdicts)


def format_duration(ms: int | float) -> str:
    """Render elapsed milliseconds as ``MM:SS`` (minutes are not clamped)."""
    total_seconds = int(max(ms, 0) // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
