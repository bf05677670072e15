"""Scoring and result analysis for exam attempts."""

from .scoring import QuestionStatus, QuestionVerdict, ScoreResult, format_duration, score_attempt

__all__ = [
    "QuestionStatus",
    "QuestionVerdict",
    "ScoreResult",
    "format_duration",
    "score_attempt",
]
