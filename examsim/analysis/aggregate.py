"""Tabular views of a scored attempt (per question and per domain)."""

from __future__ import annotations

from typing import Any, Mapping

import pandas as pd

from ..data.langtext import NOT_AVAILABLE
from ..data.schemas import Exam
from .scoring import QuestionStatus, ScoreResult

NO_DOMAIN = "(none)"

FRAME_COLUMNS = [
    "number",
    "id",
    "domain",
    "question",
    "user_answer",
    "correct_answer",
    "status",
    "scorable",
]

BREAKDOWN_COLUMNS = ["domain", "questions", "answered", "scorable", "correct", "incorrect", "accuracy"]


def results_frame(exam: Exam, answers: Mapping[str, Any], result: ScoreResult) -> pd.DataFrame:
    """One row per question, in exam order."""
    rows = []
    for q, verdict in zip(exam.questions, result.per_question):
        rows.append({
            "number": verdict.index + 1,
            "id": verdict.question_id,
            "domain": q.domain,
            "question": exam.question_text(q),
            "user_answer": (
                verdict.user_answer if verdict.answered else QuestionStatus.NOT_ANSWERED.value
            ),
            "correct_answer": verdict.correct_answer if verdict.correct_answer is not None else NOT_AVAILABLE,
            "status": verdict.status.value,
            "scorable": verdict.scorable,
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def domain_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Per-domain counts and accuracy over scorable questions.

    Questions without a domain are grouped under ``"(none)"``. Accuracy is NaN
    for domains with no scorable question.
    """
    if frame.empty:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)

    domain = frame["domain"].astype(object).where(frame["domain"].notna(), NO_DOMAIN)
    work = frame.assign(
        domain=domain.replace("", NO_DOMAIN),
        answered=frame["status"] != QuestionStatus.NOT_ANSWERED.value,
        is_correct=frame["status"] == QuestionStatus.CORRECT.value,
        is_incorrect=frame["status"] == QuestionStatus.INCORRECT.value,
        scorable=frame["scorable"].astype(bool),
    )
    out = (
        work.groupby("domain", sort=False)
        .agg(
            questions=("id", "size"),
            answered=("answered", "sum"),
            scorable=("scorable", "sum"),
            correct=("is_correct", "sum"),
            incorrect=("is_incorrect", "sum"),
        )
        .reset_index()
    )
    out["accuracy"] = out["correct"] / out["scorable"].where(out["scorable"] > 0)
    return out[BREAKDOWN_COLUMNS]
