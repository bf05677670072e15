"""JSON and CSV result reports for a finished attempt."""

from __future__ import annotations

import copy
import csv
import io
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from .analysis.scoring import QuestionStatus, ScoreResult, answers_match, format_duration, score_attempt
from .data.langtext import NOT_AVAILABLE, resolve
from .data.schemas import Exam, Question
from .utils.io import dump_json, write_text_atomic

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")

CSV_HEADER = ["Question No.", "Question Text", "User Answer", "Correct Answer", "Status"]

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]")
_CSV_TERMINATOR = "\r\n"


def _utcnow(now: datetime | None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def iso_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp with millisecond precision, e.g. ``2024-05-01T09:30:00.000Z``."""
    now = _utcnow(now)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def export_filename(title: str, ext: str, now: datetime | None = None) -> str:
    safe_title = _UNSAFE_FILENAME_RE.sub("", _WHITESPACE_RE.sub("_", title))
    return f"{safe_title}_results_{_utcnow(now).date().isoformat()}.{ext}"


def csv_line(fields: Iterable[Any]) -> str:
    """One CSV record without its line terminator (minimal quoting)."""
    buf = io.StringIO()
    # \r and \n are both in the terminator, so any field holding either is quoted.
    csv.writer(buf, lineterminator=_CSV_TERMINATOR).writerow(list(fields))
    return buf.getvalue()[: -len(_CSV_TERMINATOR)]


def _csv_status(exam: Exam, question: Question, submitted: Any, lang: str) -> QuestionStatus:
    if submitted is None or resolve(submitted, lang) == NOT_AVAILABLE:
        return QuestionStatus.NOT_ANSWERED
    if not (exam.scoring_enabled and question.has_answer_key):
        return QuestionStatus.NOT_SCORED
    if answers_match(resolve(question.answer_key, lang), resolve(submitted, lang)):
        return QuestionStatus.CORRECT
    return QuestionStatus.INCORRECT


def _ensure_result(exam: Exam, answers: Mapping[str, Any], result: ScoreResult | None) -> ScoreResult:
    return result if result is not None else score_attempt(exam, answers)


def build_json_report(
    exam: Exam,
    answers: Mapping[str, Any],
    result: ScoreResult | None,
    duration_ms: int,
    now: datetime | None = None,
) -> dict:
    """Exam document annotated with the learner's answers and a result summary."""
    result = _ensure_result(exam, answers, result)
    payload = copy.deepcopy(exam.to_dict())
    for question, q in zip(payload["questions"], exam.questions):
        submitted = answers.get(q.key)
        question["userProvidedAnswer"] = copy.deepcopy(submitted) if submitted is not None else None
    payload["resultSummary"] = {
        "examDate": iso_timestamp(now),
        "durationFormatted": format_duration(duration_ms),
        "durationMs": duration_ms,
        "score": result.label,
    }
    return payload


def to_json(
    exam: Exam,
    answers: Mapping[str, Any],
    result: ScoreResult | None,
    duration_ms: int,
    now: datetime | None = None,
) -> str:
    return dump_json(build_json_report(exam, answers, result, duration_ms, now), indent=2)


def csv_rows(
    exam: Exam,
    answers: Mapping[str, Any],
    result: ScoreResult | None,
    duration_ms: int,
    now: datetime | None = None,
) -> list[list[Any]]:
    """Rows of the CSV report before escaping.

    Every cell, including the per-question status, is resolved against the
    primary language only; the Score row comes from ``result``.
    """
    result = _ensure_result(exam, answers, result)
    lang = exam.primary_language
    rows: list[list[Any]] = [
        ["Exam Title", exam.title],
        ["Exam Date", iso_timestamp(now)],
        ["Duration", format_duration(duration_ms)],
        ["Score", result.label],
        [],
        list(CSV_HEADER),
    ]
    for i, q in enumerate(exam.questions):
        submitted = answers.get(q.key)
        user_answer = resolve(submitted, lang) if submitted is not None else ""
        if exam.scoring_enabled and q.has_answer_key:
            correct_answer = resolve(q.answer_key, lang)
        else:
            correct_answer = NOT_AVAILABLE
        rows.append([
            i + 1,
            resolve(q.question, lang),
            user_answer or QuestionStatus.NOT_ANSWERED.value,
            correct_answer,
            _csv_status(exam, q, submitted, lang).value,
        ])
    return rows


def to_csv(
    exam: Exam,
    answers: Mapping[str, Any],
    result: ScoreResult | None,
    duration_ms: int,
    now: datetime | None = None,
) -> str:
    return "\n".join(csv_line(row) for row in csv_rows(exam, answers, result, duration_ms, now))


def write_export(
    output_dir: str | Path,
    exam: Exam,
    answers: Mapping[str, Any],
    result: ScoreResult | None,
    duration_ms: int,
    fmt: str = "json",
    now: datetime | None = None,
) -> Path:
    """Render a report and write it under ``output_dir``.

    Returns:
        Path of the written file
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format '{fmt}' (expected: {', '.join(EXPORT_FORMATS)})")
    now = _utcnow(now)
    render = to_json if fmt == "json" else to_csv
    content = render(exam, answers, result, duration_ms, now)
    path = Path(output_dir) / export_filename(exam.title, fmt, now)
    write_text_atomic(path, content)
    logger.info("Exported %s results to %s", fmt.upper(), path, extra={"exam_id": exam.id})
    return path
