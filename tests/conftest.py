from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from examsim.utils.logging import reset_logging  # noqa: E402


# ====================
# Exam document fixtures
# ====================

TWO_QUESTION_EXAM: Dict[str, Any] = {
    "title": "T",
    "includeAnswerKey": True,
    "questions": [
        {"id": "1", "type": "open-ended", "question": "Q1", "answerKey": "42"},
        {
            "id": "2",
            "type": "multiple-choice",
            "question": "Q2",
            "options": ["a", "b"],
            "answerKey": "a",
        },
    ],
}

MULTILINGUAL_EXAM: Dict[str, Any] = {
    "title": "Capitals / Capitales",
    "language": {"primary": "en", "secondary": "es"},
    "includeAnswerKey": True,
    "author": "geo-team",
    "questions": [
        {
            "id": 1,
            "type": "multiple-choice",
            "domain": "Europe",
            "question": {"en": "Capital of France?", "es": "¿Capital de Francia?"},
            "options": [
                {"en": "Paris", "es": "París"},
                {"en": "Lyon", "es": "Lyon"},
            ],
            "answerKey": {"en": "Paris", "es": "París"},
            "explanation": {"en": "Paris is the capital.", "es": "París es la capital."},
            "difficulty": "easy",
        },
        {
            "id": 2,
            "type": "multiple-choice",
            "domain": "Europe",
            "question": {"en": "Capital of Spain?", "es": "¿Capital de España?"},
            "options": {"en": ["Madrid", "Seville"], "es": ["Madrid", "Sevilla"]},
            "answerKey": "Madrid",
        },
        {
            "id": 3,
            "type": "open-ended",
            "domain": None,
            "question": {"en": "Name any ocean.", "es": "Nombra un océano."},
        },
    ],
}


@pytest.fixture
def two_question_exam() -> Dict[str, Any]:
    return copy.deepcopy(TWO_QUESTION_EXAM)


@pytest.fixture
def multilingual_exam() -> Dict[str, Any]:
    return copy.deepcopy(MULTILINGUAL_EXAM)


@pytest.fixture
def write_json(tmp_path: Path):
    """Write a payload as JSON under tmp_path and return the path."""
    def _write(name: str, payload: Any) -> Path:
        p = tmp_path / name
        p.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        return p
    return _write


@pytest.fixture
def cli_config(tmp_path: Path, write_json) -> Path:
    """Config that keeps CLI logs, storage and exports inside tmp_path."""
    return write_json("config.json", {
        "logging": {"level": "INFO", "log_dir": str(tmp_path / "logs"), "filename": "cli.log"},
        "storage": {"data_dir": str(tmp_path / "data")},
        "export": {"output_dir": str(tmp_path / "exports")},
    })


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()
