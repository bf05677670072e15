"""Loading exam documents from text and files."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from .schemas import Exam
from ..utils.validation import parse_exam_json, validate_exam


def parse_exam(text: Union[str, bytes]) -> Exam:
    """Parse and fully validate an exam document.

    Args:
        text: Raw upload contents (UTF-8)

    Returns:
        The validated Exam (without an app-assigned id)

    Raises:
        ExamParseError: If the text is not valid JSON
        StructuralValidationError: If the document doesn't match the schema
        BusinessRuleError: If a question breaks a semantic rule
    """
    return validate_exam(parse_exam_json(text)).raise_for_errors()


def load_exam(path: Union[str, Path]) -> Exam:
    """Load an exam from a ``.json`` file on disk."""
    filepath = Path(path).resolve()
    if not filepath.exists():
        raise FileNotFoundError(f"Exam file not found: {filepath}")
    if not filepath.is_file():
        raise ValueError(f"Path is not a file: {filepath}")
    return parse_exam(filepath.read_bytes())
