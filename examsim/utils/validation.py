"""Schema validation for uploaded exam documents.

Validation runs in two passes. The structural pass walks the whole document
and collects every violation it can detect, so an uploader can fix a file in
one go. The business-rule pass only runs on structurally sound documents and
checks semantic rules that the shape alone cannot express.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..data.langtext import LANG_CODE_PATTERN, is_language_code
from ..data.schemas import EXAM_FIELDS, QUESTION_FIELDS, QUESTION_TYPES, Exam, question_key
from .logging import log_performance

logger = logging.getLogger(__name__)

ROOT_PATH = "(root)"


@dataclass(frozen=True)
class SchemaIssue:
    """A single structural problem, located by a dot/bracket path."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class RuleViolation:
    """A business-rule failure tied to one question."""
    question_index: int
    question_excerpt: str
    message: str

    def __str__(self) -> str:
        return self.message


class ValidationError(Exception):
    """Base exception for validation errors."""
    pass


class ExamParseError(ValidationError):
    """Raised when the uploaded bytes are not valid JSON."""
    pass


class StructuralValidationError(ValidationError):
    """Raised when a document doesn't match the exam schema."""
    def __init__(self, message: str, issues: Optional[List[SchemaIssue]] = None):
        super().__init__(message)
        self.issues = issues or []

    def __str__(self) -> str:
        lines = [super().__str__()]
        lines.extend(f"  {issue}" for issue in self.issues)
        return "\n".join(lines)


class BusinessRuleError(ValidationError):
    """Raised when a structurally valid document breaks a semantic rule."""
    def __init__(self, violation: RuleViolation):
        super().__init__(violation.message)
        self.violation = violation


@dataclass
class ValidationResult:
    exam: Optional[Exam] = None
    errors: List[SchemaIssue] = field(default_factory=list)
    business_error: Optional[RuleViolation] = None

    @property
    def ok(self) -> bool:
        return self.exam is not None and not self.errors and self.business_error is None

    def raise_for_errors(self) -> Exam:
        """Return the exam, or raise the error that made validation fail."""
        if self.errors:
            raise StructuralValidationError(
                f"Exam validation failed with {len(self.errors)} errors",
                issues=self.errors,
            )
        if self.business_error is not None:
            raise BusinessRuleError(self.business_error)
        assert self.exam is not None
        return self.exam


def _child(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _item(path: str, index: int) -> str:
    return f"{path}[{index}]"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ExamSchemaValidator:
    """Structural validator for exam documents.

    The exam schema is open: unknown properties are accepted at every level
    unless ``allow_extra_fields`` is turned off.
    """

    def __init__(self, allow_extra_fields: bool = True):
        self.allow_extra_fields = allow_extra_fields

    def validate_document(self, raw: Any) -> List[SchemaIssue]:
        """Validate a parsed JSON value against the exam schema.

        Args:
            raw: Untrusted parsed JSON

        Returns:
            List of issues (empty if valid)
        """
        errors: List[SchemaIssue] = []

        if not isinstance(raw, Mapping):
            errors.append(SchemaIssue(ROOT_PATH, "must be an object"))
            return errors

        if "id" in raw and raw["id"] is not None and not isinstance(raw["id"], str):
            errors.append(SchemaIssue("id", "must be a string"))

        self._check_required_string(raw, "title", "", errors)

        if "language" in raw and raw["language"] is not None:
            self._check_language(raw["language"], "language", errors)

        for key in ("includeAnswerKey", "isPublic"):
            if key in raw and raw[key] is not None and not isinstance(raw[key], bool):
                errors.append(SchemaIssue(key, "must be a boolean"))

        if "userId" in raw and raw["userId"] is not None and not isinstance(raw["userId"], str):
            errors.append(SchemaIssue("userId", "must be a string"))

        if "questions" not in raw:
            errors.append(SchemaIssue("questions", "is required"))
        elif not isinstance(raw["questions"], list):
            errors.append(SchemaIssue("questions", "must be a list"))
        elif not raw["questions"]:
            errors.append(SchemaIssue("questions", "must contain at least 1 question"))
        else:
            seen: Dict[str, int] = {}
            for i, question in enumerate(raw["questions"]):
                path = _item("questions", i)
                self._check_question(question, path, errors)
                if isinstance(question, Mapping) and self._valid_id(question.get("id")):
                    key = question_key(question["id"])
                    if key in seen:
                        errors.append(SchemaIssue(
                            _child(path, "id"),
                            f"duplicate question id '{key}' (already used by questions[{seen[key]}])",
                        ))
                    else:
                        seen[key] = i

        if not self.allow_extra_fields:
            self._check_extra(raw, EXAM_FIELDS, "", errors)

        return errors

    def _check_required_string(
        self, obj: Mapping, key: str, path: str, errors: List[SchemaIssue]
    ) -> None:
        p = _child(path, key)
        if key not in obj:
            errors.append(SchemaIssue(p, "is required"))
        elif not isinstance(obj[key], str):
            errors.append(SchemaIssue(p, "must be a string"))
        elif not obj[key]:
            errors.append(SchemaIssue(p, "must not be empty"))

    def _check_language(self, value: Any, path: str, errors: List[SchemaIssue]) -> None:
        if not isinstance(value, Mapping):
            errors.append(SchemaIssue(path, "must be an object"))
            return
        self._check_required_string(value, "primary", path, errors)
        secondary = value.get("secondary")
        if secondary is not None:
            if not isinstance(secondary, str):
                errors.append(SchemaIssue(_child(path, "secondary"), "must be a string"))
            elif not secondary:
                errors.append(SchemaIssue(_child(path, "secondary"), "must not be empty"))

    @staticmethod
    def _valid_id(value: Any) -> bool:
        return (isinstance(value, str) and len(value) >= 1) or _is_number(value)

    def _check_question(self, question: Any, path: str, errors: List[SchemaIssue]) -> None:
        if not isinstance(question, Mapping):
            errors.append(SchemaIssue(path, "must be an object"))
            return

        if "id" not in question:
            errors.append(SchemaIssue(_child(path, "id"), "is required"))
        elif not self._valid_id(question["id"]):
            errors.append(SchemaIssue(_child(path, "id"), "must be a non-empty string or a number"))

        if "type" not in question:
            errors.append(SchemaIssue(_child(path, "type"), "is required"))
        elif question["type"] not in QUESTION_TYPES:
            errors.append(SchemaIssue(
                _child(path, "type"), f"must be one of: {', '.join(QUESTION_TYPES)}"
            ))

        if "question" not in question:
            errors.append(SchemaIssue(_child(path, "question"), "is required"))
        else:
            self._check_langtext(question["question"], _child(path, "question"), errors)

        domain = question.get("domain")
        if domain is not None and not isinstance(domain, str):
            errors.append(SchemaIssue(_child(path, "domain"), "must be a string or null"))

        options = question.get("options")
        if options is not None:
            self._check_options(options, _child(path, "options"), errors)

        answer_key = question.get("answerKey")
        if answer_key is not None:
            self._check_option_value(answer_key, _child(path, "answerKey"), errors)

        explanation = question.get("explanation")
        if explanation is not None:
            self._check_langtext(explanation, _child(path, "explanation"), errors)

        if not self.allow_extra_fields:
            self._check_extra(question, QUESTION_FIELDS, path, errors)

    def _check_langtext(self, value: Any, path: str, errors: List[SchemaIssue]) -> None:
        # Plain strings may be empty (translation not filled in yet).
        if isinstance(value, str):
            return
        if not isinstance(value, Mapping):
            errors.append(SchemaIssue(path, "must be a string or a language map"))
            return
        if not value:
            errors.append(SchemaIssue(path, "must have at least 1 language"))
            return
        for lang, text in value.items():
            if not is_language_code(lang):
                errors.append(SchemaIssue(
                    _child(path, str(lang)),
                    f"invalid language code (expected {LANG_CODE_PATTERN})",
                ))
            elif not isinstance(text, str):
                errors.append(SchemaIssue(_child(path, lang), "must be a string"))

    def _check_option_value(self, value: Any, path: str, errors: List[SchemaIssue]) -> None:
        if isinstance(value, str):
            if not value:
                errors.append(SchemaIssue(path, "must not be empty"))
            return
        self._check_langtext(value, path, errors)

    def _check_options(self, value: Any, path: str, errors: List[SchemaIssue]) -> None:
        # Emptiness is left to the business-rule pass.
        if isinstance(value, list):
            for i, option in enumerate(value):
                self._check_option_value(option, _item(path, i), errors)
            return
        if isinstance(value, Mapping):
            for lang, items in value.items():
                p = _child(path, str(lang))
                if not is_language_code(lang):
                    errors.append(SchemaIssue(p, f"invalid language code (expected {LANG_CODE_PATTERN})"))
                    continue
                if not isinstance(items, list):
                    errors.append(SchemaIssue(p, "must be a list of strings"))
                    continue
                for i, item in enumerate(items):
                    if not isinstance(item, str):
                        errors.append(SchemaIssue(_item(p, i), "must be a string"))
                    elif not item:
                        errors.append(SchemaIssue(_item(p, i), "must not be empty"))
            return
        errors.append(SchemaIssue(
            path, "must be a list of options, a map of language code to option lists, or null"
        ))

    def _check_extra(
        self, obj: Mapping, known: tuple, path: str, errors: List[SchemaIssue]
    ) -> None:
        extra = [k for k in obj.keys() if k not in known]
        if extra:
            errors.append(SchemaIssue(path or ROOT_PATH, f"unexpected fields: {', '.join(map(str, extra))}"))


def question_excerpt(question: Any, index: int) -> str:
    """First readable text of a question, or a positional placeholder."""
    placeholder = f"Question {index + 1}"
    if isinstance(question, str):
        return question or placeholder
    if isinstance(question, Mapping) and question:
        first = next(iter(question.values()))
        if isinstance(first, str) and first:
            return first
    return placeholder


def _has_options(options: Any) -> bool:
    if isinstance(options, list):
        return len(options) > 0
    if isinstance(options, Mapping):
        return len(options) > 0 and all(
            isinstance(items, list) and len(items) > 0 for items in options.values()
        )
    return False


def check_business_rules(exam: Exam, stop_at_first: bool = False) -> List[RuleViolation]:
    """Semantic checks on a structurally valid exam.

    Args:
        exam: Exam built from a document that passed the structural pass
        stop_at_first: Return as soon as one violation is found

    Returns:
        Violations in question order
    """
    violations: List[RuleViolation] = []
    for i, q in enumerate(exam.questions):
        if q.is_multiple_choice and not _has_options(q.options):
            excerpt = question_excerpt(q.question, i)
            violations.append(RuleViolation(
                question_index=i,
                question_excerpt=excerpt,
                message=(
                    f'Question "{excerpt}" (at index {i}) is multiple-choice '
                    "but has no options or empty options."
                ),
            ))
            if stop_at_first:
                break
    return violations


@log_performance(logger)
def validate_exam(raw: Any, validator: Optional[ExamSchemaValidator] = None) -> ValidationResult:
    """Validate an untrusted parsed JSON value as an exam document.

    Structural issues are all collected; the business-rule pass stops at the
    first offending question.
    """
    validator = validator or ExamSchemaValidator()
    issues = validator.validate_document(raw)
    if issues:
        logger.debug("Exam failed structural validation with %d issues", len(issues))
        return ValidationResult(errors=issues)

    exam = Exam.from_dict(raw)
    violations = check_business_rules(exam, stop_at_first=True)
    if violations:
        logger.debug("Exam failed business rules at question %d", violations[0].question_index)
        return ValidationResult(business_error=violations[0])

    return ValidationResult(exam=exam)


def _reject_constant(name: str) -> Any:
    raise ExamParseError(f"Invalid JSON: {name} is not a valid JSON value")


def parse_exam_json(text: Union[str, bytes]) -> Any:
    """Parse upload bytes, turning decoder failures into ExamParseError."""
    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8-sig")
        return json.loads(text, parse_constant=_reject_constant)
    except UnicodeDecodeError as e:
        raise ExamParseError(f"File is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ExamParseError(f"Invalid JSON: {e}") from e


def validate_exam_file(filepath: Union[str, Path]) -> ValidationResult:
    """Read, parse and validate an exam file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ExamParseError: If file contains invalid JSON
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Exam file not found: {filepath}")

    result = validate_exam(parse_exam_json(filepath.read_bytes()))
    if result.ok:
        logger.info(f"Exam validation passed: {filepath}")
    return result
