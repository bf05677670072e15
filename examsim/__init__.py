"""examsim package.

Validation, scoring and result export for uploaded JSON exams.
"""

from .analysis import QuestionStatus, ScoreResult, format_duration, score_attempt
from .config import AppConfig, default_app_config
from .data import NOT_AVAILABLE, Exam, Question, load_exam, parse_exam, resolve
from .export import export_filename, to_csv, to_json
from .store import ExamLibrary, FileBlobStore, MemoryBlobStore, StorageError
from .utils import setup_logging
from .utils.validation import (
    BusinessRuleError,
    ExamParseError,
    StructuralValidationError,
    ValidationResult,
    validate_exam,
)

__all__ = [
    "__version__",
    "AppConfig",
    "default_app_config",
    "NOT_AVAILABLE",
    "Exam",
    "Question",
    "load_exam",
    "parse_exam",
    "resolve",
    "validate_exam",
    "ValidationResult",
    "ExamParseError",
    "StructuralValidationError",
    "BusinessRuleError",
    "QuestionStatus",
    "ScoreResult",
    "score_attempt",
    "format_duration",
    "to_json",
    "to_csv",
    "export_filename",
    "ExamLibrary",
    "FileBlobStore",
    "MemoryBlobStore",
    "StorageError",
    "setup_logging",
]

__version__ = "0.1.0"
