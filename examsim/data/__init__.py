"""Data handling modules for examsim."""

from .langtext import NOT_AVAILABLE, resolve
from .schemas import Attempt, Exam, LanguageSettings, Question, User
from .loader import load_exam, parse_exam

__all__ = [
    "NOT_AVAILABLE",
    "resolve",
    "Attempt",
    "Exam",
    "LanguageSettings",
    "Question",
    "User",
    "load_exam",
    "parse_exam",
]
