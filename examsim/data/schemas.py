"""Data schemas for examsim."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .langtext import resolve

LangText = Union[str, Dict[str, str]]
OptionValue = LangText
Options = Union[List[OptionValue], Dict[str, List[str]]]
QuestionId = Union[str, int, float]

MULTIPLE_CHOICE = "multiple-choice"
OPEN_ENDED = "open-ended"
QUESTION_TYPES = (MULTIPLE_CHOICE, OPEN_ENDED)

DEFAULT_LANGUAGE = "en"

# Keys mapped onto typed attributes; everything else rides along in ``extras``.
QUESTION_FIELDS = ("id", "type", "domain", "question", "options", "answerKey", "explanation")
EXAM_FIELDS = ("id", "title", "language", "includeAnswerKey", "questions", "userId", "isPublic")

# Known keys that may be written as an explicit null and must round-trip as such.
QUESTION_NULLABLE = ("domain", "options", "answerKey", "explanation")
EXAM_NULLABLE = ("id", "language", "includeAnswerKey", "userId", "isPublic")


def _put(out: Dict[str, Any], key: str, value: Any, nulls: List[str]) -> None:
    if value is not None:
        out[key] = copy.deepcopy(value)
    elif key in nulls:
        out[key] = None


def question_key(qid: QuestionId) -> str:
    """Stringified question id as used in answer maps (``1.0`` -> ``"1"``)."""
    if isinstance(qid, float) and qid.is_integer():
        return str(int(qid))
    return str(qid)


@dataclass
class Question:
    id: QuestionId
    type: str
    question: LangText
    domain: Optional[str] = None
    options: Optional[Options] = None
    answer_key: Optional[OptionValue] = None
    explanation: Optional[LangText] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    nulls: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return question_key(self.id)

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == MULTIPLE_CHOICE

    @property
    def has_answer_key(self) -> bool:
        return self.answer_key is not None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Question":
        return cls(
            id=payload["id"],
            type=payload["type"],
            question=copy.deepcopy(payload["question"]),
            domain=payload.get("domain"),
            options=copy.deepcopy(payload.get("options")),
            answer_key=copy.deepcopy(payload.get("answerKey")),
            explanation=copy.deepcopy(payload.get("explanation")),
            extras={k: copy.deepcopy(v) for k, v in payload.items() if k not in QUESTION_FIELDS},
            nulls=[k for k in QUESTION_NULLABLE if k in payload and payload[k] is None],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "type": self.type}
        _put(out, "domain", self.domain, self.nulls)
        out["question"] = copy.deepcopy(self.question)
        _put(out, "options", self.options, self.nulls)
        _put(out, "answerKey", self.answer_key, self.nulls)
        _put(out, "explanation", self.explanation, self.nulls)
        out.update(copy.deepcopy(self.extras))
        return out


@dataclass
class LanguageSettings:
    primary: str = DEFAULT_LANGUAGE
    secondary: Optional[str] = None
    nulls: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LanguageSettings":
        return cls(
            primary=payload["primary"],
            secondary=payload.get("secondary"),
            nulls=["secondary"] if "secondary" in payload and payload["secondary"] is None else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"primary": self.primary}
        _put(out, "secondary", self.secondary, self.nulls)
        return out


@dataclass
class Exam:
    """A validated exam document.

    ``id``, ``user_id`` and ``is_public`` are assigned by the library when the
    exam is stored; uploaded files normally carry none of them.
    """

    title: str
    questions: List[Question]
    id: Optional[str] = None
    language: Optional[LanguageSettings] = None
    include_answer_key: Optional[bool] = None
    user_id: Optional[str] = None
    is_public: Optional[bool] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    nulls: List[str] = field(default_factory=list)

    @property
    def primary_language(self) -> str:
        return self.language.primary if self.language else DEFAULT_LANGUAGE

    @property
    def secondary_language(self) -> Optional[str]:
        return self.language.secondary if self.language else None

    @property
    def scoring_enabled(self) -> bool:
        return self.include_answer_key is True

    def question_text(self, question: Question) -> str:
        return resolve(question.question, self.primary_language, self.secondary_language)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Exam":
        """Build an Exam from an already validated document."""
        lang = payload.get("language")
        return cls(
            id=payload.get("id"),
            title=payload["title"],
            language=LanguageSettings.from_dict(lang) if lang else None,
            include_answer_key=payload.get("includeAnswerKey"),
            questions=[Question.from_dict(q) for q in payload["questions"]],
            user_id=payload.get("userId"),
            is_public=payload.get("isPublic"),
            extras={k: copy.deepcopy(v) for k, v in payload.items() if k not in EXAM_FIELDS},
            nulls=[k for k in EXAM_NULLABLE if k in payload and payload[k] is None],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        _put(out, "id", self.id, self.nulls)
        _put(out, "userId", self.user_id, self.nulls)
        out["title"] = self.title
        _put(out, "isPublic", self.is_public, self.nulls)
        _put(out, "language", self.language.to_dict() if self.language else None, self.nulls)
        _put(out, "includeAnswerKey", self.include_answer_key, self.nulls)
        out["questions"] = [q.to_dict() for q in self.questions]
        out.update(copy.deepcopy(self.extras))
        return out


@dataclass
class Attempt:
    """A finished run through an exam; lives only in memory."""

    exam: Exam
    answers: Dict[str, Any]
    duration_ms: int = 0


@dataclass
class User:
    id: str
    username: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "username": self.username}
