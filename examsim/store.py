"""Key-value blob storage and the exam library built on top of it.

The library follows a read-whole / write-whole pattern: every mutation reads
the full collection, computes the new list and writes it back. There is no
locking; concurrent writers can lose updates.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from .data.loader import parse_exam
from .data.schemas import Exam, User
from .identifiers import IdFactory
from .utils.io import write_bytes_atomic
from .utils.validation import ExamSchemaValidator

logger = logging.getLogger(__name__)

DEFAULT_EXAMS_KEY = "exams"

_UNSAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


class StorageError(Exception):
    """Raised when a stored blob cannot be read, decoded or written."""
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryBlobStore:
    """In-process store, mainly for tests and one-shot CLI runs."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._blobs: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def set(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)


class FileBlobStore:
    """One file per key under ``root``; writes replace the file atomically."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{_UNSAFE_KEY_RE.sub('_', key)}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read '{key}' from {path}: {e}", key=key) from e

    def set(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        try:
            write_bytes_atomic(path, data)
        except OSError as e:
            raise StorageError(f"Cannot write '{key}' to {path}: {e}", key=key) from e

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot delete '{key}' at {path}: {e}", key=key) from e


def read_json_blob(store: BlobStore, key: str):
    """Fetch and decode a JSON blob; ``None`` when the key is absent.

    Raises:
        StorageError: If the blob can't be read or isn't valid JSON
    """
    data = store.get(key)
    if data is None:
        return None
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageError(f"Stored collection '{key}' is corrupt: {e}", key=key) from e


def write_json_blob(store: BlobStore, key: str, payload) -> None:
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    try:
        store.set(key, data)
    except StorageError:
        raise
    except OSError as e:
        raise StorageError(f"Cannot write '{key}': {e}", key=key) from e


class ExamLibrary:
    """All uploaded exams, persisted as one JSON list under a single key."""

    def __init__(
        self,
        store: BlobStore,
        key: str = DEFAULT_EXAMS_KEY,
        id_factory: Optional[IdFactory] = None,
    ):
        self.store = store
        self.key = key
        self.id_factory = id_factory or IdFactory()
        self.last_error: Optional[StorageError] = None
        self._exams: Optional[List[Exam]] = None
        self._validator = ExamSchemaValidator()

    def _read(self) -> List[Exam]:
        payload = read_json_blob(self.store, self.key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageError(f"Stored collection '{self.key}' is not a list", key=self.key)
        exams = []
        for i, item in enumerate(payload):
            issues = self._validator.validate_document(item)
            if issues:
                raise StorageError(
                    f"Stored exam #{i} in '{self.key}' is corrupt: {issues[0]}", key=self.key
                )
            exam = Exam.from_dict(item)
            if exam.id is not None:
                self.id_factory.observe(exam.id)
            exams.append(exam)
        return exams

    def reload(self) -> List[Exam]:
        """Read the collection from storage, failing open to an empty list."""
        try:
            self._exams = self._read()
            self.last_error = None
        except StorageError as e:
            logger.error("Could not load exams, treating collection as empty: %s", e)
            self.last_error = e
            self._exams = []
        return list(self._exams)

    def list_exams(self) -> List[Exam]:
        if self._exams is None:
            return self.reload()
        return list(self._exams)

    def _write(self, exams: List[Exam]) -> None:
        self._exams = exams
        try:
            write_json_blob(self.store, self.key, [e.to_dict() for e in exams])
        except StorageError:
            logger.error("Writing '%s' failed; reloading from storage", self.key)
            self.reload()
            raise

    def add_exam(
        self,
        exam: Exam,
        owner: Optional[User] = None,
        public: Optional[bool] = None,
    ) -> Exam:
        """Assign a fresh id and append the exam to the stored collection.

        Raises:
            StorageError: If the collection can't be read or written
        """
        exams = self._read()
        stored = replace(
            exam,
            id=self.id_factory(),
            user_id=owner.id if owner else exam.user_id,
            is_public=public if public is not None else exam.is_public,
        )
        self._write(exams + [stored])
        logger.info(
            "Stored exam '%s' with %d questions",
            stored.title,
            len(stored.questions),
            extra={"exam_id": stored.id, "question_count": len(stored.questions)},
        )
        return stored

    def upload(
        self,
        text: Union[str, bytes],
        owner: Optional[User] = None,
        public: Optional[bool] = None,
    ) -> Exam:
        """Parse, validate and store an uploaded exam file.

        Validation failures propagate before storage is touched.
        """
        exam = parse_exam(text)
        return self.add_exam(exam, owner=owner, public=public)

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        for exam in self.list_exams():
            if exam.id == exam_id:
                return exam
        return None

    def delete_exam(self, exam_id: str) -> bool:
        exams = self._read()
        remaining = [e for e in exams if e.id != exam_id]
        if len(remaining) == len(exams):
            return False
        self._write(remaining)
        logger.info("Deleted exam %s", exam_id, extra={"exam_id": exam_id})
        return True

    def public_exams(self) -> List[Exam]:
        return [e for e in self.list_exams() if e.is_public is True]

    def exams_for_user(self, user_id: str) -> List[Exam]:
        return [e for e in self.list_exams() if e.user_id == user_id]
