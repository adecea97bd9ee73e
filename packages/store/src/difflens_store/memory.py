"""In-process stores: the default for tests and one-shot CLI runs."""

from __future__ import annotations

import threading

from difflens_store.base import BaseReviewStore, BaseVersionStore
from difflens_store.errors import ConcurrencyConflictError
from difflens_store.models import CommentRecord, ReviewRecord, ReviewType, VersionRecord, VersionSummary


class MemoryVersionStore(BaseVersionStore):
    """Keeps every version in a dict of per-file lists, ordered by version."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._by_key: dict[str, list[VersionRecord]] = {}
        self._by_id: dict[str, VersionRecord] = {}

    def _latest(self, file_key: str) -> VersionRecord | None:
        with self._lock:
            versions = self._by_key.get(file_key)
            return versions[-1] if versions else None

    def _insert(self, record: VersionRecord) -> None:
        with self._lock:
            versions = self._by_key.setdefault(record.file_key, [])
            expected = (versions[-1].version if versions else 0) + 1
            if record.version != expected:
                raise ConcurrencyConflictError(
                    "Version slot already taken",
                    {"file_key": record.file_key, "version": str(record.version)},
                )
            versions.append(record)
            self._by_id[record.id] = record

    def _delete(self, record: VersionRecord) -> None:
        with self._lock:
            versions = self._by_key.get(record.file_key, [])
            if versions and versions[-1].id == record.id:
                versions.pop()
            self._by_id.pop(record.id, None)

    def _get(self, file_key: str, version: int) -> VersionRecord | None:
        with self._lock:
            for record in self._by_key.get(file_key, []):
                if record.version == version:
                    return record
        return None

    def _get_by_id(self, version_id: str) -> VersionRecord | None:
        with self._lock:
            return self._by_id.get(version_id)

    def _previous(self, file_key: str, version: int) -> VersionRecord | None:
        with self._lock:
            older = [r for r in self._by_key.get(file_key, []) if r.version < version]
        return older[-1] if older else None

    def _history(self, file_key: str) -> list[VersionSummary]:
        with self._lock:
            versions = list(self._by_key.get(file_key, []))
        return [r.summary() for r in reversed(versions)]


class MemoryReviewStore(BaseReviewStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._records: list[ReviewRecord] = []
        self._comments: list[CommentRecord] = []

    def save(self, record: ReviewRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        with self._lock:
            results = [r for r in self._records if r.file_key == file_key]
        if review_type is not None:
            results = [r for r in results if r.review_type == review_type]
        return results

    def save_comment(self, comment: CommentRecord) -> None:
        with self._lock:
            self._comments.append(comment)

    def list_comments(self, file_key: str) -> list[CommentRecord]:
        with self._lock:
            return [c for c in self._comments if c.file_key == file_key]
