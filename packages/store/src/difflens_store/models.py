"""Version and review data models.

Decoupled from difflens_core so the store layer can be used on its own:
reviews keep their issues as plain dicts and the store never imports the
analyzer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReviewType(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass(frozen=True)
class VersionRecord:
    """An immutable full-content snapshot of one file.

    ``version`` is gapless per ``file_key`` and starts at 1. Records are only
    ever superseded by newer versions, never edited.
    """

    id: str
    file_key: str
    file_name: str
    version: int
    content: str
    fingerprint: str
    size_bytes: int
    created_at: str  # ISO-8601 UTC timestamp
    user_id: str | None = None

    def summary(self) -> VersionSummary:
        return VersionSummary(
            id=self.id,
            file_key=self.file_key,
            file_name=self.file_name,
            version=self.version,
            fingerprint=self.fingerprint,
            size_bytes=self.size_bytes,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class VersionSummary:
    """Content-light history row; the full blob is fetched separately."""

    id: str
    file_key: str
    file_name: str
    version: int
    fingerprint: str
    size_bytes: int
    created_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_key": self.file_key,
            "file_name": self.file_name,
            "version": self.version,
            "fingerprint": self.fingerprint,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class PutResult:
    """Outcome of BaseVersionStore.put()."""

    created: bool
    version: int
    id: str


@dataclass(frozen=True)
class VersionStats:
    total_versions: int
    first_created: str
    last_modified: str
    current_size: int
    initial_size: int

    def to_dict(self) -> dict:
        return {
            "total_versions": self.total_versions,
            "first_created": self.first_created,
            "last_modified": self.last_modified,
            "current_size": self.current_size,
            "initial_size": self.initial_size,
        }


@dataclass(frozen=True)
class ReviewRecord:
    """One persisted analysis run against a stored file version.

    Created once by the orchestrator (incremental) or the full-review path,
    then never modified.
    """

    file_version_id: str
    file_key: str
    review_type: ReviewType
    lines_reviewed: list[int] = field(default_factory=list)
    issues: list[dict] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    user_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_version_id": self.file_version_id,
            "file_key": self.file_key,
            "review_type": self.review_type.value,
            "lines_reviewed": list(self.lines_reviewed),
            "issues": list(self.issues),
            "metrics": dict(self.metrics),
            "created_at": self.created_at,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewRecord:
        return cls(
            id=d.get("id") or new_id(),
            file_version_id=d.get("file_version_id", ""),
            file_key=d.get("file_key", ""),
            review_type=ReviewType(d.get("review_type", ReviewType.FULL.value)),
            lines_reviewed=list(d.get("lines_reviewed", [])),
            issues=list(d.get("issues", [])),
            metrics=dict(d.get("metrics", {})),
            created_at=d.get("created_at", ""),
            user_id=d.get("user_id"),
        )


COMMENT_TYPES = ("comment", "suggestion", "question", "issue")
COMMENT_STATUSES = ("open", "resolved", "dismissed")


@dataclass(frozen=True)
class CommentRecord:
    """A reviewer note on a file, optionally pinned to a line.

    ``line_number == 0`` is a file-level comment. ``parent_id`` makes the
    comment a reply; ``review_id`` and ``issue_id`` tie it to a stored
    review and one of its findings.
    """

    file_key: str
    content: str
    file_name: str = ""
    line_number: int = 0
    type: str = "comment"
    status: str = "open"
    review_id: str | None = None
    issue_id: str | None = None
    parent_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    user_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_key": self.file_key,
            "file_name": self.file_name,
            "line_number": self.line_number,
            "content": self.content,
            "type": self.type,
            "status": self.status,
            "review_id": self.review_id,
            "issue_id": self.issue_id,
            "parent_id": self.parent_id,
            "created_at": self.created_at,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CommentRecord:
        return cls(
            id=d.get("id") or new_id(),
            file_key=d.get("file_key", ""),
            file_name=d.get("file_name") or "",
            line_number=int(d.get("line_number") or 0),
            content=d.get("content", ""),
            type=d.get("type") or "comment",
            status=d.get("status") or "open",
            review_id=d.get("review_id"),
            issue_id=d.get("issue_id"),
            parent_id=d.get("parent_id"),
            created_at=d.get("created_at", ""),
            user_id=d.get("user_id"),
        )
