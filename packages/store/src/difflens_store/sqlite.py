"""SQLite stores: local file-based persistence for versions and reviews.

The UNIQUE(file_key, version) index guards version numbering at the storage
level: a second writer on the same file (another process, another
connection) gets an IntegrityError instead of a duplicate version. Versions
and reviews may share one database file; each store opens its own connection.

Schema:
  versions: one row per stored snapshot, full content inline.
  reviews: one row per analysis run; issues, metrics and reviewed lines are
    JSON columns.
  comments: reviewer notes and replies, threaded through parent_id.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from difflens_store.base import BaseReviewStore, BaseVersionStore
from difflens_store.errors import ConcurrencyConflictError, StorageError
from difflens_store.models import CommentRecord, ReviewRecord, ReviewType, VersionRecord, VersionSummary

logger = logging.getLogger(__name__)

_VERSIONS_SCHEMA = """
CREATE TABLE IF NOT EXISTS versions (
    id           TEXT PRIMARY KEY,
    file_key     TEXT NOT NULL,
    file_name    TEXT,
    version      INTEGER NOT NULL,
    content      TEXT NOT NULL,
    fingerprint  TEXT NOT NULL,
    size_bytes   INTEGER DEFAULT 0,
    created_at   TEXT,
    user_id      TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_versions_key_version ON versions (file_key, version);
"""

_REVIEWS_SCHEMA = """
CREATE TABLE IF NOT EXISTS reviews (
    id               TEXT PRIMARY KEY,
    file_version_id  TEXT NOT NULL,
    file_key         TEXT NOT NULL,
    review_type      TEXT NOT NULL,
    lines_json       TEXT DEFAULT '[]',
    issues_json      TEXT DEFAULT '[]',
    metrics_json     TEXT DEFAULT '{}',
    created_at       TEXT,
    user_id          TEXT
);
CREATE INDEX IF NOT EXISTS idx_reviews_key ON reviews (file_key);

CREATE TABLE IF NOT EXISTS comments (
    id           TEXT PRIMARY KEY,
    file_key     TEXT NOT NULL,
    file_name    TEXT,
    line_number  INTEGER DEFAULT 0,
    content      TEXT NOT NULL,
    type         TEXT DEFAULT 'comment',
    status       TEXT DEFAULT 'open',
    review_id    TEXT,
    issue_id     TEXT,
    parent_id    TEXT,
    created_at   TEXT,
    user_id      TEXT
);
CREATE INDEX IF NOT EXISTS idx_comments_key ON comments (file_key);
"""

_SUMMARY_COLUMNS = "id, file_key, file_name, version, fingerprint, size_bytes, created_at"


class _SQLiteConnection:
    """A single connection shared between threads behind a lock."""

    def __init__(self, db_path: str, schema: str):
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(schema)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not open SQLite store: {e}", {"path": db_path}) from e
        self._lock = threading.Lock()

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"SQLite read failed: {e}") from e

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"SQLite read failed: {e}") from e

    def write(self, sql: str, params: tuple) -> None:
        """Execute one write in its own transaction; IntegrityError propagates."""
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(sql, params)
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                raise StorageError(f"SQLite write failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class SQLiteVersionStore(BaseVersionStore):
    """Stores version history in a local SQLite database file.

    Defaults to `.difflens.db` in the current directory; configure with
    `store_path` in .difflens.yml.
    """

    def __init__(self, db_path: str = ".difflens.db"):
        super().__init__()
        self._db = _SQLiteConnection(db_path, _VERSIONS_SCHEMA)

    def _latest(self, file_key: str) -> VersionRecord | None:
        row = self._db.fetchone(
            "SELECT * FROM versions WHERE file_key=? ORDER BY version DESC LIMIT 1",
            (file_key,),
        )
        return self._row_to_record(row) if row else None

    def _insert(self, record: VersionRecord) -> None:
        try:
            self._db.write(
                """
                INSERT INTO versions
                  (id, file_key, file_name, version, content, fingerprint, size_bytes, created_at, user_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.file_key,
                    record.file_name,
                    record.version,
                    record.content,
                    record.fingerprint,
                    record.size_bytes,
                    record.created_at,
                    record.user_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ConcurrencyConflictError(
                "Version slot already taken",
                {"file_key": record.file_key, "version": str(record.version)},
            ) from e

    def _delete(self, record: VersionRecord) -> None:
        self._db.write("DELETE FROM versions WHERE id=?", (record.id,))

    def _get(self, file_key: str, version: int) -> VersionRecord | None:
        row = self._db.fetchone("SELECT * FROM versions WHERE file_key=? AND version=?", (file_key, version))
        return self._row_to_record(row) if row else None

    def _get_by_id(self, version_id: str) -> VersionRecord | None:
        row = self._db.fetchone("SELECT * FROM versions WHERE id=?", (version_id,))
        return self._row_to_record(row) if row else None

    def _previous(self, file_key: str, version: int) -> VersionRecord | None:
        row = self._db.fetchone(
            "SELECT * FROM versions WHERE file_key=? AND version<? ORDER BY version DESC LIMIT 1",
            (file_key, version),
        )
        return self._row_to_record(row) if row else None

    def _history(self, file_key: str) -> list[VersionSummary]:
        rows = self._db.fetchall(
            f"SELECT {_SUMMARY_COLUMNS} FROM versions WHERE file_key=? ORDER BY version DESC",
            (file_key,),
        )
        return [
            VersionSummary(
                id=r["id"],
                file_key=r["file_key"],
                file_name=r["file_name"] or "",
                version=r["version"],
                fingerprint=r["fingerprint"],
                size_bytes=r["size_bytes"],
                created_at=r["created_at"] or "",
            )
            for r in rows
        ]

    def close(self) -> None:
        self._db.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> VersionRecord:
        return VersionRecord(
            id=row["id"],
            file_key=row["file_key"],
            file_name=row["file_name"] or "",
            version=row["version"],
            content=row["content"],
            fingerprint=row["fingerprint"],
            size_bytes=row["size_bytes"],
            created_at=row["created_at"] or "",
            user_id=row["user_id"],
        )


class SQLiteReviewStore(BaseReviewStore):
    """Stores review records in the same SQLite file as the versions."""

    def __init__(self, db_path: str = ".difflens.db"):
        self._db = _SQLiteConnection(db_path, _REVIEWS_SCHEMA)

    def save(self, record: ReviewRecord) -> None:
        try:
            self._db.write(
                """
                INSERT INTO reviews
                  (id, file_version_id, file_key, review_type, lines_json,
                   issues_json, metrics_json, created_at, user_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.file_version_id,
                    record.file_key,
                    record.review_type.value,
                    json.dumps(list(record.lines_reviewed)),
                    json.dumps(record.issues),
                    json.dumps(record.metrics),
                    record.created_at,
                    record.user_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise StorageError(f"Review {record.id} already exists") from e

    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        if review_type is not None:
            rows = self._db.fetchall(
                "SELECT * FROM reviews WHERE file_key=? AND review_type=? ORDER BY created_at",
                (file_key, review_type.value),
            )
        else:
            rows = self._db.fetchall(
                "SELECT * FROM reviews WHERE file_key=? ORDER BY created_at",
                (file_key,),
            )
        return [self._row_to_record(r) for r in rows]

    def save_comment(self, comment: CommentRecord) -> None:
        try:
            self._db.write(
                """
                INSERT INTO comments
                  (id, file_key, file_name, line_number, content, type, status,
                   review_id, issue_id, parent_id, created_at, user_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    comment.id,
                    comment.file_key,
                    comment.file_name,
                    comment.line_number,
                    comment.content,
                    comment.type,
                    comment.status,
                    comment.review_id,
                    comment.issue_id,
                    comment.parent_id,
                    comment.created_at,
                    comment.user_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise StorageError(f"Comment {comment.id} already exists") from e

    def list_comments(self, file_key: str) -> list[CommentRecord]:
        rows = self._db.fetchall("SELECT * FROM comments WHERE file_key=? ORDER BY created_at, rowid", (file_key,))
        return [CommentRecord.from_dict(dict(r)) for r in rows]

    def close(self) -> None:
        self._db.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ReviewRecord:
        return ReviewRecord(
            id=row["id"],
            file_version_id=row["file_version_id"],
            file_key=row["file_key"],
            review_type=ReviewType(row["review_type"]),
            lines_reviewed=json.loads(row["lines_json"] or "[]"),
            issues=json.loads(row["issues_json"] or "[]"),
            metrics=json.loads(row["metrics_json"] or "{}"),
            created_at=row["created_at"] or "",
            user_id=row["user_id"],
        )
