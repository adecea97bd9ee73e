"""Abstract store interfaces.

Backends (memory, SQLite, Gist) implement these interfaces. difflens_core and
the CLI depend on the base classes, not on a concrete backend, so storage is
swappable without touching analysis code.

BaseVersionStore uses the Template Method pattern: the dedup-and-increment
algorithm in put() is defined once here, and backends only implement the raw
reads and the conditional insert.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from difflens_store.errors import ConcurrencyConflictError, NotFoundError
from difflens_store.fingerprint import fingerprint, size_bytes
from difflens_store.models import PutResult, VersionRecord, VersionStats, new_id, utc_now

if TYPE_CHECKING:
    from difflens_store.models import CommentRecord, ReviewRecord, ReviewType, VersionSummary

logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One mutex per file key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class BaseVersionStore(ABC):
    """Immutable, deduplicated version history per file key."""

    # put() retries a conflicting insert this many times with a fresh latest read.
    CONFLICT_RETRIES: int = 1

    def __init__(self):
        self._key_locks = _KeyedLocks()

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def put(self, file_key: str, content: str, file_name: str = "", user_id: str | None = None) -> PutResult:
        """Store ``content`` as a new version unless it matches the latest one.

        Serialized per file key within the process; backends that can be
        shared across processes raise ConcurrencyConflictError when another
        writer took the version slot, which is retried once here.
        """
        digest = fingerprint(content)
        size = size_bytes(content)

        with self._key_locks.get(file_key):
            for attempt in range(self.CONFLICT_RETRIES + 1):
                latest = self._latest(file_key)
                if latest is not None and latest.fingerprint == digest:
                    return PutResult(created=False, version=latest.version, id=latest.id)

                record = VersionRecord(
                    id=new_id(),
                    file_key=file_key,
                    file_name=file_name or (latest.file_name if latest else file_key.rsplit("/", 1)[-1]),
                    version=(latest.version if latest else 0) + 1,
                    content=content,
                    fingerprint=digest,
                    size_bytes=size,
                    created_at=utc_now(),
                    user_id=user_id,
                )
                try:
                    self._insert(record)
                except ConcurrencyConflictError:
                    if attempt == self.CONFLICT_RETRIES:
                        raise
                    logger.warning(
                        "Version %d of %s was taken by another writer; retrying with a fresh read",
                        record.version,
                        file_key,
                    )
                    continue

                logger.debug("Stored %s version %d (%d bytes)", file_key, record.version, size)
                return PutResult(created=True, version=record.version, id=record.id)

        raise AssertionError("unreachable")  # pragma: no cover

    def discard(self, file_key: str, result: PutResult) -> bool:
        """Undo a put() whose follow-up write failed.

        Only a version that put() just created and that is still the latest
        is removed, so numbering stays gapless. Returns True when removed.
        """
        if not result.created:
            return False
        with self._key_locks.get(file_key):
            latest = self._latest(file_key)
            if latest is None or latest.id != result.id:
                logger.warning("Cannot discard %s version %d: no longer the latest", file_key, result.version)
                return False
            self._delete(latest)
        logger.info("Discarded %s version %d after a failed write", file_key, result.version)
        return True

    def get(self, file_key: str, version: int) -> VersionRecord:
        record = self._get(file_key, version)
        if record is None:
            raise NotFoundError("Version not found", {"file_key": file_key, "version": str(version)})
        return record

    def get_by_id(self, version_id: str) -> VersionRecord:
        record = self._get_by_id(version_id)
        if record is None:
            raise NotFoundError("Version not found", {"id": version_id})
        return record

    def latest(self, file_key: str) -> VersionRecord:
        record = self._latest(file_key)
        if record is None:
            raise NotFoundError("No stored version", {"file_key": file_key})
        return record

    def find_latest(self, file_key: str) -> VersionRecord | None:
        """Like latest(), but returns None instead of raising."""
        return self._latest(file_key)

    def previous(self, file_key: str, version: int) -> VersionRecord:
        """Return the newest version strictly older than ``version``."""
        record = self._previous(file_key, version)
        if record is None:
            raise NotFoundError("No earlier version", {"file_key": file_key, "version": str(version)})
        return record

    def history(self, file_key: str) -> list[VersionSummary]:
        """Content-light version list, newest first. Empty when unknown."""
        return self._history(file_key)

    def stats(self, file_key: str) -> VersionStats | None:
        rows = self._history(file_key)
        if not rows:
            return None
        newest, oldest = rows[0], rows[-1]
        return VersionStats(
            total_versions=len(rows),
            first_created=oldest.created_at,
            last_modified=newest.created_at,
            current_size=newest.size_bytes,
            initial_size=oldest.size_bytes,
        )

    def has_changed(self, file_key: str, content: str) -> bool:
        latest = self._latest(file_key)
        return latest is None or latest.fingerprint != fingerprint(content)

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""

    # ------------------------------------------------------------------ #
    # Abstract: implement in each backend                                  #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _latest(self, file_key: str) -> VersionRecord | None:
        """Return the highest-numbered version for ``file_key`` or None."""

    @abstractmethod
    def _insert(self, record: VersionRecord) -> None:
        """Persist ``record`` atomically.

        Must raise ConcurrencyConflictError if (file_key, version) already
        exists, and StorageError for any other backend failure.
        """

    @abstractmethod
    def _get(self, file_key: str, version: int) -> VersionRecord | None: ...

    @abstractmethod
    def _get_by_id(self, version_id: str) -> VersionRecord | None: ...

    @abstractmethod
    def _previous(self, file_key: str, version: int) -> VersionRecord | None: ...

    @abstractmethod
    def _history(self, file_key: str) -> list[VersionSummary]: ...

    @abstractmethod
    def _delete(self, record: VersionRecord) -> None:
        """Remove ``record``; only called for the latest version of its key."""


class BaseReviewStore(ABC):
    """Pluggable persistence for review records."""

    @abstractmethod
    def save(self, record: ReviewRecord) -> None:
        """Persist a completed review record."""

    @abstractmethod
    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        """Return reviews for a file key, oldest first, optionally by type.

        Returns an empty list if no reviews exist; never raises for a
        missing key.
        """

    @abstractmethod
    def save_comment(self, comment: CommentRecord) -> None:
        """Persist a review comment or reply."""

    @abstractmethod
    def list_comments(self, file_key: str) -> list[CommentRecord]:
        """Return every comment and reply on a file key, oldest first."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional; subclasses that need cleanup should override this.
        """
