"""Blob storage: where the current content of user files lives.

Keys are slash-separated and scoped by owner: ``<user_id>/<folder...>/<name>``.
Uploaded names carry a 13-digit millisecond timestamp prefix
(``1700000000000-app.js``) so re-uploads never collide; clean_file_name()
strips it again for display and file-kind detection.

Two backends:
- LocalBlobStorage: a directory on disk (default, used by tests and the CLI).
- S3BlobStorage: AWS S3 or any S3-compatible service through boto3.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from difflens_store.errors import InvalidInputError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

FOLDER_MARKER = ".foldermarker"

_TIMESTAMP_PREFIX_RE = re.compile(r"^(\d{13}-)+")


@dataclass(frozen=True)
class BlobInfo:
    key: str
    size: int
    modified_at: str  # ISO-8601 UTC timestamp


def build_key(user_id: str, file_name: str, folder: str = "", timestamp_ms: int | None = None) -> str:
    """Build an owner-scoped upload key with a timestamp prefix."""
    if not user_id or not file_name:
        raise InvalidInputError("user_id and file_name are required to build a blob key")
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    folder = folder.strip("/")
    prefix = f"{folder}/" if folder else ""
    return f"{user_id}/{prefix}{stamp}-{file_name}"


def clean_file_name(key: str) -> str:
    """Return the original file name: last key segment minus timestamp prefixes."""
    return _TIMESTAMP_PREFIX_RE.sub("", key.rsplit("/", 1)[-1])


def folder_path(key: str) -> str:
    """Return the folder segments between the owner and the file name."""
    parts = key.split("/")
    if len(parts) > 2:
        return "/".join(parts[1:-1])
    return ""


def scoped_prefix(user_id: str | None, folder: str) -> str:
    """Add the owner scope to ``folder`` unless present; always end with '/'."""
    prefix = folder.strip()
    if user_id and not prefix.startswith(f"{user_id}/") and prefix != user_id:
        prefix = f"{user_id}/{prefix.lstrip('/')}"
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


class BaseBlobStorage(ABC):
    @abstractmethod
    def read_blob(self, key: str) -> bytes:
        """Return the blob's bytes; raise NotFoundError when missing."""

    @abstractmethod
    def write_blob(self, key: str, data: bytes) -> None:
        """Create or overwrite the blob at ``key``."""

    @abstractmethod
    def list_blobs(self, prefix: str) -> list[BlobInfo]:
        """List blobs whose key starts with ``prefix``, recursively."""

    def read_text(self, key: str) -> str:
        data = self.read_blob(key)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInputError("Blob is not UTF-8 text", {"key": key}) from e

    def write_text(self, key: str, content: str) -> None:
        self.write_blob(key, content.encode("utf-8"))


class LocalBlobStorage(BaseBlobStorage):
    """Blobs as files under a root directory; keys map to relative paths."""

    def __init__(self, root: str | Path = ".difflens/blobs"):
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or key.startswith("/"):
            raise InvalidInputError("Blob key must be a non-empty relative path", {"key": key})
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise InvalidInputError("Blob key escapes the storage root", {"key": key})
        return path

    def read_blob(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Blob not found", {"key": key})
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read blob: {e}", {"key": key}) from e

    def write_blob(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write blob: {e}", {"key": key}) from e
        logger.debug("Local write: %s (%d bytes)", key, len(data))

    def list_blobs(self, prefix: str) -> list[BlobInfo]:
        results = []
        for path in sorted(self._root.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(self._root).as_posix()
            if not key.startswith(prefix):
                continue
            stat = path.stat()
            results.append(
                BlobInfo(
                    key=key,
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                )
            )
        return results


class S3BlobStorage(BaseBlobStorage):
    """Blobs in an S3 bucket (AWS, MinIO, or compatible).

    Requires the 'boto3' package: pip install 'difflens[s3]'.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: str | None = None,
        endpoint_url: str | None = None,
    ):
        try:
            import boto3
        except ImportError as e:
            raise ImportError("boto3 package required for S3 blob storage: pip install 'difflens[s3]'") from e

        kwargs: dict = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def read_blob(self, key: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=self._full_key(key))
        except self._s3.exceptions.NoSuchKey as e:
            raise NotFoundError("Blob not found", {"key": key}) from e
        except Exception as e:
            raise StorageError(f"S3 read failed: {e}", {"key": key}) from e
        return response["Body"].read()

    def write_blob(self, key: str, data: bytes) -> None:
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=self._full_key(key),
                Body=data,
                ContentType="application/octet-stream",
            )
        except Exception as e:
            raise StorageError(f"S3 write failed: {e}", {"key": key}) from e
        logger.debug("S3 write: s3://%s/%s (%d bytes)", self._bucket, self._full_key(key), len(data))

    def list_blobs(self, prefix: str) -> list[BlobInfo]:
        results = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=self._full_key(prefix)):
                for item in page.get("Contents", []):
                    results.append(
                        BlobInfo(
                            key=item["Key"][len(self._prefix) :],
                            size=item["Size"],
                            modified_at=item["LastModified"].isoformat(),
                        )
                    )
        except Exception as e:
            raise StorageError(f"S3 list failed: {e}", {"prefix": prefix}) from e
        return results
