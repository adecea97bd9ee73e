"""Content fingerprints for change detection and version dedup.

SHA-256 is used for equality testing only: two saves of the same bytes
must map to the same version, nothing here relies on collision resistance
against an adversary.
"""

from __future__ import annotations

import hashlib

from difflens_store.errors import InvalidInputError


def _to_bytes(content: bytes | str) -> bytes:
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        try:
            return content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidInputError("Content is not valid UTF-8 text", {"reason": str(e)}) from e
    raise InvalidInputError(f"Cannot fingerprint content of type {type(content).__name__}")


def fingerprint(content: bytes | str) -> str:
    """Return the hex SHA-256 digest of ``content`` (str is hashed as UTF-8)."""
    return hashlib.sha256(_to_bytes(content)).hexdigest()


def size_bytes(content: bytes | str) -> int:
    return len(_to_bytes(content))
