"""Error taxonomy shared by every difflens layer.

Each error carries a machine-readable ``kind`` so callers (the CLI, or any
service wrapper) can surface one error with a stable code and a human
message without string-matching exception types.

Propagation rules:
- NotFoundError, InvalidInputError, StorageError: raised to the caller, the
  operation aborts with no partial writes.
- ConcurrencyConflictError: raised by a version backend when another writer
  took the version slot first. BaseVersionStore.put retries once before
  letting it escape.
- AnalysisPassFailure: raised inside a single analysis pass and converted to
  an ordinary Issue by the analyzer and never reaches the caller.
- AnalysisCancelledError: the caller's cancel token fired mid-pipeline.
"""

from __future__ import annotations


class DifflensError(Exception):
    """Base class for all difflens errors."""

    kind = "error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": dict(self.details)}


class NotFoundError(DifflensError):
    """A file, blob, or version does not exist."""

    kind = "not_found"


class InvalidInputError(DifflensError):
    """Missing required fields or content that cannot be decoded."""

    kind = "invalid_input"


class AnalysisPassFailure(DifflensError):
    """One analysis dimension failed internally."""

    kind = "analysis_pass_failure"

    def __init__(self, message: str, line: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.line = line


class StorageError(DifflensError):
    """Persistence or blob I/O failed."""

    kind = "storage_failure"


class ConcurrencyConflictError(DifflensError):
    """Two writers raced for the same version number."""

    kind = "concurrency_conflict"


class AnalysisCancelledError(DifflensError):
    """The caller cancelled the pipeline or its deadline passed."""

    kind = "cancelled"
