"""GistReviewStore: shared review history in a GitHub Gist.

Reviews are small (issues, metrics, reviewed lines) and append-only, which
makes a Gist a workable zero-infrastructure place to share them across a
team. Versions hold full file content and stay in SQLite or memory.

Data format: two JSON files inside the Gist, `difflens_reviews.json` and
`difflens_comments.json`, each holding an array of record dicts with newest
entries appended.
"""

from __future__ import annotations

import json
import logging

from rich.console import Console

from difflens_store.base import BaseReviewStore
from difflens_store.errors import StorageError
from difflens_store.models import CommentRecord, ReviewRecord, ReviewType

logger = logging.getLogger(__name__)
console = Console()

_GIST_FILENAME = "difflens_reviews.json"
_COMMENTS_FILENAME = "difflens_comments.json"


class GistReviewStore(BaseReviewStore):
    """Stores review records and comments in a Gist as append-only JSON arrays.

    Reads fetch the full array and filter in memory. Suitable for hundreds
    or low thousands of reviews; beyond that use SQLiteReviewStore.
    """

    def __init__(self, gist_id: str, token: str):
        try:
            from github import Github
        except ImportError as e:
            raise ImportError("PyGithub is required for GistReviewStore: pip install PyGithub") from e
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def save(self, record: ReviewRecord) -> None:
        """Append a review record to the Gist JSON file."""
        self._append(_GIST_FILENAME, record.to_dict(), "review history")

    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        records = self._load(_GIST_FILENAME)
        results = [ReviewRecord.from_dict(r) for r in records if r.get("file_key") == file_key]
        if review_type is not None:
            results = [r for r in results if r.review_type == review_type]
        return results

    def save_comment(self, comment: CommentRecord) -> None:
        self._append(_COMMENTS_FILENAME, comment.to_dict(), "comment")

    def list_comments(self, file_key: str) -> list[CommentRecord]:
        return [CommentRecord.from_dict(c) for c in self._load(_COMMENTS_FILENAME) if c.get("file_key") == file_key]

    def _append(self, filename: str, item: dict, what: str) -> None:
        try:
            gist = self._get_gist()
            existing = self._read_records(gist, filename)
            existing.append(item)
            gist.edit(files={filename: {"content": json.dumps(existing, indent=2)}})
        except Exception as e:
            # Sync is best-effort; a failed write never fails the review.
            logger.warning("GistReviewStore could not write %s (%s): %s", filename, type(e).__name__, e)
            console.print(f"[yellow]Warning: could not sync {what} to Gist ({type(e).__name__}: {e})[/yellow]")

    def _load(self, filename: str) -> list[dict]:
        try:
            return self._read_records(self._get_gist(), filename)
        except Exception as e:
            logger.warning("GistReviewStore could not read %s: %s", filename, e)
            return []

    def _read_records(self, gist, filename: str = _GIST_FILENAME) -> list[dict]:
        """Read the JSON array from a Gist file; [] when the file is absent or empty.

        Anything that is not a JSON array raises StorageError, so an append
        never replaces history it could not parse.
        """
        file_obj = gist.files.get(filename)
        if file_obj is None or not file_obj.content:
            return []
        try:
            records = json.loads(file_obj.content)
        except json.JSONDecodeError as e:
            raise StorageError(f"{filename} is not valid JSON", {"gist_id": self._gist_id}) from e
        if not isinstance(records, list):
            raise StorageError(f"{filename} does not hold a JSON array", {"gist_id": self._gist_id})
        return records
