"""No-op review store: used when review history is switched off.

Using a NoOpReviewStore rather than None lets the orchestrator always call
reviews.save() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from difflens_store.base import BaseReviewStore

if TYPE_CHECKING:
    from difflens_store.models import CommentRecord, ReviewRecord, ReviewType


class NoOpReviewStore(BaseReviewStore):
    """Silently discards all review records and comments."""

    def save(self, record: ReviewRecord) -> None:
        pass

    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        return []

    def save_comment(self, comment: CommentRecord) -> None:
        pass

    def list_comments(self, file_key: str) -> list[CommentRecord]:
        return []
