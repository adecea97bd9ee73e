"""Incremental review: analyze the whole file, report only what is near the edit.

Per call:
    latest stored version? ── no ──▶ REQUIRES_FULL_REVIEW
            │ yes
    diff(stored, current) empty? ── yes ──▶ NO_CHANGES
            │ no
    analyze(current) → keep issues within ±window of a changed line
            │
    persist one incremental Review against the stored version ──▶ REVIEWED

No Version is ever written here; versioning is a separate caller action.
File-level issues (line 0) are left to full reviews.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from difflens_core import diff as diff_engine
from difflens_core.analysis.analyzer import analyze
from difflens_core.analysis.models import Issue
from difflens_store.models import ReviewRecord, ReviewType

if TYPE_CHECKING:
    from difflens_core.cancel import CancelToken
    from difflens_core.diff import DiffEntry
    from difflens_store.base import BaseReviewStore, BaseVersionStore

logger = logging.getLogger(__name__)

PROXIMITY_WINDOW = 2


class IncrementalStatus(str, Enum):
    REQUIRES_FULL_REVIEW = "requires_full_review"
    NO_CHANGES = "no_changes"
    REVIEWED = "reviewed"


@dataclass
class IncrementalResult:
    status: IncrementalStatus
    file_key: str
    file_name: str
    changed_lines: list[int] = field(default_factory=list)
    diff: list[DiffEntry] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
    review_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "file_key": self.file_key,
            "file_name": self.file_name,
            "changed_lines": list(self.changed_lines),
            "diff": [e.to_dict() for e in self.diff],
            "issues": [i.to_dict() for i in self.issues],
            "metrics": dict(self.metrics),
            "review_id": self.review_id,
        }


def filter_issues(issues: list[Issue], changed: set[int], window: int = PROXIMITY_WINDOW) -> list[Issue]:
    """Keep line-scoped issues within ``window`` lines of any changed line, in order."""
    if not changed:
        return []
    return [i for i in issues if i.line != 0 and any(abs(i.line - c) <= window for c in changed)]


def _zero_metrics() -> dict:
    return {"lines_changed": 0, "lines_added": 0, "lines_deleted": 0, "lines_modified": 0, "issues_found": 0}


def run_incremental_analysis(
    file_key: str,
    file_name: str,
    content: str,
    versions: BaseVersionStore,
    reviews: BaseReviewStore,
    *,
    window: int = PROXIMITY_WINDOW,
    cancel_token: CancelToken | None = None,
    parallel: bool = False,
    user_id: str | None = None,
) -> IncrementalResult:
    baseline = versions.find_latest(file_key)
    if baseline is None:
        logger.info("No stored version of %s; a full review is required", file_key)
        return IncrementalResult(IncrementalStatus.REQUIRES_FULL_REVIEW, file_key, file_name)

    entries = diff_engine.diff(baseline.content, content, cancel_token=cancel_token)
    changed = diff_engine.changed_lines(entries)
    if not changed:
        return IncrementalResult(IncrementalStatus.NO_CHANGES, file_key, file_name, metrics=_zero_metrics())

    analysis = analyze(content, file_name, parallel=parallel, cancel_token=cancel_token)
    issues = filter_issues(analysis.issues, changed, window)
    lines = sorted(changed)

    delta = diff_engine.stats(entries)
    metrics = {
        "lines_changed": len(changed),
        **delta.as_dict(),
        "issues_found": len(issues),
        **analysis.metrics.to_dict(),
        "dimension_scores": {d.value: s for d, s in analysis.dimension_scores.items()},
        "overall_score": analysis.overall_score,
    }

    # Last safe point: after this the review is written.
    if cancel_token is not None:
        cancel_token.check()

    record = ReviewRecord(
        file_version_id=baseline.id,
        file_key=file_key,
        review_type=ReviewType.INCREMENTAL,
        lines_reviewed=lines,
        issues=[i.to_dict() for i in issues],
        metrics=metrics,
        user_id=user_id,
    )
    reviews.save(record)
    logger.info(
        "Incremental review of %s v%d: %d changed line(s), %d issue(s)",
        file_key,
        baseline.version,
        len(lines),
        len(issues),
    )
    return IncrementalResult(
        IncrementalStatus.REVIEWED,
        file_key,
        file_name,
        changed_lines=lines,
        diff=entries,
        issues=issues,
        metrics=metrics,
        review_id=record.id,
    )
