"""Caller-facing review service.

Wires blob storage, the version store and the review store to the diff
engine, analyzer and incremental orchestrator. The CLI builds one instance
per process; collaborators are passed in explicitly so tests can use the
in-memory backends.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from difflens_core import diff as diff_engine
from difflens_core import incremental
from difflens_core.analysis.analyzer import analyze
from difflens_core.analysis.models import AnalysisResult, Dimension
from difflens_core.providers.base import AIReview
from difflens_core.providers.factory import get_reviewer
from difflens_core.utils.code import is_code_file, is_excluded, language
from difflens_store.blob import FOLDER_MARKER, clean_file_name, scoped_prefix
from difflens_store.errors import DifflensError, InvalidInputError, NotFoundError
from difflens_store.models import COMMENT_STATUSES, COMMENT_TYPES, CommentRecord, ReviewRecord, ReviewType

if TYPE_CHECKING:
    from difflens_core.cancel import CancelToken
    from difflens_core.config import LLMConfig
    from difflens_core.diff import DiffEntry, DiffStats
    from difflens_core.incremental import IncrementalResult
    from difflens_store.base import BaseReviewStore, BaseVersionStore
    from difflens_store.blob import BaseBlobStorage, BlobInfo
    from difflens_store.models import PutResult, VersionRecord, VersionStats, VersionSummary

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 8.0


@dataclass
class VersionHistory:
    file_key: str
    versions: list[VersionSummary]
    stats: VersionStats | None

    def to_dict(self) -> dict:
        return {
            "file_key": self.file_key,
            "versions": [v.to_dict() for v in self.versions],
            "stats": self.stats.to_dict() if self.stats else None,
        }


@dataclass
class VersionDiff:
    base: VersionSummary
    target: VersionSummary
    entries: list[DiffEntry]
    stats: DiffStats

    def to_dict(self) -> dict:
        return {
            "base": self.base.to_dict(),
            "target": self.target.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
            "stats": {"lines_changed": self.stats.lines_changed, **self.stats.as_dict()},
        }


@dataclass
class FileReport:
    file_name: str
    file_key: str
    language: str
    analysis: AnalysisResult
    quality_score: float
    passed: bool

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "file_key": self.file_key,
            "language": self.language,
            "quality_score": self.quality_score,
            "passed": self.passed,
            "analysis": self.analysis.to_dict(),
        }


@dataclass
class FolderMetrics:
    total_files: int = 0
    analyzed_files: int = 0
    skipped_files: int = 0
    total_issues: int = 0
    critical_issues: int = 0
    error_issues: int = 0
    warning_issues: int = 0
    info_issues: int = 0
    lint_issues: int = 0
    security_issues: int = 0
    architecture_issues: int = 0
    quality_issues: int = 0
    documentation_issues: int = 0
    passed_files: int = 0
    failed_files: int = 0

    def add(self, analysis: AnalysisResult, passed: bool) -> None:
        self.analyzed_files += 1
        self.total_issues += len(analysis.issues)
        for severity, count in analysis.severity_counts().items():
            name = f"{severity}_issues"
            setattr(self, name, getattr(self, name) + count)
        for dimension in Dimension:
            name = f"{dimension.value}_issues"
            setattr(self, name, getattr(self, name) + len(analysis.issues_for(dimension)))
        if passed:
            self.passed_files += 1
        else:
            self.failed_files += 1

    @property
    def pass_rate(self) -> float:
        if not self.analyzed_files:
            return 0.0
        return round(self.passed_files / self.analyzed_files * 100, 1)

    @property
    def overall_score(self) -> float:
        """Ten-point folder grade from per-file issue, critical and security densities."""
        if not self.analyzed_files:
            return 10.0
        n = self.analyzed_files
        score = 10 - (self.total_issues / n) * 0.5 - (self.critical_issues / n) * 2 - (self.security_issues / n) * 2
        return max(0.0, min(10.0, round(score, 1)))

    def to_dict(self) -> dict:
        return {
            **asdict(self),
            "pass_rate": self.pass_rate,
            "overall_score": self.overall_score,
        }


@dataclass
class FolderReport:
    folder: str
    files: list[FileReport] = field(default_factory=list)
    metrics: FolderMetrics = field(default_factory=FolderMetrics)

    def to_dict(self) -> dict:
        return {
            "folder": self.folder,
            "files": [f.to_dict() for f in self.files],
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class CommentThread:
    comment: CommentRecord
    replies: list[CommentRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {**self.comment.to_dict(), "replies": [r.to_dict() for r in self.replies]}


class ReviewService:
    def __init__(
        self,
        blobs: BaseBlobStorage,
        versions: BaseVersionStore,
        reviews: BaseReviewStore,
        *,
        llm_config: LLMConfig | None = None,
        max_workers: int = 4,
        window: int = incremental.PROXIMITY_WINDOW,
        parallel_passes: bool = False,
        exclude: list[str] | None = None,
    ):
        self.blobs = blobs
        self.versions = versions
        self.reviews = reviews
        self.llm_config = llm_config
        self.max_workers = max(1, max_workers)
        self.window = window
        self.parallel_passes = parallel_passes
        self.exclude = list(exclude or [])

    # ------------------------------------------------------------------ #
    # Versions                                                             #
    # ------------------------------------------------------------------ #

    def _read(self, file_key: str) -> str:
        if not file_key:
            raise InvalidInputError("file_key is required")
        return self.blobs.read_text(file_key)

    def store_version_if_changed(
        self,
        file_key: str,
        file_name: str | None = None,
        content: str | None = None,
        user_id: str | None = None,
    ) -> PutResult:
        if content is None:
            content = self._read(file_key)
        result = self.versions.put(file_key, content, file_name or clean_file_name(file_key), user_id=user_id)
        if result.created:
            logger.info("Saved %s as version %d", file_key, result.version)
        else:
            logger.info("%s unchanged since version %d", file_key, result.version)
        return result

    def get_history(self, file_key: str) -> VersionHistory:
        return VersionHistory(file_key, self.versions.history(file_key), self.versions.stats(file_key))

    def get_diff(self, version_id_a: str, version_id_b: str, cancel_token: CancelToken | None = None) -> VersionDiff:
        """Diff version A (base) against version B (target)."""
        base = self.versions.get_by_id(version_id_a)
        target = self.versions.get_by_id(version_id_b)
        return self._diff(base, target, cancel_token)

    def get_diff_for(self, version_id: str, compare_with: str | None = None) -> VersionDiff:
        """Diff a version against ``"latest"``, another version id, or (default) its predecessor."""
        record = self.versions.get_by_id(version_id)
        if compare_with == "latest":
            return self._diff(record, self.versions.latest(record.file_key))
        if compare_with:
            return self._diff(record, self.versions.get_by_id(compare_with))
        return self._diff(self.versions.previous(record.file_key, record.version), record)

    def _diff(self, base: VersionRecord, target: VersionRecord, cancel_token=None) -> VersionDiff:
        entries = diff_engine.diff(base.content, target.content, cancel_token=cancel_token)
        return VersionDiff(base.summary(), target.summary(), entries, diff_engine.stats(entries))

    def restore_version(self, file_key: str, version: int, user_id: str | None = None) -> PutResult:
        """Roll the blob back to a stored version; records a new version if that differs from latest.

        The version is recorded before the blob is overwritten; a failed blob
        write discards that version again.
        """
        record = self.versions.get(file_key, version)
        result = self.versions.put(file_key, record.content, record.file_name, user_id=user_id)
        try:
            self.blobs.write_text(file_key, record.content)
        except DifflensError:
            self.versions.discard(file_key, result)
            raise
        logger.info("Restored %s to the content of version %d (now version %d)", file_key, version, result.version)
        return result

    # ------------------------------------------------------------------ #
    # Reviews                                                              #
    # ------------------------------------------------------------------ #

    def run_full_analysis(self, content: str, file_name: str, cancel_token: CancelToken | None = None) -> AnalysisResult:
        return analyze(content, file_name, parallel=self.parallel_passes, cancel_token=cancel_token)

    def run_full_review(
        self,
        file_key: str,
        file_name: str | None = None,
        user_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> tuple[AnalysisResult, ReviewRecord]:
        """Version the current blob, analyze it, and persist a full review."""
        content = self._read(file_key)
        file_name = file_name or clean_file_name(file_key)
        # Analyze before writing anything so a cancelled run leaves no trace.
        analysis = self.run_full_analysis(content, file_name, cancel_token)
        put = self.versions.put(file_key, content, file_name, user_id=user_id)
        record = ReviewRecord(
            file_version_id=put.id,
            file_key=file_key,
            review_type=ReviewType.FULL,
            lines_reviewed=list(range(1, analysis.metrics.total_lines + 1)),
            issues=[i.to_dict() for i in analysis.issues],
            metrics={
                **analysis.metrics.to_dict(),
                "dimension_scores": {d.value: s for d, s in analysis.dimension_scores.items()},
                "overall_score": analysis.overall_score,
                "quality_score": analysis.quality_score,
                "issues_found": len(analysis.issues),
            },
            user_id=user_id,
        )
        try:
            self.reviews.save(record)
        except DifflensError:
            self.versions.discard(file_key, put)
            raise
        return analysis, record

    def run_incremental_analysis(
        self,
        file_key: str,
        file_name: str | None = None,
        user_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> IncrementalResult:
        content = self._read(file_key)
        return incremental.run_incremental_analysis(
            file_key,
            file_name or clean_file_name(file_key),
            content,
            self.versions,
            self.reviews,
            window=self.window,
            cancel_token=cancel_token,
            parallel=self.parallel_passes,
            user_id=user_id,
        )

    def list_reviews(self, file_key: str, review_type: ReviewType | None = None) -> list[ReviewRecord]:
        return self.reviews.list_reviews(file_key, review_type=review_type)

    # ------------------------------------------------------------------ #
    # Comments                                                             #
    # ------------------------------------------------------------------ #

    def add_comment(
        self,
        file_key: str,
        content: str,
        *,
        file_name: str | None = None,
        line_number: int = 0,
        comment_type: str = "comment",
        review_id: str | None = None,
        issue_id: str | None = None,
        parent_id: str | None = None,
        user_id: str | None = None,
    ) -> CommentRecord:
        """Attach a comment to a file, a line, a stored review, or another comment.

        Replies always hang off the top-level comment of their thread and
        default to its line.
        """
        if not file_key or not content or not content.strip():
            raise InvalidInputError("file_key and content are required")
        if line_number < 0:
            raise InvalidInputError("line_number must be 0 (file level) or a 1-based line", {"line": str(line_number)})
        if comment_type not in COMMENT_TYPES:
            raise InvalidInputError(f"Unknown comment type {comment_type!r}", {"allowed": ", ".join(COMMENT_TYPES)})

        if parent_id:
            by_id = {c.id: c for c in self.reviews.list_comments(file_key)}
            parent = by_id.get(parent_id)
            if parent is None:
                raise NotFoundError("Comment not found", {"file_key": file_key, "id": parent_id})
            while parent.parent_id and parent.parent_id in by_id:
                parent = by_id[parent.parent_id]
            parent_id = parent.id
            line_number = line_number or parent.line_number
        if review_id and review_id not in {r.id for r in self.reviews.list_reviews(file_key)}:
            raise NotFoundError("Review not found", {"file_key": file_key, "id": review_id})

        comment = CommentRecord(
            file_key=file_key,
            content=content.strip(),
            file_name=file_name or clean_file_name(file_key),
            line_number=line_number,
            type=comment_type,
            review_id=review_id,
            issue_id=issue_id,
            parent_id=parent_id,
            user_id=user_id,
        )
        self.reviews.save_comment(comment)
        logger.info("Comment %s on %s line %d", comment.id, file_key, line_number)
        return comment

    def list_comments(self, file_key: str, status: str | None = None) -> list[CommentThread]:
        """Top-level comments newest first, each with its replies oldest first."""
        if status is not None and status not in COMMENT_STATUSES:
            raise InvalidInputError(f"Unknown comment status {status!r}", {"allowed": ", ".join(COMMENT_STATUSES)})
        comments = self.reviews.list_comments(file_key)
        threads = {c.id: CommentThread(c) for c in comments if not c.parent_id}
        for comment in comments:
            if comment.parent_id in threads:
                threads[comment.parent_id].replies.append(comment)
        result = [t for t in threads.values() if status is None or t.comment.status == status]
        return list(reversed(result))

    def ai_review(self, file_name: str, content: str, analysis: AnalysisResult) -> AIReview:
        if self.llm_config is None:
            raise InvalidInputError("No AI provider configured")
        if self.llm_config.provider == "ollama" and not self.llm_config.endpoint:
            raise InvalidInputError("No Ollama endpoint configured; set LLM_ENDPOINT or llm.endpoint")
        reviewer = get_reviewer(self.llm_config)
        if not reviewer.is_available():
            raise DifflensError(
                f"AI provider {self.llm_config.provider!r} is not available",
                {"endpoint": self.llm_config.endpoint or "hosted API"},
            )
        return reviewer.review(file_name, content, analysis)

    # ------------------------------------------------------------------ #
    # Folder batch                                                         #
    # ------------------------------------------------------------------ #

    def _list_folder(self, folder: str, user_id: str | None) -> list[BlobInfo]:
        prefix = scoped_prefix(user_id, folder)
        files = self.blobs.list_blobs(prefix)
        if not files:
            logger.debug("Nothing under %s; retrying without the trailing slash", prefix)
            files = self.blobs.list_blobs(prefix.rstrip("/"))
        return [f for f in files if FOLDER_MARKER not in f.key]

    def _analyze_one(self, info: BlobInfo, user_id: str | None) -> FileReport:
        content = self.blobs.read_text(info.key)
        file_name = clean_file_name(info.key)
        analysis = analyze(content, file_name)
        self.versions.put(info.key, content, file_name, user_id=user_id)
        score = analysis.quality_score
        return FileReport(file_name, info.key, language(file_name), analysis, score, score > PASS_THRESHOLD)

    def analyze_folder(self, folder: str, user_id: str | None = None) -> FolderReport:
        files = self._list_folder(folder, user_id)
        if not files:
            raise NotFoundError("No files found in folder", {"folder": folder})

        report = FolderReport(folder=folder)
        report.metrics.total_files = len(files)
        candidates = []
        for info in files:
            if not is_code_file(info.key) or is_excluded(info.key, self.exclude):
                report.metrics.skipped_files += 1
            else:
                candidates.append(info)

        start = time.monotonic()
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="difflens-folder") as pool:
            futures = {pool.submit(self._analyze_one, info, user_id): info for info in candidates}
            for future in as_completed(futures):
                info = futures[future]
                try:
                    file_report = future.result()
                except DifflensError as e:
                    logger.warning("Skipping %s: [%s] %s", info.key, e.kind, e.message)
                    report.metrics.skipped_files += 1
                    continue
                report.files.append(file_report)
                report.metrics.add(file_report.analysis, file_report.passed)

        report.files.sort(key=lambda f: f.file_key)
        logger.info(
            "Analyzed %d/%d file(s) in %s in %.2fs",
            report.metrics.analyzed_files,
            report.metrics.total_files,
            folder,
            time.monotonic() - start,
        )
        return report
