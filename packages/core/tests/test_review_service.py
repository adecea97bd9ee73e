"""Tests for ReviewService wired to local blobs and in-memory stores."""

from unittest.mock import MagicMock, patch

import pytest

from difflens_core.cancel import CancelToken
from difflens_core.config import LLMConfig
from difflens_core.diff import ChangeType
from difflens_core.incremental import IncrementalStatus
from difflens_core.providers.base import AIReview
from difflens_core.service import FolderMetrics, ReviewService
from difflens_store.blob import LocalBlobStorage
from difflens_store.errors import AnalysisCancelledError, DifflensError, InvalidInputError, NotFoundError, StorageError
from difflens_store.memory import MemoryReviewStore, MemoryVersionStore
from difflens_store.models import ReviewType

KEY = "alice/src/1700000000000-app.js"
SAMPLE_JS = "var x = 1\nif (x == 1) { console.log(x) }\n"
CLEAN_PY = '"""Utilities."""\n\n\ndef add(a, b):\n    """Add."""\n    return a + b\n'


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
def service(blobs):
    return ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore())


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class TestStoreVersion:
    def test_first_save_creates_version_one(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        result = service.store_version_if_changed(KEY)
        assert result.created is True
        assert result.version == 1
        assert service.versions.latest(KEY).file_name == "app.js"

    def test_unchanged_content_is_not_stored_again(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        first = service.store_version_if_changed(KEY)
        second = service.store_version_if_changed(KEY)
        assert second.created is False
        assert second.id == first.id

    def test_changed_content_increments(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        blobs.write_text(KEY, "let b;\n")
        assert service.store_version_if_changed(KEY).version == 2

    def test_explicit_content_skips_blob(self, service):
        result = service.store_version_if_changed(KEY, "app.js", content="let a;\n", user_id="alice")
        assert result.created is True
        assert service.versions.latest(KEY).user_id == "alice"

    def test_missing_blob(self, service):
        with pytest.raises(NotFoundError):
            service.store_version_if_changed(KEY)

    def test_empty_key(self, service):
        with pytest.raises(InvalidInputError):
            service.store_version_if_changed("")

    def test_undecodable_blob(self, service, blobs):
        blobs.write_blob(KEY, b"\xff\xfe\x00")
        with pytest.raises(InvalidInputError):
            service.store_version_if_changed(KEY)


class TestHistoryAndDiff:
    @pytest.fixture
    def two_versions(self, service):
        v1 = service.store_version_if_changed(KEY, content="a\nb\nc\n")
        v2 = service.store_version_if_changed(KEY, content="a\nX\nc\n")
        return v1, v2

    def test_history_newest_first(self, service, two_versions):
        history = service.get_history(KEY)
        assert [v.version for v in history.versions] == [2, 1]
        assert history.stats.total_versions == 2
        assert history.to_dict()["stats"]["total_versions"] == 2

    def test_history_of_unknown_file(self, service):
        history = service.get_history("alice/nothing.js")
        assert history.versions == []
        assert history.stats is None

    def test_diff_between_versions(self, service, two_versions):
        v1, v2 = two_versions
        result = service.get_diff(v1.id, v2.id)
        assert [(e.type, e.line_number) for e in result.entries] == [(ChangeType.MODIFIED, 2)]
        assert result.base.version == 1
        assert result.target.version == 2
        assert result.to_dict()["stats"]["lines_changed"] == 1

    def test_diff_with_unknown_id(self, service, two_versions):
        with pytest.raises(NotFoundError):
            service.get_diff(two_versions[0].id, "missing")

    def test_diff_against_previous_by_default(self, service, two_versions):
        v1, v2 = two_versions
        result = service.get_diff_for(v2.id)
        assert result.base.id == v1.id
        assert result.target.id == v2.id

    def test_first_version_has_no_previous(self, service, two_versions):
        with pytest.raises(NotFoundError):
            service.get_diff_for(two_versions[0].id)

    def test_diff_against_latest(self, service, two_versions):
        v1, v2 = two_versions
        result = service.get_diff_for(v1.id, "latest")
        assert result.target.id == v2.id

    def test_diff_against_explicit_version(self, service, two_versions):
        v1, v2 = two_versions
        result = service.get_diff_for(v2.id, v1.id)
        assert result.base.id == v2.id
        assert result.target.id == v1.id

    def test_cancelled_diff(self, service, two_versions):
        token = CancelToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            service.get_diff(two_versions[0].id, two_versions[1].id, cancel_token=token)


class TestRestore:
    def test_restore_rewrites_blob_and_records_version(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        blobs.write_text(KEY, "let b;\n")
        service.store_version_if_changed(KEY)

        result = service.restore_version(KEY, 1)

        assert blobs.read_text(KEY) == "let a;\n"
        assert result.created is True
        assert result.version == 3
        assert service.versions.latest(KEY).content == "let a;\n"

    def test_restore_latest_is_a_noop_version(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        result = service.restore_version(KEY, 1)
        assert result.created is False
        assert result.version == 1

    def test_restore_unknown_version(self, service, blobs):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        with pytest.raises(NotFoundError):
            service.restore_version(KEY, 7)

    def test_failed_version_write_leaves_blob_untouched(self, service, blobs, mocker):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        blobs.write_text(KEY, "let b;\n")
        service.store_version_if_changed(KEY)
        mocker.patch.object(service.versions, "_insert", side_effect=StorageError("disk full"))

        with pytest.raises(StorageError):
            service.restore_version(KEY, 1)

        assert blobs.read_text(KEY) == "let b;\n"
        assert service.versions.latest(KEY).version == 2

    def test_failed_blob_write_discards_new_version(self, service, blobs, mocker):
        blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        blobs.write_text(KEY, "let b;\n")
        service.store_version_if_changed(KEY)
        mocker.patch.object(blobs, "write_blob", side_effect=StorageError("read-only"))

        with pytest.raises(StorageError):
            service.restore_version(KEY, 1)

        assert blobs.read_text(KEY) == "let b;\n"
        latest = service.versions.latest(KEY)
        assert latest.version == 2
        assert latest.content == "let b;\n"
        assert len(service.get_history(KEY).versions) == 2


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class TestFullReview:
    def test_full_review_versions_and_persists(self, service, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        analysis, record = service.run_full_review(KEY, user_id="alice")

        latest = service.versions.latest(KEY)
        assert record.review_type is ReviewType.FULL
        assert record.file_version_id == latest.id
        assert record.lines_reviewed == [1, 2, 3]
        assert len(record.issues) == 4
        assert record.metrics["overall_score"] == 98
        assert record.metrics["quality_score"] == 8.6
        assert record.metrics["issues_found"] == 4
        assert record.metrics["dimension_scores"]["lint"] == 89
        assert record.user_id == "alice"
        assert analysis.overall_score == 98
        assert service.list_reviews(KEY) == [record]

    def test_repeat_full_review_reuses_version(self, service, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        service.run_full_review(KEY)
        service.run_full_review(KEY)
        assert len(service.get_history(KEY).versions) == 1
        reviews = service.list_reviews(KEY, ReviewType.FULL)
        assert len(reviews) == 2
        assert reviews[0].file_version_id == reviews[1].file_version_id

    def test_cancelled_full_review_writes_nothing(self, service, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        token = CancelToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            service.run_full_review(KEY, cancel_token=token)
        assert service.versions.find_latest(KEY) is None
        assert service.list_reviews(KEY) == []

    def test_failed_review_save_discards_new_version(self, service, blobs, mocker):
        blobs.write_text(KEY, SAMPLE_JS)
        mocker.patch.object(service.reviews, "save", side_effect=StorageError("locked"))
        with pytest.raises(StorageError):
            service.run_full_review(KEY)
        assert service.versions.find_latest(KEY) is None

    def test_failed_review_save_keeps_existing_version(self, service, blobs, mocker):
        blobs.write_text(KEY, SAMPLE_JS)
        service.store_version_if_changed(KEY)
        mocker.patch.object(service.reviews, "save", side_effect=StorageError("locked"))
        with pytest.raises(StorageError):
            service.run_full_review(KEY)
        assert service.versions.latest(KEY).version == 1

    def test_parallel_passes_give_the_same_result(self, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        sequential = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore())
        parallel = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), parallel_passes=True)
        assert parallel.run_full_review(KEY)[0].to_dict() == sequential.run_full_review(KEY)[0].to_dict()


class TestIncrementalReview:
    def test_requires_full_review_first(self, service, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        assert service.run_incremental_analysis(KEY).status is IncrementalStatus.REQUIRES_FULL_REVIEW

    def test_after_full_review(self, service, blobs):
        blobs.write_text(KEY, "let a = 1;\n")
        service.run_full_review(KEY)
        blobs.write_text(KEY, "let a = 1;\nvar b = 2;\n")

        result = service.run_incremental_analysis(KEY)

        assert result.status is IncrementalStatus.REVIEWED
        assert result.file_name == "app.js"
        assert [i.line for i in result.issues] == [2]
        assert len(service.list_reviews(KEY, ReviewType.INCREMENTAL)) == 1
        assert len(service.get_history(KEY).versions) == 1

    def test_window_from_service(self, blobs):
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), window=0)
        blobs.write_text(KEY, "let a;\nlet b;\n")
        service.run_full_review(KEY)
        blobs.write_text(KEY, "var a;\nlet c;\n")
        # The issue sits on a changed line, so a zero window still keeps it.
        result = service.run_incremental_analysis(KEY)
        assert [i.line for i in result.issues] == [1]


class TestAIReview:
    def test_requires_llm_config(self, service):
        analysis = service.run_full_analysis(SAMPLE_JS, "app.js")
        with pytest.raises(InvalidInputError):
            service.ai_review("app.js", SAMPLE_JS, analysis)

    def test_ollama_without_endpoint(self, blobs):
        config = LLMConfig(provider="ollama", model="llama3:8b", endpoint=None)
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), llm_config=config)
        analysis = service.run_full_analysis(SAMPLE_JS, "app.js")
        with patch("difflens_core.service.get_reviewer") as factory:
            with pytest.raises(InvalidInputError, match="No Ollama endpoint"):
                service.ai_review("app.js", SAMPLE_JS, analysis)
        factory.assert_not_called()

    def test_unavailable_provider(self, blobs):
        config = LLMConfig(provider="ollama", model="llama3:8b", endpoint="http://localhost:11434")
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), llm_config=config)
        analysis = service.run_full_analysis(SAMPLE_JS, "app.js")
        reviewer = MagicMock()
        reviewer.is_available.return_value = False
        with patch("difflens_core.service.get_reviewer", return_value=reviewer):
            with pytest.raises(DifflensError, match="not available"):
                service.ai_review("app.js", SAMPLE_JS, analysis)
        reviewer.review.assert_not_called()

    def test_delegates_to_reviewer(self, blobs):
        config = LLMConfig(provider="ollama", model="llama3:8b", endpoint="http://localhost:11434")
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), llm_config=config)
        analysis = service.run_full_analysis(SAMPLE_JS, "app.js")
        reviewer = MagicMock()
        reviewer.review.return_value = AIReview(summary="Fine.")
        with patch("difflens_core.service.get_reviewer", return_value=reviewer) as factory:
            review = service.ai_review("app.js", SAMPLE_JS, analysis)
        factory.assert_called_once_with(config)
        reviewer.review.assert_called_once_with("app.js", SAMPLE_JS, analysis)
        assert review.summary == "Fine."


# ---------------------------------------------------------------------------
# Folder batch
# ---------------------------------------------------------------------------


class TestFolderMetrics:
    def test_empty_metrics(self):
        metrics = FolderMetrics()
        assert metrics.pass_rate == 0.0
        assert metrics.overall_score == 10.0

    def test_score_is_clamped(self):
        metrics = FolderMetrics(analyzed_files=1, total_issues=40, critical_issues=5, security_issues=5)
        assert metrics.overall_score == 0.0

    def test_pass_rate_rounding(self):
        metrics = FolderMetrics(analyzed_files=3, passed_files=2, failed_files=1)
        assert metrics.pass_rate == 66.7


class TestAnalyzeFolder:
    @pytest.fixture
    def folder(self, blobs):
        blobs.write_text("alice/src/1700000000000-app.js", SAMPLE_JS)
        blobs.write_text("alice/src/util.py", CLEAN_PY)
        blobs.write_blob("alice/src/logo.png", b"\x89PNG")
        blobs.write_text("alice/src/.foldermarker", "")
        blobs.write_text("alice/src/vendor/lib.js", "var a = eval(x);\n")
        blobs.write_text("alice/other/skip.js", "var a;\n")
        return blobs

    def test_report(self, blobs, folder):
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), exclude=["vendor/"])
        report = service.analyze_folder("src", user_id="alice")

        assert [f.file_key for f in report.files] == ["alice/src/1700000000000-app.js", "alice/src/util.py"]
        app, util = report.files
        assert (app.file_name, app.language, app.quality_score, app.passed) == ("app.js", "JavaScript", 8.6, True)
        assert (util.language, util.quality_score, util.passed) == ("Python", 10.0, True)

        m = report.metrics
        assert (m.total_files, m.analyzed_files, m.skipped_files) == (4, 2, 2)
        assert (m.total_issues, m.warning_issues, m.info_issues) == (4, 2, 2)
        assert (m.lint_issues, m.documentation_issues, m.security_issues) == (3, 1, 0)
        assert m.pass_rate == 100.0
        assert m.overall_score == 9.0

    def test_files_are_versioned(self, blobs, folder):
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), exclude=["vendor/"])
        service.analyze_folder("alice/src")
        assert service.versions.latest("alice/src/util.py").version == 1
        assert service.versions.find_latest("alice/src/logo.png") is None

    def test_failing_file(self, blobs):
        blobs.write_text("alice/lib/1700000000000-app.js", SAMPLE_JS)
        blobs.write_text("alice/lib/danger.js", "/** Danger. */\neval(input);\n")
        report = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore()).analyze_folder("alice/lib")

        danger = report.files[1]
        assert danger.quality_score == 6.0
        assert danger.passed is False
        assert (report.metrics.passed_files, report.metrics.failed_files) == (1, 1)
        assert report.metrics.pass_rate == 50.0
        assert report.metrics.critical_issues == 1
        assert report.metrics.overall_score < 9.0

    def test_unreadable_file_is_skipped(self, blobs):
        blobs.write_text("alice/lib/ok.js", "/** Ok. */\nlet a;\n")
        blobs.write_blob("alice/lib/bad.js", b"\xff\xfe\x00")
        report = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore()).analyze_folder("alice/lib")
        assert [f.file_name for f in report.files] == ["ok.js"]
        assert report.metrics.skipped_files == 1
        assert report.metrics.analyzed_files == 1

    def test_empty_folder(self, service):
        with pytest.raises(NotFoundError):
            service.analyze_folder("alice/nothing")

    def test_only_marker_counts_as_empty(self, service, blobs):
        blobs.write_text("alice/empty/.foldermarker", "")
        with pytest.raises(NotFoundError):
            service.analyze_folder("alice/empty")

    def test_retries_listing_without_trailing_slash(self, service, blobs, mocker):
        blobs.write_text("alice/lib/ok.js", "/** Ok. */\nlet a;\n")
        original = blobs.list_blobs
        listing = mocker.patch.object(
            blobs, "list_blobs", side_effect=lambda prefix: [] if prefix.endswith("/") else original(prefix)
        )
        report = service.analyze_folder("alice/lib")
        assert [c.args[0] for c in listing.call_args_list] == ["alice/lib/", "alice/lib"]
        assert report.metrics.analyzed_files == 1

    def test_single_worker(self, blobs, folder):
        service = ReviewService(blobs, MemoryVersionStore(), MemoryReviewStore(), max_workers=1)
        report = service.analyze_folder("alice/src")
        assert report.metrics.analyzed_files == 3
        assert report.to_dict()["metrics"]["analyzed_files"] == 3


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class TestComments:
    def test_add_file_level_comment(self, service):
        comment = service.add_comment(KEY, "  Needs tests.  ", user_id="alice")
        assert comment.content == "Needs tests."
        assert comment.line_number == 0
        assert comment.type == "comment"
        assert comment.status == "open"
        assert comment.file_name == "app.js"
        assert comment.user_id == "alice"

    def test_comment_on_review_issue(self, service, blobs):
        blobs.write_text(KEY, SAMPLE_JS)
        _, review = service.run_full_review(KEY)
        comment = service.add_comment(
            KEY,
            "Legacy global, leave it.",
            line_number=1,
            comment_type="issue",
            review_id=review.id,
            issue_id="lint:1",
        )
        [thread] = service.list_comments(KEY)
        assert thread.comment == comment
        assert thread.comment.review_id == review.id

    def test_unknown_review_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.add_comment(KEY, "x", review_id="missing")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"content": ""},
            {"content": "   "},
            {"content": "x", "line_number": -1},
            {"content": "x", "comment_type": "rant"},
        ],
    )
    def test_invalid_input(self, service, kwargs):
        content = kwargs.pop("content")
        with pytest.raises(InvalidInputError):
            service.add_comment(KEY, content, **kwargs)

    def test_replies_are_threaded(self, service):
        root = service.add_comment(KEY, "Why var?", line_number=1, comment_type="question")
        reply = service.add_comment(KEY, "Old browsers.", parent_id=root.id)
        nested = service.add_comment(KEY, "We dropped those.", parent_id=reply.id)

        assert reply.line_number == 1
        assert nested.parent_id == root.id

        [thread] = service.list_comments(KEY)
        assert thread.comment.id == root.id
        assert [r.id for r in thread.replies] == [reply.id, nested.id]
        assert thread.to_dict()["replies"][0]["content"] == "Old browsers."

    def test_reply_to_unknown_comment(self, service):
        with pytest.raises(NotFoundError):
            service.add_comment(KEY, "x", parent_id="missing")

    def test_threads_newest_first(self, service):
        first = service.add_comment(KEY, "first")
        second = service.add_comment(KEY, "second")
        service.add_comment("bob/other.js", "elsewhere")
        assert [t.comment.id for t in service.list_comments(KEY)] == [second.id, first.id]

    def test_status_filter(self, service):
        service.add_comment(KEY, "open one")
        assert len(service.list_comments(KEY, status="open")) == 1
        assert service.list_comments(KEY, status="resolved") == []
        with pytest.raises(InvalidInputError):
            service.list_comments(KEY, status="archived")
