"""Tests for the CLI entry point and commands."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from difflens_cli.cli import main
from difflens_cli.factory import (
    build_blob_storage,
    build_review_store,
    build_version_store,
    resolve_github_token,
)
from difflens_core.providers.base import AIReview, AIReviewSection
from difflens_core.service import ReviewService
from difflens_store.blob import LocalBlobStorage
from difflens_store.errors import InvalidInputError
from difflens_store.memory import MemoryReviewStore, MemoryVersionStore
from difflens_store.noop import NoOpReviewStore
from difflens_store.sqlite import SQLiteReviewStore, SQLiteVersionStore

KEY = "alice/app.js"
SAMPLE_JS = "var x = 1\nif (x == 1) { console.log(x) }\n"


@pytest.fixture
def service(tmp_path):
    return ReviewService(LocalBlobStorage(tmp_path / "blobs"), MemoryVersionStore(), MemoryReviewStore())


@pytest.fixture
def run(tmp_path, service):
    """Invoke the CLI with an injected service and no config file."""

    def _run(*args, input=None, svc=None):
        return CliRunner().invoke(
            main,
            ["--config", str(tmp_path / "none.yml"), *args],
            obj={"service": svc or service},
            input=input,
        )

    return _run


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


class TestGroup:
    def test_help_lists_commands(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("save", "review", "history", "diff", "restore", "folder", "stats", "comment", "init"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "difflens" in result.output

    def test_errors_are_reported_with_kind(self, run):
        result = run("save", KEY)
        assert result.exit_code == 1
        assert "[not_found] Blob not found" in result.output

    def test_invalid_config_file(self, tmp_path):
        cfg = tmp_path / "bad.yml"
        cfg.write_text("max_workers: lots\n")
        result = CliRunner().invoke(main, ["--config", str(cfg), "history", KEY])
        assert result.exit_code == 1
        assert "[invalid_input]" in result.output

    def test_service_built_from_config(self, tmp_path):
        cfg = tmp_path / ".difflens.yml"
        cfg.write_text(f"store: memory\nblob_root: {tmp_path / 'blobs'}\n")
        source = tmp_path / "app.js"
        source.write_text("let a;\n")
        result = CliRunner().invoke(main, ["--config", str(cfg), "save", KEY, "--from", str(source)])
        assert result.exit_code == 0, result.output
        assert "Saved alice/app.js as version 1" in result.output
        assert (tmp_path / "blobs" / "alice" / "app.js").read_text() == "let a;\n"


# ---------------------------------------------------------------------------
# save / history / diff / restore
# ---------------------------------------------------------------------------


class TestSave:
    def test_upload_and_version(self, run, tmp_path):
        source = tmp_path / "app.js"
        source.write_text("let a;\n")

        first = run("save", KEY, "--from", str(source))
        second = run("save", KEY)

        assert "Saved alice/app.js as version 1" in first.output
        assert "No changes since version 1" in second.output

    def test_user_and_name_recorded(self, run, service):
        service.blobs.write_text(KEY, "let a;\n")
        run("save", KEY, "--name", "main.js", "--user", "alice")
        latest = service.versions.latest(KEY)
        assert latest.file_name == "main.js"
        assert latest.user_id == "alice"


class TestHistory:
    def test_no_versions(self, run):
        result = run("history", KEY)
        assert result.exit_code == 0
        assert "No saved versions of alice/app.js" in result.output

    def test_table_and_stats(self, run, service):
        service.store_version_if_changed(KEY, content="a\n")
        service.store_version_if_changed(KEY, content="ab\n")
        result = run("history", KEY)
        assert result.exit_code == 0
        assert "v2" in result.output
        assert "v1" in result.output
        assert "Total versions: 2" in result.output

    def test_json(self, run, service):
        service.store_version_if_changed(KEY, content="a\n")
        payload = json.loads(run("history", KEY, "--json").output)
        assert payload["file_key"] == KEY
        assert [v["version"] for v in payload["versions"]] == [1]


class TestDiff:
    @pytest.fixture
    def ids(self, service):
        v1 = service.store_version_if_changed(KEY, content="a\nb\nc\n")
        v2 = service.store_version_if_changed(KEY, content="a\nX\nc\nd\n")
        return v1.id, v2.id

    def test_two_versions(self, run, ids):
        result = run("diff", *ids)
        assert result.exit_code == 0
        assert "v1 → v2" in result.output
        assert "2 line(s) changed" in result.output

    def test_previous_by_default(self, run, ids):
        result = run("diff", ids[1], "--json")
        payload = json.loads(result.output)
        assert payload["base"]["version"] == 1
        assert payload["stats"] == {"lines_changed": 2, "lines_added": 1, "lines_deleted": 0, "lines_modified": 1}

    def test_against_latest(self, run, ids):
        payload = json.loads(run("diff", ids[0], "--against", "latest", "--json").output)
        assert payload["target"]["version"] == 2

    def test_identical(self, run, ids):
        result = run("diff", ids[0], ids[0])
        assert "Identical content." in result.output

    def test_both_target_forms_rejected(self, run, ids):
        result = run("diff", ids[0], ids[1], "--against", "latest")
        assert result.exit_code == 2

    def test_first_version_has_nothing_to_compare(self, run, ids):
        result = run("diff", ids[0])
        assert result.exit_code == 1
        assert "[not_found]" in result.output


class TestRestore:
    @pytest.fixture
    def saved(self, service):
        service.blobs.write_text(KEY, "let a;\n")
        service.store_version_if_changed(KEY)
        service.blobs.write_text(KEY, "let b;\n")
        service.store_version_if_changed(KEY)

    def test_restore_with_yes(self, run, service, saved):
        result = run("restore", KEY, "1", "--yes")
        assert result.exit_code == 0
        assert "Restored version 1 of alice/app.js as version 3" in result.output
        assert service.blobs.read_text(KEY) == "let a;\n"

    def test_declined_prompt_changes_nothing(self, run, service, saved):
        result = run("restore", KEY, "1", input="n\n")
        assert result.exit_code == 1
        assert service.blobs.read_text(KEY) == "let b;\n"
        assert len(service.get_history(KEY).versions) == 2

    def test_version_must_be_positive(self, run, saved):
        assert run("restore", KEY, "0", "--yes").exit_code == 2


# ---------------------------------------------------------------------------
# review
# ---------------------------------------------------------------------------


class TestReview:
    def test_full_review(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        result = run("review", KEY)
        assert result.exit_code == 0, result.output
        assert "Quality score: 8.6/10" in result.output
        assert "overall" in result.output
        assert len(service.list_reviews(KEY)) == 1

    def test_full_review_json(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        payload = json.loads(run("review", KEY, "--json").output)
        assert payload["analysis"]["overall_score"] == 98
        assert payload["review_id"] == service.list_reviews(KEY)[0].id
        assert "ai_review" not in payload

    def test_clean_file(self, run, service):
        service.blobs.write_text(KEY, "/** Constants. */\nexport const ANSWER = 42;\n")
        assert "No issues found." in run("review", KEY).output

    def test_incremental_needs_a_baseline(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        result = run("review", KEY, "--incremental")
        assert result.exit_code == 0
        assert "No saved version of" in result.output
        assert service.list_reviews(KEY) == []

    def test_incremental_without_changes(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        run("review", KEY)
        assert "No changes since the last saved version." in run("review", KEY, "-i").output

    def test_incremental_after_edit(self, run, service):
        service.blobs.write_text(KEY, "let a = 1;\n")
        run("review", KEY)
        service.blobs.write_text(KEY, "let a = 1;\nvar b = 2;\n")
        result = run("review", KEY, "-i")
        assert "1 changed line(s)" in result.output
        assert "var" in result.output
        assert len(service.get_history(KEY).versions) == 1

    def test_incremental_json(self, run, service):
        service.blobs.write_text(KEY, "let a = 1;\n")
        run("review", KEY)
        service.blobs.write_text(KEY, "let a = 2;\n")
        payload = json.loads(run("review", KEY, "-i", "--json").output)
        assert payload["status"] == "reviewed"
        assert payload["changed_lines"] == [1]

    def test_ai_with_incremental_is_rejected(self, run):
        result = run("review", KEY, "--ai", "-i")
        assert result.exit_code == 2
        assert "--ai" in result.output

    def test_ai_without_provider(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        result = run("review", KEY, "--ai")
        assert result.exit_code == 1
        assert "[invalid_input] No AI provider configured" in result.output

    def test_ai_review_is_rendered(self, run, tmp_path):
        from difflens_core.config import LLMConfig

        svc = ReviewService(
            LocalBlobStorage(tmp_path / "ai-blobs"),
            MemoryVersionStore(),
            MemoryReviewStore(),
            llm_config=LLMConfig(provider="ollama", model="llama3:8b", endpoint="http://localhost:11434"),
        )
        svc.blobs.write_text(KEY, SAMPLE_JS)
        reviewer = MagicMock()
        reviewer.review.return_value = AIReview(
            summary="Looks fine.",
            sections=[AIReviewSection("Security", "Nothing risky.", ["Keep it up"])],
            provider="ollama",
            model="llama3:8b",
            raw="Looks fine.",
        )
        with patch("difflens_core.service.get_reviewer", return_value=reviewer):
            result = run("review", KEY, "--ai", svc=svc)
        assert result.exit_code == 0, result.output
        assert "Looks fine." in result.output
        assert "Keep it up" in result.output


# ---------------------------------------------------------------------------
# folder / stats
# ---------------------------------------------------------------------------


class TestFolder:
    @pytest.fixture
    def files(self, service):
        service.blobs.write_text("alice/src/1700000000000-app.js", SAMPLE_JS)
        service.blobs.write_text("alice/src/danger.js", "/** Danger. */\neval(input);\n")
        service.blobs.write_blob("alice/src/logo.png", b"\x89PNG")

    def test_table_and_summary(self, run, files):
        result = run("folder", "src", "--user", "alice")
        assert result.exit_code == 0, result.output
        assert "app.js" in result.output
        assert "fail" in result.output
        assert "2 analyzed, 1 skipped, 3 total" in result.output
        assert "Pass rate:    50.0%" in result.output

    def test_json(self, run, files):
        payload = json.loads(run("folder", "alice/src", "--json").output)
        assert payload["metrics"]["analyzed_files"] == 2
        assert [f["file_name"] for f in payload["files"]] == ["app.js", "danger.js"]

    def test_empty_folder(self, run):
        result = run("folder", "alice/nothing")
        assert result.exit_code == 1
        assert "[not_found] No files found in folder" in result.output


class TestStats:
    def test_requires_review_store(self, run, tmp_path):
        svc = ReviewService(LocalBlobStorage(tmp_path / "blobs"), MemoryVersionStore(), NoOpReviewStore())
        result = run("stats", KEY, svc=svc)
        assert result.exit_code == 2
        assert "No review store configured" in result.output

    def test_no_reviews(self, run):
        assert "No reviews found for this file." in run("stats", KEY).output

    def test_breakdowns(self, run, service):
        service.blobs.write_text(KEY, SAMPLE_JS)
        run("review", KEY)
        result = run("stats", KEY)
        assert result.exit_code == 0
        assert "Total reviews:  1 (1 full, 0 incremental)" in result.output
        assert "Total issues:   4" in result.output
        assert "lint/best-practice" in result.output


# ---------------------------------------------------------------------------
# comment
# ---------------------------------------------------------------------------


class TestComment:
    def test_add_and_list(self, run, service):
        result = run(
            "comment", "add", KEY, "Prefer const here", "--line", "1", "--type", "suggestion", "--user", "bob"
        )
        assert result.exit_code == 0, result.output
        [thread] = service.list_comments(KEY)
        assert thread.comment.type == "suggestion"
        assert thread.comment.line_number == 1
        assert thread.comment.id in result.output

        listed = run("comment", "list", KEY)
        assert listed.exit_code == 0
        assert "Prefer const here" in listed.output
        assert "line 1 by bob (open)" in listed.output
        assert "1 thread(s)" in listed.output

    def test_reply_is_nested(self, run, service):
        root = service.add_comment(KEY, "Why var?", line_number=1)
        result = run("comment", "add", KEY, "Legacy [code]", "--reply-to", root.id)
        assert result.exit_code == 0, result.output

        payload = json.loads(run("comment", "list", KEY, "--json").output)
        assert payload["count"] == 1
        assert payload["comments"][0]["replies"][0]["content"] == "Legacy [code]"
        assert "Legacy [code]" in run("comment", "list", KEY).output

    def test_unknown_parent_is_not_found(self, run):
        result = run("comment", "add", KEY, "hi", "--reply-to", "missing")
        assert result.exit_code == 1
        assert "[not_found] Comment not found" in result.output

    def test_invalid_type_is_usage_error(self, run):
        assert run("comment", "add", KEY, "hi", "--type", "rant").exit_code == 2

    def test_no_comments(self, run):
        assert "No comments on alice/app.js." in run("comment", "list", KEY).output

    def test_requires_review_store(self, run, tmp_path):
        svc = ReviewService(LocalBlobStorage(tmp_path / "blobs"), MemoryVersionStore(), NoOpReviewStore())
        result = run("comment", "list", KEY, svc=svc)
        assert result.exit_code == 2
        assert "No review store configured" in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInit:
    def test_writes_config(self, tmp_path):
        path = tmp_path / ".difflens.yml"
        result = CliRunner().invoke(
            main,
            ["--config", str(tmp_path / "none.yml"), "init", "--path", str(path)],
            input="memory\nnone\nlocal\n\nanthropic\n",
        )
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(path.read_text()) == {
            "store": "memory",
            "review_store": "none",
            "blob_store": "local",
            "blob_root": ".difflens/blobs",
            "llm": {"provider": "anthropic"},
        }
        assert "ANTHROPIC_API_KEY" in result.output

    def test_keeps_existing_keys(self, tmp_path):
        path = tmp_path / ".difflens.yml"
        path.write_text("exclude:\n  - vendor/\n")
        CliRunner().invoke(
            main,
            ["--config", str(tmp_path / "none.yml"), "init", "--path", str(path)],
            input="sqlite\n\nsame\nlocal\n\nollama\n",
        )
        config = yaml.safe_load(path.read_text())
        assert config["exclude"] == ["vendor/"]
        assert config["store"] == "sqlite"
        assert "store_path" not in config

    def test_gist_creation(self, tmp_path):
        path = tmp_path / ".difflens.yml"
        created = subprocess.CompletedProcess(args=[], returncode=0, stdout="https://gist.github.com/abc123\n", stderr="")
        with patch("difflens_cli.commands.init.subprocess.run", return_value=created) as gh:
            CliRunner().invoke(
                main,
                ["--config", str(tmp_path / "none.yml"), "init", "--path", str(path)],
                input="memory\ngist\nlocal\n\nollama\n",
            )
        assert gh.call_args.args[0][:3] == ["gh", "gist", "create"]
        assert yaml.safe_load(path.read_text())["gist_id"] == "abc123"


# ---------------------------------------------------------------------------
# factory
# ---------------------------------------------------------------------------


class TestFactory:
    def test_memory_version_store(self):
        assert isinstance(build_version_store({"store": "memory"}), MemoryVersionStore)

    def test_sqlite_stores(self, tmp_path):
        config = {"store": "sqlite", "store_path": str(tmp_path / "d.db")}
        versions = build_version_store(config)
        reviews = build_review_store({**config, "review_store": "same"})
        try:
            assert isinstance(versions, SQLiteVersionStore)
            assert isinstance(reviews, SQLiteReviewStore)
        finally:
            versions.close()
            reviews.close()

    def test_unknown_store(self):
        with pytest.raises(InvalidInputError):
            build_version_store({"store": "postgres"})

    def test_review_store_none(self):
        assert isinstance(build_review_store({"review_store": "none"}), NoOpReviewStore)

    def test_review_store_same_memory(self):
        assert isinstance(build_review_store({"store": "memory", "review_store": "same"}), MemoryReviewStore)

    def test_gist_without_id_falls_back(self):
        store = build_review_store({"review_store": "gist", "gist_id": None, "github_token": "tok"})
        assert isinstance(store, NoOpReviewStore)

    def test_gist_store(self):
        with patch("difflens_store.gist.GistReviewStore") as gist_cls:
            store = build_review_store({"review_store": "gist", "gist_id": "abc", "github_token": "tok"})
        gist_cls.assert_called_once_with(gist_id="abc", token="tok")
        assert store is gist_cls.return_value

    def test_unknown_review_store(self):
        with pytest.raises(InvalidInputError):
            build_review_store({"review_store": "redis"})

    def test_local_blob_storage(self, tmp_path):
        assert isinstance(build_blob_storage({"blob_store": "local", "blob_root": str(tmp_path)}), LocalBlobStorage)

    def test_s3_requires_bucket(self):
        with pytest.raises(InvalidInputError):
            build_blob_storage({"blob_store": "s3", "s3_bucket": None})

    def test_unknown_blob_store(self):
        with pytest.raises(InvalidInputError):
            build_blob_storage({"blob_store": "ftp"})


class TestResolveGithubToken:
    def test_config_token_wins(self):
        with patch("difflens_cli.factory.subprocess.run") as gh:
            assert resolve_github_token({"github_token": "tok"}) == "tok"
        gh.assert_not_called()

    def test_gh_cli_session(self):
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout="gho_abc\n", stderr="")
        with patch("difflens_cli.factory.subprocess.run", return_value=done):
            assert resolve_github_token({}) == "gho_abc"

    def test_gh_not_installed(self):
        with patch("difflens_cli.factory.subprocess.run", side_effect=FileNotFoundError):
            assert resolve_github_token({}) is None

    def test_gh_not_logged_in(self):
        failed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="not logged in")
        with patch("difflens_cli.factory.subprocess.run", return_value=failed):
            assert resolve_github_token({}) is None
