"""Tests for the line diff engine."""

import random

import pytest

from difflens_core.cancel import CancelToken
from difflens_core.diff import ChangeType, _align, changed_lines, diff, split_lines, stats
from difflens_store.errors import AnalysisCancelledError


class TestSplitLines:
    def test_trailing_newline_yields_empty_line(self):
        assert split_lines("a\n") == ["a", ""]

    def test_empty_string_is_one_empty_line(self):
        assert split_lines("") == [""]

    def test_no_carriage_return_handling(self):
        assert split_lines("a\r\nb") == ["a\r", "b"]


class TestIdentity:
    @pytest.mark.parametrize("content", ["", "a", "a\n", "a\nb\nc\n", "\n\n\n"])
    def test_self_diff_is_empty(self, content):
        assert diff(content, content) == []

    def test_changed_lines_empty_iff_equal(self):
        assert changed_lines(diff("a\n", "a")) != set()
        assert changed_lines(diff("x", "x")) == set()


class TestClassification:
    def test_single_modified_line(self):
        entries = diff("a\nb\nc\n", "a\nX\nc\n")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.type is ChangeType.MODIFIED
        assert entry.line_number == 2
        assert entry.old_text == "b"
        assert entry.new_text == "X"
        assert changed_lines(entries) == {2}

    def test_added_lines_use_new_numbering(self):
        entries = diff("a\nc\n", "a\nb1\nb2\nc\n")
        assert [(e.type, e.line_number, e.new_text) for e in entries] == [
            (ChangeType.ADDED, 2, "b1"),
            (ChangeType.ADDED, 3, "b2"),
        ]

    def test_deleted_line_anchored_on_new_position(self):
        entries = diff("a\nb\nc\n", "a\nc\n")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.type is ChangeType.DELETED
        assert entry.old_text == "b"
        assert entry.old_line_number == 2
        # "c" now sits where "b" was.
        assert entry.line_number == 2

    def test_deletion_at_end_is_clamped(self):
        entries = diff("a\nb\nc", "a")
        assert {e.type for e in entries} == {ChangeType.DELETED}
        assert all(e.line_number == 1 for e in entries)
        assert sorted(e.old_line_number for e in entries) == [2, 3]

    def test_everything_deleted_anchors_at_line_one(self):
        entries = diff("a\nb", "")
        # "" is one empty line, so "a" pairs with it as a modification.
        assert [e.type for e in entries] == [ChangeType.MODIFIED, ChangeType.DELETED]
        assert all(e.line_number == 1 for e in entries)

    def test_hunk_pairs_then_adds(self):
        entries = diff("a\nold1\nz\n", "a\nnew1\nnew2\nz\n")
        assert [(e.type, e.line_number) for e in entries] == [
            (ChangeType.MODIFIED, 2),
            (ChangeType.ADDED, 3),
        ]
        assert entries[0].old_text == "old1"

    def test_hunk_pairs_then_deletes(self):
        entries = diff("a\nold1\nold2\nz\n", "a\nnew1\nz\n")
        assert [(e.type, e.line_number) for e in entries] == [
            (ChangeType.MODIFIED, 2),
            (ChangeType.DELETED, 3),
        ]
        assert entries[1].old_text == "old2"
        assert entries[1].old_line_number == 3

    def test_separate_hunks(self):
        entries = diff("1\n2\n3\n4\n5\n", "1\nX\n3\n4\nY\n")
        assert changed_lines(entries) == {2, 5}
        assert all(e.type is ChangeType.MODIFIED for e in entries)

    def test_adding_trailing_newline(self):
        entries = diff("a", "a\n")
        assert [(e.type, e.line_number, e.new_text) for e in entries] == [(ChangeType.ADDED, 2, "")]

    def test_ordered_by_line_number(self):
        entries = diff("a\nb\nc\nd\n", "x\nb\nd\ny\n")
        numbers = [e.line_number for e in entries]
        assert numbers == sorted(numbers)


class TestStats:
    def test_counts_by_type(self):
        entries = diff("a\nb\nc\nd\n", "a\nB\nd\ne\n")
        s = stats(entries)
        assert (s.added, s.deleted, s.modified) == (1, 1, 1)
        assert s.lines_changed == 3
        assert s.as_dict() == {"lines_added": 1, "lines_deleted": 1, "lines_modified": 1}

    def test_to_dict(self):
        [entry] = diff("a\nb\n", "a\nc\n")
        assert entry.to_dict() == {
            "line_number": 2,
            "type": "modified",
            "old_text": "b",
            "new_text": "c",
            "old_line_number": 2,
        }


class TestCancellation:
    def test_cancelled_token_aborts(self):
        token = CancelToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            diff("a\nb\n", "c\nd\n", cancel_token=token)

    def test_expired_deadline_aborts(self):
        token = CancelToken.with_timeout(-1)
        with pytest.raises(AnalysisCancelledError):
            diff("a\nb\n", "c\nd\n", cancel_token=token)

    def test_identical_content_never_checks(self):
        token = CancelToken()
        token.cancel()
        assert diff("same", "same", cancel_token=token) == []


def _table_alignment(old, new):
    """Full-table LCS backtrack, removal first on ties."""
    n, m = len(old), len(new)
    lcs = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        for j in range(m - 1, -1, -1):
            if old[i] == new[j]:
                lcs[i][j] = lcs[i + 1][j + 1] + 1
            else:
                lcs[i][j] = max(lcs[i + 1][j], lcs[i][j + 1])
    ops = []
    i = j = 0
    while i < n and j < m:
        if old[i] == new[j]:
            ops.append(("equal", i, j))
            i, j = i + 1, j + 1
        elif lcs[i + 1][j] >= lcs[i][j + 1]:
            ops.append(("delete", i, j))
            i += 1
        else:
            ops.append(("insert", i, j))
            j += 1
    ops.extend(("delete", k, j) for k in range(i, n))
    ops.extend(("insert", i, k) for k in range(j, m))
    return ops


class TestAlignment:
    @pytest.mark.parametrize("seed", range(40))
    def test_matches_full_table_backtrack(self, seed):
        rng = random.Random(seed)
        old = [rng.choice("abcd") for _ in range(rng.randint(0, 30))]
        new = [rng.choice("abcd") for _ in range(rng.randint(0, 30))]
        assert _align(old, new, None) == _table_alignment(old, new)

    def test_tie_prefers_removal(self):
        assert _align(["a", "b"], ["b", "a"], None) == [("delete", 0, 0), ("equal", 1, 0), ("insert", 2, 1)]

    def test_wide_rows(self):
        # Rows wider than a machine word still carry correctly.
        old = [f"line {k}" for k in range(200)]
        new = old[:70] + ["inserted"] + old[70:150] + old[151:]
        entries = diff("\n".join(old), "\n".join(new))
        assert [(e.type, e.line_number) for e in entries] == [
            (ChangeType.ADDED, 71),
            (ChangeType.DELETED, 152),
        ]


class TestLargeInputs:
    def test_complete_rewrite(self):
        old = "\n".join(f"old {k}" for k in range(5000))
        new = "\n".join(f"new {k}" for k in range(5000))
        entries = diff(old, new)
        assert len(entries) == 5000
        assert all(e.type is ChangeType.MODIFIED for e in entries)
        assert entries[-1].line_number == 5000

    def test_scattered_edits_in_a_large_file(self):
        old_lines = [f"const v{k} = {k};" for k in range(15000)]
        new_lines = list(old_lines)
        for k in range(0, 15000, 1000):
            new_lines[k] = f"const v{k} = -{k};"
        entries = diff("\n".join(old_lines), "\n".join(new_lines))
        assert changed_lines(entries) == {k + 1 for k in range(0, 15000, 1000)}
        assert stats(entries).modified == 15
