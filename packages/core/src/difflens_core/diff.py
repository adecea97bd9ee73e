"""Line-level diff engine.

Conventions (fixed so results are reproducible and testable):

- Lines are split on "\\n" exactly like ``str.split("\\n")``. A final newline
  therefore yields a trailing empty line: ``"a\\n"`` is ``["a", ""]``. The
  split is injective, so the changed-line set is empty iff both contents are
  identical.
- Alignment is an LCS over the region left after trimming the common
  prefix and suffix. Backtracking prefers the removal when both directions
  tie.
- Inside each change hunk (a maximal run between two matched lines) the k-th
  removed line is paired with the k-th inserted line as ``modified``.
  Unpaired insertions are ``added``, unpaired removals ``deleted``.
- ``modified`` and ``added`` entries use the 1-based line number in the new
  content. ``deleted`` entries are anchored on the new-content line that now
  sits where the removed text was (clamped to the last new line, minimum 1);
  the removed line's own position is kept in ``old_line_number``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from difflens_core.cancel import CancelToken


class ChangeType(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclass(frozen=True)
class DiffEntry:
    line_number: int
    type: ChangeType
    old_text: str | None = None
    new_text: str | None = None
    old_line_number: int | None = None

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "type": self.type.value,
            "old_text": self.old_text,
            "new_text": self.new_text,
            "old_line_number": self.old_line_number,
        }


@dataclass(frozen=True)
class DiffStats:
    added: int = 0
    deleted: int = 0
    modified: int = 0

    @property
    def lines_changed(self) -> int:
        return self.added + self.deleted + self.modified

    def as_dict(self) -> dict:
        return {
            "lines_added": self.added,
            "lines_deleted": self.deleted,
            "lines_modified": self.modified,
        }


def split_lines(content: str) -> list[str]:
    return content.split("\n")


def diff(old_content: str, new_content: str, cancel_token: CancelToken | None = None) -> list[DiffEntry]:
    """Return the ordered edit script turning ``old_content`` into ``new_content``."""
    if old_content == new_content:
        return []

    old = split_lines(old_content)
    new = split_lines(new_content)

    prefix = 0
    while prefix < len(old) and prefix < len(new) and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(old) - prefix
        and suffix < len(new) - prefix
        and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]
    ):
        suffix += 1

    old_mid = old[prefix : len(old) - suffix]
    new_mid = new[prefix : len(new) - suffix]

    ops = _align(old_mid, new_mid, cancel_token)
    entries = _classify(ops, old_mid, new_mid, prefix, len(new))
    return sorted(entries, key=lambda e: e.line_number)


def _align(old: list[str], new: list[str], cancel_token: CancelToken | None) -> list[tuple[str, int, int]]:
    """LCS alignment returning ("equal"|"delete"|"insert", old_idx, new_idx) ops.

    Rows are bit-parallel LCS rows over the reversed inputs, one bit per
    cell: ``rows[r]`` compares the last ``r`` old lines with the reversed new
    lines, and bit ``k`` is clear where extending the new suffix to ``k + 1``
    lines raises the LCS by one.
    """
    n, m = len(old), len(new)
    full = (1 << m) - 1
    masks: dict[str, int] = {}
    for k, line in enumerate(reversed(new)):
        masks[line] = masks.get(line, 0) | (1 << k)

    rows = [full]
    v = full
    for line in reversed(old):
        if cancel_token is not None:
            cancel_token.check()
        match = masks.get(line, 0)
        if match:
            v = ((v + (v & match)) | (v & ~match)) & full
        rows.append(v)

    def suffix_lcs(i: int, j: int) -> int:
        # LCS length of old[i:] and new[j:]
        k = m - j
        return k - (rows[n - i] & ((1 << k) - 1)).bit_count()

    ops: list[tuple[str, int, int]] = []
    i = j = 0
    while i < n and j < m:
        if old[i] == new[j]:
            ops.append(("equal", i, j))
            i += 1
            j += 1
        elif suffix_lcs(i + 1, j) >= suffix_lcs(i, j + 1):
            ops.append(("delete", i, j))
            i += 1
        else:
            ops.append(("insert", i, j))
            j += 1
    while i < n:
        ops.append(("delete", i, j))
        i += 1
    while j < m:
        ops.append(("insert", i, j))
        j += 1
    return ops


def _classify(
    ops: list[tuple[str, int, int]],
    old: list[str],
    new: list[str],
    offset: int,
    new_total: int,
) -> list[DiffEntry]:
    entries: list[DiffEntry] = []
    deletes: list[tuple[int, int]] = []
    inserts: list[int] = []

    def flush() -> None:
        paired = min(len(deletes), len(inserts))
        for k in range(paired):
            old_idx, _ = deletes[k]
            new_idx = inserts[k]
            entries.append(
                DiffEntry(
                    line_number=offset + new_idx + 1,
                    type=ChangeType.MODIFIED,
                    old_text=old[old_idx],
                    new_text=new[new_idx],
                    old_line_number=offset + old_idx + 1,
                )
            )
        for new_idx in inserts[paired:]:
            entries.append(DiffEntry(line_number=offset + new_idx + 1, type=ChangeType.ADDED, new_text=new[new_idx]))
        if len(deletes) > paired:
            # First new line after the hunk's own new lines.
            hunk_start = min(deletes[0][1], inserts[0]) if inserts else deletes[0][1]
            anchor = offset + hunk_start + len(inserts) + 1
        for old_idx, _ in deletes[paired:]:
            entries.append(
                DiffEntry(
                    line_number=max(1, min(anchor, new_total)),
                    type=ChangeType.DELETED,
                    old_text=old[old_idx],
                    old_line_number=offset + old_idx + 1,
                )
            )
        deletes.clear()
        inserts.clear()

    for op, i, j in ops:
        if op == "equal":
            flush()
        elif op == "delete":
            deletes.append((i, j))
        else:
            inserts.append(j)
    flush()
    return entries


def changed_lines(entries: list[DiffEntry]) -> set[int]:
    return {e.line_number for e in entries}


def stats(entries: list[DiffEntry]) -> DiffStats:
    return DiffStats(
        added=sum(1 for e in entries if e.type is ChangeType.ADDED),
        deleted=sum(1 for e in entries if e.type is ChangeType.DELETED),
        modified=sum(1 for e in entries if e.type is ChangeType.MODIFIED),
    )
