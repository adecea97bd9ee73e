"""Code quality pass: magic numbers, duplication, debt markers, error handling, function length."""

from __future__ import annotations

import re

from difflens_core.analysis.models import Dimension, FileKind, Issue, Severity

DUPLICATE_WINDOW = 5
DUPLICATE_MIN_CHARS = 50
MAX_FUNCTION_LINES = 50

_MAGIC_NUMBER_RE = re.compile(r"\b\d{3,}\b")
_CONSTANT_DECL_RE = re.compile(r"^\s*(?:export\s+)?const\s|^\s*[A-Z][A-Z0-9_]*\s*(?::[^=]+)?=")
_DEBT_MARKER_RE = re.compile(r"(?://|#)\s*(TODO|FIXME|HACK|XXX|BUG)\b", re.IGNORECASE)
_EMPTY_CATCH_INLINE_RE = re.compile(r"\bcatch\s*(?:\([^)]*\))?\s*\{\s*\}")
_CATCH_OPEN_RE = re.compile(r"\bcatch\s*(?:\([^)]*\))?\s*\{\s*$")
_EXCEPT_RE = re.compile(r"^\s*except\b.*:\s*$")
_JS_FUNCTION_RE = re.compile(r"function\s+\w+|const\s+\w+\s*=\s*(?:async\s*)?\(")
_PY_DEF_RE = re.compile(r"^(\s*)(?:async\s+)?def\s+\w+")


def _issue(category, severity, line, message, suggestion) -> Issue:
    return Issue(Dimension.QUALITY, category, severity, line, message, suggestion)


def quality_pass(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    issues: list[Issue] = []
    issues.extend(_magic_numbers(lines))
    issues.extend(_duplicate_blocks(lines))
    issues.extend(_debt_markers(lines))
    issues.extend(_empty_handlers(lines))
    if kind is FileKind.PYTHON:
        issues.extend(_long_python_functions(lines))
    else:
        issues.extend(_long_brace_functions(lines))
    return issues


def _magic_numbers(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if not _MAGIC_NUMBER_RE.search(line):
            continue
        if "//" in line or "#" in line or _CONSTANT_DECL_RE.search(line):
            continue
        issues.append(
            _issue(
                "maintainability",
                Severity.INFO,
                number,
                "Magic number detected",
                "Extract magic numbers into named constants",
            )
        )
    return issues


def _duplicate_blocks(lines: list[str]) -> list[Issue]:
    """Report each repeated run of DUPLICATE_WINDOW lines once, at its later occurrence."""
    issues = []
    seen: dict[str, int] = {}
    previous_was_duplicate = False
    for start in range(len(lines) - DUPLICATE_WINDOW + 1):
        block = "\n".join(lines[start : start + DUPLICATE_WINDOW]).strip()
        is_duplicate = False
        if len(block) > DUPLICATE_MIN_CHARS and not block.startswith(("//", "/*", "#")):
            first = seen.get(block)
            # Overlapping windows of the same run are not duplicates of each other.
            if first is not None and start - first >= DUPLICATE_WINDOW:
                is_duplicate = True
                if not previous_was_duplicate:
                    issues.append(
                        _issue(
                            "duplication",
                            Severity.WARNING,
                            start + 1,
                            f"Duplicate code block (first seen at line {first + 1})",
                            "Extract duplicate code into a reusable function",
                        )
                    )
            seen.setdefault(block, start)
        previous_was_duplicate = is_duplicate
    return issues


def _debt_markers(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        match = _DEBT_MARKER_RE.search(line)
        if match:
            issues.append(
                _issue(
                    "technical-debt",
                    Severity.INFO,
                    number,
                    f"{match.group(1).upper()} comment found",
                    "Address this comment or create a task to track it",
                )
            )
    return issues


def _next_code_line(lines: list[str], index: int) -> str | None:
    for candidate in lines[index + 1 :]:
        if candidate.strip():
            return candidate.strip()
    return None


def _empty_handlers(lines: list[str]) -> list[Issue]:
    issues = []
    for index, line in enumerate(lines):
        empty = False
        if _EMPTY_CATCH_INLINE_RE.search(line):
            empty = True
        elif _CATCH_OPEN_RE.search(line):
            empty = _next_code_line(lines, index) == "}"
        elif _EXCEPT_RE.match(line):
            empty = _next_code_line(lines, index) == "pass"
        if empty:
            issues.append(
                _issue(
                    "error-handling",
                    Severity.WARNING,
                    index + 1,
                    "Empty error handler",
                    "Handle errors appropriately or at least log them",
                )
            )
    return issues


def _long_brace_functions(lines: list[str]) -> list[Issue]:
    issues = []
    start = -1
    depth = 0
    opened = False
    for index, line in enumerate(lines):
        if start < 0 and _JS_FUNCTION_RE.search(line):
            start = index
            depth = 0
            opened = False
        if start < 0:
            continue
        opened = opened or "{" in line
        depth += line.count("{") - line.count("}")
        if opened and depth <= 0:
            length = index - start
            if length > MAX_FUNCTION_LINES:
                issues.append(
                    _issue(
                        "complexity",
                        Severity.WARNING,
                        start + 1,
                        f"Long function: {length} lines",
                        "Break down into smaller, more focused functions",
                    )
                )
            start = -1
    return issues


def _long_python_functions(lines: list[str]) -> list[Issue]:
    issues = []
    for index, line in enumerate(lines):
        match = _PY_DEF_RE.match(line)
        if not match:
            continue
        indent = len(match.group(1))
        end = index
        for cursor in range(index + 1, len(lines)):
            candidate = lines[cursor]
            if not candidate.strip():
                continue
            if len(candidate) - len(candidate.lstrip()) <= indent:
                break
            end = cursor
        length = end - index
        if length > MAX_FUNCTION_LINES:
            issues.append(
                _issue(
                    "complexity",
                    Severity.WARNING,
                    index + 1,
                    f"Long function: {length} lines",
                    "Break down into smaller, more focused functions",
                )
            )
    return issues
