"""Documentation pass: file headers, function docs, unexplained complex lines."""

from __future__ import annotations

import re

from difflens_core.analysis.models import Dimension, FileKind, Issue, Severity

MAX_BRANCHES_PER_LINE = 3

_HEADER_PREFIXES = ("/*", "//", '"""', "'''", "#")
_JS_DECL_RE = re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s+\w+|^\s*(?:export\s+)?const\s+\w+\s*=\s*(?:async\s*)?\(")
_PY_DEF_RE = re.compile(r"^\s*(?:async\s+)?def\s+\w+")
_DOCSTRING_PREFIXES = ('"""', "'''", 'r"""', "r'''")
_BRANCH_RE = re.compile(r"\b(?:if|else|elif|for|while|switch|case|and|or)\b|\?|&&|\|\|")


def _issue(category, line, message, suggestion) -> Issue:
    return Issue(Dimension.DOCUMENTATION, category, Severity.INFO, line, message, suggestion)


def documentation_pass(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    if not kind.is_documented:
        return []

    issues: list[Issue] = []
    if content.strip() and not content.lstrip().startswith(_HEADER_PREFIXES):
        issues.append(
            _issue(
                "file-header",
                0,
                "Missing file-level documentation",
                "Add a file-level comment describing the purpose and contents of this file",
            )
        )

    if kind is FileKind.PYTHON:
        issues.extend(_undocumented_python_functions(lines))
    elif kind.is_script:
        issues.extend(_undocumented_js_functions(lines))

    comment_prefix = "#" if kind is FileKind.PYTHON else "//"
    for index, line in enumerate(lines):
        if len(_BRANCH_RE.findall(line)) <= MAX_BRANCHES_PER_LINE:
            continue
        previous = lines[index - 1].strip() if index > 0 else ""
        if not previous.startswith(comment_prefix):
            issues.append(
                _issue(
                    "code-clarity",
                    index + 1,
                    "Complex logic without explanation",
                    "Add a comment explaining the logic flow",
                )
            )
    return issues


def _undocumented_js_functions(lines: list[str]) -> list[Issue]:
    issues = []
    for index, line in enumerate(lines):
        if not _JS_DECL_RE.search(line) or "= () =>" in line:
            continue
        previous = lines[index - 1].strip() if index > 0 else ""
        if previous.endswith("*/") or previous.startswith(("/**", "//")):
            continue
        issues.append(
            _issue(
                "function-docs",
                index + 1,
                "Function lacks documentation",
                "Add a JSDoc comment describing parameters, return value, and purpose",
            )
        )
    return issues


def _undocumented_python_functions(lines: list[str]) -> list[Issue]:
    issues = []
    for index, line in enumerate(lines):
        if not _PY_DEF_RE.match(line):
            continue
        # The signature may span several lines; the body starts after the ':' line.
        body_start = index
        while body_start < len(lines) and not lines[body_start].rstrip().endswith(":"):
            body_start += 1
        first_statement = ""
        for candidate in lines[body_start + 1 :]:
            if candidate.strip():
                first_statement = candidate.strip()
                break
        if first_statement.startswith(_DOCSTRING_PREFIXES):
            continue
        issues.append(
            _issue(
                "function-docs",
                index + 1,
                "Function lacks documentation",
                "Add a docstring describing parameters, return value, and purpose",
            )
        )
    return issues
