"""Style and lint pass."""

from __future__ import annotations

import re

from difflens_core.analysis import syntax
from difflens_core.analysis.models import Dimension, FileKind, Issue, Severity
from difflens_store.errors import AnalysisPassFailure

MAX_LINE_LENGTH = 120

_VAR_RE = re.compile(r"\bvar\s+")
_LOOSE_EQ_RE = re.compile(r"(?<![=!<>])(==|!=)(?!=)")
_CONSOLE_RE = re.compile(r"\bconsole\.(log|debug|info|warn)\b")
_PRINT_RE = re.compile(r"\bprint\s*\(")
_HEX_COLOR_RE = re.compile(r"#[0-9a-fA-F]{3,6}\b")


def _issue(category, severity, line, message, suggestion, auto_fixable=False) -> Issue:
    return Issue(Dimension.LINT, category, severity, line, message, suggestion, auto_fixable)


def lint_pass(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    issues: list[Issue] = []

    if not content.strip():
        issues.append(
            _issue("quality", Severity.WARNING, 0, "File is empty", "Remove unused files or add content")
        )

    for number, line in enumerate(lines, 1):
        if line.endswith((" ", "\t")):
            issues.append(
                _issue(
                    "style",
                    Severity.INFO,
                    number,
                    "Trailing whitespace detected",
                    "Remove trailing whitespace at the end of the line",
                    auto_fixable=True,
                )
            )
        if len(line) > MAX_LINE_LENGTH:
            issues.append(
                _issue(
                    "style",
                    Severity.INFO,
                    number,
                    f"Line too long ({len(line)} characters)",
                    f"Break this line into multiple lines for better readability (max {MAX_LINE_LENGTH} chars)",
                )
            )

    if kind.is_script:
        issues.extend(_lint_javascript(content, lines, kind))
    elif kind is FileKind.PYTHON:
        issues.extend(_lint_python(content, lines))
    elif kind is FileKind.CSS:
        issues.extend(_lint_css(lines))
    elif kind is FileKind.HTML:
        issues.extend(_lint_html(lines))
    elif kind is FileKind.JSON:
        issues.extend(_syntax_issues(syntax.check_json, content))

    return issues


def _syntax_issues(check, content: str, *args) -> list[Issue]:
    try:
        check(content, *args)
    except AnalysisPassFailure as e:
        return [
            _issue(
                "syntax",
                Severity.ERROR,
                e.line,
                e.message,
                "Fix the syntax error to ensure the code can be parsed",
            )
        ]
    return []


def _lint_javascript(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if _VAR_RE.search(line):
            issues.append(
                _issue(
                    "best-practice",
                    Severity.WARNING,
                    number,
                    'Use of deprecated "var" keyword',
                    'Replace "var" with "const" or "let" for better scoping',
                    auto_fixable=True,
                )
            )
        match = _LOOSE_EQ_RE.search(line)
        if match:
            operator = match.group(1)
            strict = operator + "="
            issues.append(
                _issue(
                    "best-practice",
                    Severity.WARNING,
                    number,
                    f"Use of loose equality ({operator})",
                    f"Use strict equality ({strict}) to avoid type coercion",
                    auto_fixable=True,
                )
            )
        if _CONSOLE_RE.search(line):
            issues.append(
                _issue(
                    "cleanup",
                    Severity.INFO,
                    number,
                    "Console statement detected",
                    "Remove console statements before production deployment",
                    auto_fixable=True,
                )
            )
    issues.extend(_syntax_issues(syntax.check_javascript, content, kind))
    return issues


def _lint_python(content: str, lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if "\t" in line:
            issues.append(
                _issue(
                    "style",
                    Severity.WARNING,
                    number,
                    "Tab character used for indentation",
                    "Use 4 spaces for indentation (PEP 8)",
                    auto_fixable=True,
                )
            )
        if _PRINT_RE.search(line):
            issues.append(
                _issue(
                    "cleanup",
                    Severity.INFO,
                    number,
                    "Print statement detected",
                    "Use proper logging instead of print statements",
                )
            )
    issues.extend(_syntax_issues(syntax.check_python, content))
    return issues


def _lint_css(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if "!important" in line:
            issues.append(
                _issue(
                    "best-practice",
                    Severity.WARNING,
                    number,
                    "Use of !important detected",
                    "Avoid !important; refactor CSS specificity instead",
                )
            )
        if _HEX_COLOR_RE.search(line):
            issues.append(
                _issue(
                    "best-practice",
                    Severity.INFO,
                    number,
                    "Hard-coded color value",
                    "Consider using CSS variables for better maintainability",
                )
            )
    return issues


def _lint_html(lines: list[str]) -> list[Issue]:
    issues = []
    has_doctype = False
    for number, line in enumerate(lines, 1):
        lowered = line.lower()
        if "<!doctype" in lowered:
            has_doctype = True
        if "style=" in lowered:
            issues.append(
                _issue(
                    "best-practice",
                    Severity.INFO,
                    number,
                    "Inline style attribute detected",
                    "Use external CSS for better maintainability",
                )
            )
        if "<img" in lowered and "alt=" not in lowered:
            issues.append(
                _issue(
                    "accessibility",
                    Severity.WARNING,
                    number,
                    "Image missing alt attribute",
                    "Add an alt attribute for accessibility",
                )
            )
    if not has_doctype:
        issues.append(
            _issue(
                "quality",
                Severity.WARNING,
                0,
                "Missing DOCTYPE declaration",
                "Add <!DOCTYPE html> at the beginning of the file",
            )
        )
    return issues
