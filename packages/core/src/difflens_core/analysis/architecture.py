"""Architecture pass: module size, fan-out, export shape, nesting depth.

Whole-file findings are reported at line 0. They are not tied to a line and
are only surfaced by full reviews, never by incremental ones.
"""

from __future__ import annotations

import re

from difflens_core.analysis.models import Dimension, FileKind, Issue, Severity

MAX_FILE_KB = 500
MAX_FUNCTIONS = 20
MAX_IMPORTS = 15
MAX_NAMED_EXPORTS = 5
MAX_INDENT = 24

FUNCTION_RE = re.compile(r"function\s+\w+|const\s+\w+\s*=\s*(?:async\s*)?\(|^\s*(?:async\s+)?def\s+\w+", re.MULTILINE)
_IMPORT_RE = re.compile(r"^\s*(?:import|from)\s+.+$", re.MULTILINE)
_NAMED_EXPORT_RE = re.compile(r"export\s+(?:const|let|var|function|class)\b")


def _issue(category, severity, line, message, suggestion) -> Issue:
    return Issue(Dimension.ARCHITECTURE, category, severity, line, message, suggestion)


def architecture_pass(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    issues: list[Issue] = []

    size_kb = len(content.encode("utf-8")) / 1024
    if size_kb > MAX_FILE_KB:
        issues.append(
            _issue(
                "modularity",
                Severity.WARNING,
                0,
                f"Large file size: {size_kb:.2f} KB",
                "Consider splitting into smaller, more focused modules",
            )
        )

    function_count = len(FUNCTION_RE.findall(content))
    if function_count > MAX_FUNCTIONS:
        issues.append(
            _issue(
                "modularity",
                Severity.INFO,
                0,
                f"High function count: {function_count}",
                "Consider splitting this file into multiple modules",
            )
        )

    import_count = len(_IMPORT_RE.findall(content))
    if import_count > MAX_IMPORTS:
        issues.append(
            _issue(
                "dependencies",
                Severity.INFO,
                0,
                f"High number of imports: {import_count}",
                "Consider reducing dependencies or splitting into focused modules",
            )
        )

    named_exports = len(_NAMED_EXPORT_RE.findall(content))
    if "export default" in content and named_exports > MAX_NAMED_EXPORTS:
        issues.append(
            _issue(
                "module-design",
                Severity.INFO,
                0,
                "Mixed default and named exports",
                "Consider using only named exports for better tree-shaking",
            )
        )

    for number, line in enumerate(lines, 1):
        stripped = line.lstrip()
        if stripped and len(line) - len(stripped) > MAX_INDENT:
            issues.append(
                _issue(
                    "complexity",
                    Severity.WARNING,
                    number,
                    "Deeply nested code (>6 levels)",
                    "Refactor to reduce nesting - extract functions or use early returns",
                )
            )

    return issues
