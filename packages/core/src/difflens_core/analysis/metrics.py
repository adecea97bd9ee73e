"""Size and complexity metrics."""

from __future__ import annotations

import re

from difflens_core.analysis.models import FileKind, Metrics

MAX_COMPLEXITY = 100

_BRANCH_KEYWORDS_RE = re.compile(r"\b(?:if|elif|else|for|while|case|catch|except)\b|\?|&&|\|\|")


def _comment_prefixes(kind: FileKind) -> tuple[str, ...]:
    if kind is FileKind.PYTHON:
        return ("#",)
    if kind is FileKind.HTML:
        return ("<!--",)
    return ("//", "/*", "*")


def compute_metrics(content: str, lines: list[str], kind: FileKind) -> Metrics:
    prefixes = _comment_prefixes(kind)
    non_blank = [line.strip() for line in lines if line.strip()]
    comment_lines = sum(1 for line in non_blank if line.startswith(prefixes))
    code_lines = len(non_blank) - comment_lines

    complexity = min(MAX_COMPLEXITY, len(_BRANCH_KEYWORDS_RE.findall(content)) * 2)
    avg_line_length = len(content) / code_lines if code_lines > 0 else 0
    maintainability = max(0.0, min(100.0, 100 - complexity / 2 - avg_line_length / 5))

    return Metrics(
        total_lines=len(lines),
        code_lines=code_lines,
        comment_lines=comment_lines,
        blank_lines=len(lines) - len(non_blank),
        file_size=len(content.encode("utf-8")),
        complexity_score=complexity,
        maintainability_index=round(maintainability, 1),
    )
