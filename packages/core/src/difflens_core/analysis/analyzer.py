"""Multi-dimensional static analyzer.

Runs the five independent passes over one content blob and merges their
issues in the fixed PASSES order, regardless of which pass finishes first, so
issue ordering is reproducible whether passes run sequentially or on a pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable

from difflens_core.analysis.architecture import architecture_pass
from difflens_core.analysis.documentation import documentation_pass
from difflens_core.analysis.lint import lint_pass
from difflens_core.analysis.metrics import compute_metrics
from difflens_core.analysis.models import AnalysisResult, Dimension, FileKind, Issue, Severity
from difflens_core.analysis.quality import quality_pass
from difflens_core.analysis.scoring import overall_score, score_all
from difflens_core.analysis.security import security_pass
from difflens_core.diff import split_lines
from difflens_store.errors import AnalysisPassFailure

if TYPE_CHECKING:
    from difflens_core.cancel import CancelToken

logger = logging.getLogger(__name__)

AnalysisPass = Callable[[str, "list[str]", FileKind], "list[Issue]"]

PASSES: tuple[tuple[Dimension, AnalysisPass], ...] = (
    (Dimension.LINT, lint_pass),
    (Dimension.SECURITY, security_pass),
    (Dimension.ARCHITECTURE, architecture_pass),
    (Dimension.QUALITY, quality_pass),
    (Dimension.DOCUMENTATION, documentation_pass),
)


def run_pass(dimension: Dimension, analysis_pass: AnalysisPass, content: str, lines: list[str], kind: FileKind):
    """Run one pass; an internal failure becomes a single error issue for that dimension."""
    try:
        return analysis_pass(content, lines, kind)
    except AnalysisPassFailure as e:
        logger.warning("%s pass failed at line %d: %s", dimension.value, e.line, e.message)
        line, message = e.line, e.message
    except Exception as e:
        logger.exception("%s pass raised unexpectedly", dimension.value)
        line, message = 0, f"{type(e).__name__}: {e}"
    return [
        Issue(
            type=dimension,
            category="analysis-failure",
            severity=Severity.ERROR,
            line=line,
            message=f"{dimension.label} analysis failed: {message}",
            suggestion="Check the file for constructs the analyzer cannot handle",
        )
    ]


def analyze(
    content: str,
    file: str | FileKind,
    *,
    parallel: bool = False,
    cancel_token: CancelToken | None = None,
) -> AnalysisResult:
    """Analyze ``content`` as the kind inferred from ``file`` (a name or a FileKind)."""
    kind = file if isinstance(file, FileKind) else FileKind.from_file_name(file)
    lines = split_lines(content)

    if cancel_token is not None:
        cancel_token.check()

    if parallel:
        with ThreadPoolExecutor(max_workers=len(PASSES), thread_name_prefix="difflens-pass") as pool:
            futures = [pool.submit(run_pass, dim, fn, content, lines, kind) for dim, fn in PASSES]
            per_pass = []
            for future in futures:
                if cancel_token is not None and cancel_token.cancelled:
                    for pending in futures:
                        pending.cancel()
                    cancel_token.check()
                per_pass.append(future.result())
    else:
        per_pass = []
        for dim, fn in PASSES:
            if cancel_token is not None:
                cancel_token.check()
            per_pass.append(run_pass(dim, fn, content, lines, kind))

    if cancel_token is not None:
        cancel_token.check()

    issues = [issue for pass_issues in per_pass for issue in pass_issues]
    scores = score_all(issues)
    result = AnalysisResult(
        issues=issues,
        metrics=compute_metrics(content, lines, kind),
        dimension_scores=scores,
        overall_score=overall_score(scores),
        file_kind=kind,
    )
    logger.debug("Analyzed %s content: %d issue(s), overall %d", kind.value, len(issues), result.overall_score)
    return result
