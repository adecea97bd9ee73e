"""Dimension scores.

Every dimension starts at 100 and loses its issues' severity penalties, but
the result is clamped to a floor of ``100 - max_deduction``: 50 for every
dimension except security, which can reach 0. A dimension buried under issues
therefore still reports its floor; only security is allowed to
bottom out completely.
"""

from __future__ import annotations

from difflens_core.analysis.models import Dimension, Issue


def score_dimension(dimension: Dimension, issues: list[Issue]) -> int:
    penalty = sum(issue.severity.penalty for issue in issues)
    return max(dimension.floor, 100 - penalty)


def score_all(issues: list[Issue]) -> dict[Dimension, int]:
    return {d: score_dimension(d, [i for i in issues if i.type is d]) for d in Dimension}


def overall_score(scores: dict[Dimension, int]) -> int:
    if not scores:
        return 100
    return round(sum(scores.values()) / len(scores))
