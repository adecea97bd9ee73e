"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    review() → _build_prompt()
             → _call_with_retry() → _call_api()   ← only this differs per provider
             → parse_review()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from difflens_store.models import utc_now

if TYPE_CHECKING:
    from difflens_core.analysis.models import AnalysisResult

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 4096

EMPTY_SUMMARY = "AI analysis completed successfully."

_HEADING_RE = re.compile(r"^(?:\d+\.\s+.+|\*\*.+\*\*.*|#+\s+.+)$")


@dataclass
class AIReviewSection:
    title: str
    content: str = ""
    points: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content, "points": list(self.points)}


@dataclass
class AIReview:
    summary: str
    sections: list[AIReviewSection] = field(default_factory=list)
    model: str = ""
    provider: str = ""
    raw: str = ""
    reviewed_at: str = field(default_factory=utc_now)

    @property
    def empty(self) -> bool:
        return not self.raw

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "sections": [s.to_dict() for s in self.sections],
            "model": self.model,
            "provider": self.provider,
            "raw": self.raw,
            "reviewed_at": self.reviewed_at,
        }


def _heading_title(line: str) -> str:
    title = re.sub(r"^\d+\.\s+", "", line)
    title = re.sub(r"^#+\s+", "", title)
    title = re.sub(r"^\*\*", "", title)
    title = re.sub(r"\*\*:?$", "", title)
    return title.replace("**", "").strip().rstrip(":")


def parse_review(raw: str) -> tuple[str, list[AIReviewSection]]:
    """Split a free-text review into a summary and titled sections.

    Numbered (``1. Security``), bold (``**Security**``) and markdown
    (``## Security``) lines open a section. Bullets (``-`` / ``*``) become
    points; other lines are joined into the section's prose. Text before the
    first heading is the summary.
    """
    summary: list[str] = []
    sections: list[AIReviewSection] = []
    current: AIReviewSection | None = None

    for line in raw.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if _HEADING_RE.match(stripped):
            current = AIReviewSection(title=_heading_title(stripped))
            sections.append(current)
        elif current is None:
            summary.append(stripped)
        elif stripped.startswith(("-", "*")):
            current.points.append(re.sub(r"^[-*]\s*", "", stripped))
        else:
            current.content = f"{current.content} {stripped}" if current.content else stripped

    return " ".join(summary) or EMPTY_SUMMARY, sections


class BaseReviewer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    PROVIDER: str = ""
    MODEL: str = ""

    def review(self, file_name: str, content: str, analysis: AnalysisResult) -> AIReview:
        """Ask the model for a narrative review informed by the static analysis."""
        prompt = self._build_prompt(file_name, content, analysis)
        raw = self._call_with_retry(self._system_prompt(), prompt)
        if raw is None:
            return AIReview(summary="", model=self.MODEL, provider=self.PROVIDER)
        summary, sections = parse_review(raw)
        return AIReview(summary=summary, sections=sections, model=self.MODEL, provider=self.PROVIDER, raw=raw)

    def is_available(self) -> bool:
        """Cheap health check. Hosted APIs are assumed reachable."""
        return True

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)

    def _system_prompt(self) -> str:
        return "You are an expert code reviewer. Be concise, concrete and actionable."

    def _build_prompt(self, file_name: str, content: str, analysis: AnalysisResult) -> str:
        counts = analysis.severity_counts()
        return f"""Analyze the following code and provide detailed insights.

File: {file_name}

Static Analysis Summary:
- Total Lines: {analysis.metrics.total_lines}
- Code Lines: {analysis.metrics.code_lines}
- Overall Score: {analysis.overall_score}/100
- Critical: {counts["critical"]}
- Errors: {counts["error"]}
- Warnings: {counts["warning"]}

Code:
```
{content}
```

Please provide:
1. Overall code quality assessment
2. Architecture and design patterns observations
3. Security considerations
4. Performance optimization suggestions
5. Best practices and maintainability recommendations

Format your response as a structured analysis with clear sections."""
