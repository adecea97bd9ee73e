"""Analyzer data model: severities, dimensions, file kinds, issues, results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def penalty(self) -> int:
        return _PENALTIES[self]

    @property
    def rank(self) -> int:
        return _RANKS[self]


_PENALTIES = {Severity.CRITICAL: 15, Severity.ERROR: 10, Severity.WARNING: 5, Severity.INFO: 1}
_RANKS = {Severity.CRITICAL: 3, Severity.ERROR: 2, Severity.WARNING: 1, Severity.INFO: 0}


class Dimension(str, Enum):
    LINT = "lint"
    SECURITY = "security"
    ARCHITECTURE = "architecture"
    QUALITY = "quality"
    DOCUMENTATION = "documentation"

    @property
    def max_deduction(self) -> int:
        # Security may drop to 0; every other dimension bottoms out at 50.
        return 100 if self is Dimension.SECURITY else 50

    @property
    def floor(self) -> int:
        return 100 - self.max_deduction

    @property
    def label(self) -> str:
        return dimension_label(self)


def dimension_label(dimension: Dimension) -> str:
    """Human label for a dimension. Unknown values raise instead of falling back."""
    if dimension is Dimension.LINT:
        return "Linting"
    if dimension is Dimension.SECURITY:
        return "Security"
    if dimension is Dimension.ARCHITECTURE:
        return "Architecture"
    if dimension is Dimension.QUALITY:
        return "Code Quality"
    if dimension is Dimension.DOCUMENTATION:
        return "Documentation"
    raise ValueError(f"Unknown analysis dimension: {dimension!r}")


class FileKind(str, Enum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    CSS = "css"
    HTML = "html"
    JSON = "json"
    JAVA = "java"
    OTHER = "other"

    @classmethod
    def from_file_name(cls, file_name: str) -> FileKind:
        name = file_name.rsplit("/", 1)[-1]
        if "." not in name:
            return cls.OTHER
        return _EXTENSION_KINDS.get(name.rsplit(".", 1)[-1].lower(), cls.OTHER)

    @property
    def is_script(self) -> bool:
        """JavaScript-family sources share the JS rule set."""
        return self in (FileKind.JAVASCRIPT, FileKind.TYPESCRIPT)

    @property
    def is_documented(self) -> bool:
        """Kinds the documentation pass applies to."""
        return self in (FileKind.JAVASCRIPT, FileKind.TYPESCRIPT, FileKind.PYTHON, FileKind.JAVA)


_EXTENSION_KINDS = {
    "js": FileKind.JAVASCRIPT,
    "jsx": FileKind.JAVASCRIPT,
    "mjs": FileKind.JAVASCRIPT,
    "cjs": FileKind.JAVASCRIPT,
    "ts": FileKind.TYPESCRIPT,
    "tsx": FileKind.TYPESCRIPT,
    "py": FileKind.PYTHON,
    "css": FileKind.CSS,
    "scss": FileKind.CSS,
    "sass": FileKind.CSS,
    "less": FileKind.CSS,
    "html": FileKind.HTML,
    "htm": FileKind.HTML,
    "json": FileKind.JSON,
    "java": FileKind.JAVA,
}


@dataclass(frozen=True)
class Issue:
    """One finding from one dimension. ``line == 0`` marks a file-level issue."""

    type: Dimension
    category: str
    severity: Severity
    line: int
    message: str
    suggestion: str
    auto_fixable: bool = False

    @property
    def is_file_level(self) -> bool:
        return self.line == 0

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "category": self.category,
            "severity": self.severity.value,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
            "auto_fixable": self.auto_fixable,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Issue:
        return cls(
            type=Dimension(d["type"]),
            category=d.get("category", ""),
            severity=Severity(d.get("severity", Severity.INFO.value)),
            line=int(d.get("line", 0)),
            message=d.get("message", ""),
            suggestion=d.get("suggestion", ""),
            auto_fixable=bool(d.get("auto_fixable", False)),
        )


@dataclass(frozen=True)
class Metrics:
    total_lines: int = 0
    code_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0
    file_size: int = 0
    complexity_score: int = 0
    maintainability_index: float = 100.0

    def to_dict(self) -> dict:
        return {
            "total_lines": self.total_lines,
            "code_lines": self.code_lines,
            "comment_lines": self.comment_lines,
            "blank_lines": self.blank_lines,
            "file_size": self.file_size,
            "complexity_score": self.complexity_score,
            "maintainability_index": self.maintainability_index,
        }


@dataclass
class AnalysisResult:
    """Output of one analyzer run over one content blob. Never persisted directly."""

    issues: list[Issue] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    dimension_scores: dict[Dimension, int] = field(default_factory=dict)
    overall_score: int = 100
    file_kind: FileKind = FileKind.OTHER

    def issues_for(self, dimension: Dimension) -> list[Issue]:
        return [i for i in self.issues if i.type is dimension]

    def severity_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts

    @property
    def quality_score(self) -> float:
        """Ten-point file grade used by folder reports (passes when > 8)."""
        counts = self.severity_counts()
        score = 10.0
        score -= counts["critical"] * 2
        score -= counts["warning"] * 0.5
        score -= counts["info"] * 0.1
        score -= len(self.issues_for(Dimension.SECURITY)) * 2
        score -= len(self.issues_for(Dimension.ARCHITECTURE)) * 0.5
        score -= len(self.issues_for(Dimension.QUALITY)) * 0.3
        score -= len(self.issues_for(Dimension.DOCUMENTATION)) * 0.2
        return max(0.0, min(10.0, round(score, 1)))

    def to_dict(self) -> dict:
        return {
            "file_kind": self.file_kind.value,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": self.metrics.to_dict(),
            "dimension_scores": {d.value: s for d, s in self.dimension_scores.items()},
            "overall_score": self.overall_score,
            "quality_score": self.quality_score,
            "severity_counts": self.severity_counts(),
        }
