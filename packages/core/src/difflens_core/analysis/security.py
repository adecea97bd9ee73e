"""Security pass: injection sinks, XSS sinks and hard-coded secrets."""

from __future__ import annotations

import re

from difflens_core.analysis.models import Dimension, FileKind, Issue, Severity

_SECRET_PATTERNS = [
    re.compile(r"api[_-]?key\s*[:=]\s*['\"]\w{20,}['\"]", re.IGNORECASE),
    re.compile(r"api[_-]?secret\s*[:=]\s*['\"]\w{20,}['\"]", re.IGNORECASE),
    re.compile(r"password\s*[:=]\s*['\"]\w+['\"]", re.IGNORECASE),
    re.compile(r"token\s*[:=]\s*['\"]\w{20,}['\"]", re.IGNORECASE),
    re.compile(r"secret\s*[:=]\s*['\"]\w{20,}['\"]", re.IGNORECASE),
    re.compile(r"aws[_-]?access[_-]?key(?:[_-]?id)?\s*[:=]\s*['\"]\w+['\"]", re.IGNORECASE),
]

_JS_EVAL_RE = re.compile(r"\beval\s*\(")
_INNER_HTML_RE = re.compile(r"\.innerHTML\s*=(?!=)")
_DOCUMENT_WRITE_RE = re.compile(r"\bdocument\.write(ln)?\s*\(")
# A regex literal with a quantified group that is itself quantified: /(a+)+/
_NESTED_QUANTIFIER_RE = re.compile(r"/[^/\n]*\([^)\n]*[+*]\)[+*{][^/\n]*/")

_PY_EXEC_RE = re.compile(r"(?<![\w.])(exec|eval)\s*\(")
_SQL_KEYWORD_RE = re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE)\b", re.IGNORECASE)
_SQL_FORMATTING_RE = re.compile(r"\bf['\"]|['\"]\s*%\s*[\w(]|\.format\(|['\"]\s*\+\s*\w")
_PICKLE_RE = re.compile(r"\bpickle\.loads?\s*\(")
_YAML_LOAD_RE = re.compile(r"\byaml\.load\s*\(")
_SHELL_TRUE_RE = re.compile(r"\bsubprocess\.\w+\(.*shell\s*=\s*True")


def _issue(category, severity, line, message, suggestion) -> Issue:
    return Issue(Dimension.SECURITY, category, severity, line, message, suggestion)


def security_pass(content: str, lines: list[str], kind: FileKind) -> list[Issue]:
    issues: list[Issue] = []
    if kind.is_script:
        issues.extend(_check_javascript(lines))
    elif kind is FileKind.PYTHON:
        issues.extend(_check_python(lines))
    issues.extend(_check_secrets(lines))
    return issues


def _check_secrets(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if any(pattern.search(line) for pattern in _SECRET_PATTERNS):
            issues.append(
                _issue(
                    "secrets",
                    Severity.CRITICAL,
                    number,
                    "Potential hardcoded secret detected",
                    "Move secrets to environment variables or a secure vault",
                )
            )
    return issues


def _check_javascript(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        if _JS_EVAL_RE.search(line):
            issues.append(
                _issue(
                    "code-injection",
                    Severity.CRITICAL,
                    number,
                    "Use of eval() detected - code injection risk",
                    "Avoid eval(); parse data with JSON.parse() or use explicit logic",
                )
            )
        if _INNER_HTML_RE.search(line):
            issues.append(
                _issue(
                    "xss",
                    Severity.WARNING,
                    number,
                    "Use of innerHTML - XSS vulnerability risk",
                    "Use textContent or sanitize HTML input to prevent XSS",
                )
            )
        if _DOCUMENT_WRITE_RE.search(line):
            issues.append(
                _issue(
                    "xss",
                    Severity.WARNING,
                    number,
                    "Use of document.write() - security and performance risk",
                    "Use modern DOM manipulation methods instead",
                )
            )
        if _NESTED_QUANTIFIER_RE.search(line):
            issues.append(
                _issue(
                    "redos",
                    Severity.WARNING,
                    number,
                    "Potentially unsafe regex - ReDoS vulnerability",
                    "Review the pattern for nested quantifiers that cause catastrophic backtracking",
                )
            )
    return issues


def _check_python(lines: list[str]) -> list[Issue]:
    issues = []
    for number, line in enumerate(lines, 1):
        match = _PY_EXEC_RE.search(line)
        if match:
            issues.append(
                _issue(
                    "code-injection",
                    Severity.CRITICAL,
                    number,
                    f"Use of {match.group(1)}() - code injection risk",
                    f"Avoid {match.group(1)}(); use ast.literal_eval or explicit dispatch instead",
                )
            )
        if "execute(" in line and _SQL_KEYWORD_RE.search(line) and _SQL_FORMATTING_RE.search(line):
            issues.append(
                _issue(
                    "sql-injection",
                    Severity.CRITICAL,
                    number,
                    "Potential SQL injection vulnerability",
                    "Use parameterized queries instead of string formatting",
                )
            )
        if _PICKLE_RE.search(line):
            issues.append(
                _issue(
                    "deserialization",
                    Severity.WARNING,
                    number,
                    "Unpickling data can execute arbitrary code",
                    "Only unpickle trusted data; prefer JSON for external input",
                )
            )
        if _YAML_LOAD_RE.search(line) and "SafeLoader" not in line:
            issues.append(
                _issue(
                    "deserialization",
                    Severity.WARNING,
                    number,
                    "yaml.load() without a safe loader",
                    "Use yaml.safe_load() or pass Loader=yaml.SafeLoader",
                )
            )
        if _SHELL_TRUE_RE.search(line):
            issues.append(
                _issue(
                    "command-injection",
                    Severity.WARNING,
                    number,
                    "subprocess call with shell=True",
                    "Pass an argument list and drop shell=True",
                )
            )
    return issues
