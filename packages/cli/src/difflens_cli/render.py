"""Rich tables shared by the review, folder and diff commands."""

from __future__ import annotations

from rich.table import Table

SEVERITY_STYLE = {"critical": "bold red", "error": "red", "warning": "yellow", "info": "blue"}
CHANGE_STYLE = {"added": ("green", "+"), "deleted": ("red", "-"), "modified": ("yellow", "~")}


def score_style(score: float, scale: int = 100) -> str:
    ratio = score / scale
    if ratio >= 0.8:
        return "green"
    if ratio >= 0.6:
        return "yellow"
    return "red"


def issues_table(issues: list[dict], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Line", justify="right", width=6)
    table.add_column("Severity", width=10)
    table.add_column("Dimension", width=14)
    table.add_column("Category", width=18)
    table.add_column("Message")
    for issue in issues:
        severity = issue.get("severity", "info")
        style = SEVERITY_STYLE.get(severity, "white")
        line = issue.get("line", 0)
        table.add_row(
            str(line) if line else "file",
            f"[{style}]{severity}[/{style}]",
            issue.get("type", ""),
            issue.get("category", ""),
            issue.get("message", ""),
        )
    return table


def scores_table(dimension_scores: dict[str, int], overall: int) -> Table:
    table = Table(title="Scores", show_header=True, header_style="bold cyan")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    for name, score in dimension_scores.items():
        style = score_style(score)
        table.add_row(name, f"[{style}]{score}[/{style}]")
    style = score_style(overall)
    table.add_row("[bold]overall[/bold]", f"[bold {style}]{overall}[/bold {style}]")
    return table
