"""folder command: batch analysis of a folder."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from difflens_cli.factory import get_service
from difflens_cli.render import score_style

console = Console()


@click.command("folder")
@click.argument("folder")
@click.option("--user", "user_id", default=None, help="Owner scope prepended to FOLDER.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@click.pass_context
def folder_cmd(ctx, folder: str, user_id: str | None, as_json: bool):
    """Analyze every code file under FOLDER and grade each on a 0-10 scale.

    Each analyzed file is also saved as a version so later incremental
    reviews have a baseline.
    """
    report = get_service(ctx).analyze_folder(folder, user_id=user_id)
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    table = Table(title=f"Folder Analysis: {folder}", show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Language", width=12)
    table.add_column("Issues", justify="right", width=8)
    table.add_column("Score", justify="right", width=8)
    table.add_column("Result", width=8)
    for f in report.files:
        style = score_style(f.quality_score, scale=10)
        table.add_row(
            f.file_name,
            f.language,
            str(len(f.analysis.issues)),
            f"[{style}]{f.quality_score}[/{style}]",
            "[green]pass[/green]" if f.passed else "[red]fail[/red]",
        )
    console.print(table)

    m = report.metrics
    style = score_style(m.overall_score, scale=10)
    console.print(f"  Files:        {m.analyzed_files} analyzed, {m.skipped_files} skipped, {m.total_files} total")
    console.print(f"  Pass rate:    {m.pass_rate}% ({m.passed_files} passed, {m.failed_files} failed)")
    console.print(
        f"  Issues:       {m.total_issues} ({m.critical_issues} critical, {m.error_issues} error, "
        f"{m.warning_issues} warning, {m.info_issues} info)"
    )
    console.print(f"  Folder score: [{style}]{m.overall_score}/10[/{style}]")
