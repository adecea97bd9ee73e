"""review command: full or incremental review of one file."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.panel import Panel

from difflens_cli.factory import get_service
from difflens_cli.render import issues_table, score_style, scores_table
from difflens_core.incremental import IncrementalStatus
from difflens_store.blob import clean_file_name

console = Console()


@click.command("review")
@click.argument("file_key")
@click.option("--name", "file_name", default=None, help="File name used to pick the rule set.")
@click.option(
    "--incremental",
    "-i",
    is_flag=True,
    help="Only report issues near lines changed since the last saved version.",
)
@click.option("--ai", "with_ai", is_flag=True, help="Add an AI-written review (full reviews only).")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@click.option("--user", "user_id", default=None, help="Owner recorded on the review.")
@click.pass_context
def review_cmd(ctx, file_key: str, file_name: str | None, incremental: bool, with_ai: bool, as_json: bool, user_id):
    """Review FILE_KEY across lint, security, architecture, quality and documentation.

    \b
    A full review saves a version and records every finding. An incremental
    review compares against the last saved version and records only findings
    within a couple of lines of what changed; it never saves a version.
    """
    if incremental and with_ai:
        raise click.UsageError("--ai can only be combined with a full review.")

    service = get_service(ctx)
    if incremental:
        _incremental(service, file_key, file_name, user_id, as_json)
        return

    analysis, record = service.run_full_review(file_key, file_name=file_name, user_id=user_id)
    ai = None
    if with_ai:
        content = service.blobs.read_text(file_key)
        ai = service.ai_review(file_name or clean_file_name(file_key), content, analysis)

    if as_json:
        payload = {"review_id": record.id, "analysis": analysis.to_dict()}
        if ai is not None:
            payload["ai_review"] = ai.to_dict()
        click.echo(json.dumps(payload, indent=2))
        return

    issues = [i.to_dict() for i in analysis.issues]
    if issues:
        console.print(issues_table(issues, title=f"Full review: {file_key}"))
    else:
        console.print("[green]No issues found.[/green]")
    console.print(scores_table(record.metrics["dimension_scores"], analysis.overall_score))
    quality = analysis.quality_score
    style = score_style(quality, scale=10)
    console.print(f"Quality score: [{style}]{quality}/10[/{style}]")

    if ai is not None:
        if ai.empty:
            console.print("[yellow]The AI reviewer returned no response.[/yellow]")
        else:
            body = "\n\n".join(
                [ai.summary]
                + [f"[bold]{s.title}[/bold]\n{s.content}" + "".join(f"\n  • {p}" for p in s.points) for s in ai.sections]
            )
            console.print(Panel(body, title=f"AI review ({ai.provider} {ai.model})"))


def _incremental(service, file_key, file_name, user_id, as_json):
    result = service.run_incremental_analysis(file_key, file_name=file_name, user_id=user_id)
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.status is IncrementalStatus.REQUIRES_FULL_REVIEW:
        console.print(
            f"[yellow]No saved version of {file_key}. Run `difflens review {file_key}` for a full review first.[/yellow]"
        )
        return
    if result.status is IncrementalStatus.NO_CHANGES:
        console.print("[green]No changes since the last saved version.[/green]")
        return

    m = result.metrics
    console.print(
        f"{m['lines_changed']} changed line(s): "
        f"[green]+{m['lines_added']}[/green] [red]-{m['lines_deleted']}[/red] [yellow]~{m['lines_modified']}[/yellow]"
    )
    issues = [i.to_dict() for i in result.issues]
    if issues:
        console.print(issues_table(issues, title=f"Incremental review: {file_key}"))
    else:
        console.print("[green]No issues near the changed lines.[/green]")
