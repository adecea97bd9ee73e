"""diff command: compare two stored versions."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape

from difflens_cli.factory import get_service
from difflens_cli.render import CHANGE_STYLE

console = Console()


@click.command("diff")
@click.argument("version_a")
@click.argument("version_b", required=False)
@click.option(
    "--against",
    default=None,
    help="Compare VERSION_A with 'latest' or another version id. Defaults to its previous version.",
)
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@click.pass_context
def diff_cmd(ctx, version_a: str, version_b: str | None, against: str | None, as_json: bool):
    """Show the line changes from VERSION_A to VERSION_B (version ids).

    With a single id, compares it with --against, or with the version saved
    before it.
    """
    if version_b and against:
        raise click.UsageError("Pass either VERSION_B or --against, not both.")

    service = get_service(ctx)
    if version_b:
        result = service.get_diff(version_a, version_b)
    else:
        result = service.get_diff_for(version_a, against)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(f"[bold]{result.base.file_key}[/bold]  v{result.base.version} → v{result.target.version}")
    if not result.entries:
        console.print("[green]Identical content.[/green]")
        return

    for entry in result.entries:
        style, marker = CHANGE_STYLE[entry.type.value]
        if entry.type.value == "modified":
            console.print(f"[red]- {entry.line_number:>5} {escape(entry.old_text or '')}[/red]")
            console.print(f"[green]+ {entry.line_number:>5} {escape(entry.new_text or '')}[/green]")
        elif entry.type.value == "added":
            console.print(f"[{style}]{marker} {entry.line_number:>5} {escape(entry.new_text or '')}[/{style}]")
        else:
            console.print(f"[{style}]{marker} {entry.old_line_number:>5} {escape(entry.old_text or '')}[/{style}]")

    s = result.stats
    console.print(
        f"\n{s.lines_changed} line(s) changed: "
        f"[green]+{s.added}[/green] [red]-{s.deleted}[/red] [yellow]~{s.modified}[/yellow]"
    )
