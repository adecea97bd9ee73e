"""history command: list stored versions of a file."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("history")
@click.argument("file_key")
@click.option("--limit", default=20, show_default=True, help="Maximum number of versions to show.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@click.pass_context
def history_cmd(ctx, file_key: str, limit: int, as_json: bool):
    """Show saved versions of FILE_KEY, newest first."""
    from difflens_cli.factory import get_service

    history = get_service(ctx).get_history(file_key)
    if as_json:
        click.echo(json.dumps(history.to_dict(), indent=2))
        return

    if not history.versions:
        console.print(f"[yellow]No saved versions of {file_key}.[/yellow]")
        return

    table = Table(title=f"Version History: {file_key}", show_header=True, header_style="bold cyan")
    table.add_column("Version", style="bold", justify="right", width=8)
    table.add_column("ID", width=12)
    table.add_column("Size", justify="right", width=10)
    table.add_column("Fingerprint", width=14)
    table.add_column("Saved At", width=20)

    for v in history.versions[:limit]:
        table.add_row(
            f"v{v.version}",
            v.id[:10],
            f"{v.size_bytes} B",
            v.fingerprint[:12],
            v.created_at[:19].replace("T", " "),
        )
    console.print(table)

    s = history.stats
    growth = s.current_size - s.initial_size
    console.print(f"  Total versions: {s.total_versions}")
    console.print(f"  First saved:    {s.first_created[:19].replace('T', ' ')}")
    console.print(f"  Last modified:  {s.last_modified[:19].replace('T', ' ')}")
    console.print(f"  Size:           {s.initial_size} B → {s.current_size} B ({growth:+d} B)")
