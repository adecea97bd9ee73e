"""restore command: roll a file back to a stored version."""

from __future__ import annotations

import click
from rich.console import Console

from difflens_cli.factory import get_service

console = Console()


@click.command("restore")
@click.argument("file_key")
@click.argument("version", type=click.IntRange(min=1))
@click.option("--user", "user_id", default=None, help="Owner recorded on the restored version.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def restore_cmd(ctx, file_key: str, version: int, user_id: str | None, yes: bool):
    """Overwrite FILE_KEY with the content of VERSION.

    History is never rewritten: the restored content becomes a new version
    unless it already matches the latest one.
    """
    if not yes:
        click.confirm(f"Overwrite {file_key} with version {version}?", abort=True)

    result = get_service(ctx).restore_version(file_key, version, user_id=user_id)
    if result.created:
        console.print(f"[green]Restored version {version} of {file_key} as version {result.version}[/green]")
    else:
        console.print(f"[yellow]{file_key} already matches version {version} (latest is {result.version})[/yellow]")
