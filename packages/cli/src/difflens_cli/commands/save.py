"""save command: store the current content of a file as a new version."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from difflens_cli.factory import get_service

console = Console()


@click.command("save")
@click.argument("file_key")
@click.option(
    "--from",
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Upload this local file to FILE_KEY before versioning it.",
)
@click.option("--name", "file_name", default=None, help="Display name. Defaults to the key's last segment.")
@click.option("--user", "user_id", default=None, help="Owner recorded on the new version.")
@click.pass_context
def save_cmd(ctx, file_key: str, source: Path | None, file_name: str | None, user_id: str | None):
    """Version FILE_KEY if its content changed since the last save."""
    service = get_service(ctx)
    if source is not None:
        service.blobs.write_blob(file_key, source.read_bytes())

    result = service.store_version_if_changed(file_key, file_name=file_name, user_id=user_id)
    if result.created:
        console.print(f"[green]Saved {file_key} as version {result.version}[/green]")
    else:
        console.print(f"[yellow]No changes since version {result.version}[/yellow]")
