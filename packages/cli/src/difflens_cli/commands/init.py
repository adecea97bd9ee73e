"""init command: interactive setup wizard.

Writes .difflens.yml once so everyone on the team runs with the same
stores, and can create the shared Gist that holds review history.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path

import click
import yaml
from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()

_GIST_FILENAME = "difflens_reviews.json"


@click.command("init")
@click.option("--path", "config_path", default=".difflens.yml", show_default=True, help="Where to write the config.")
def init_cmd(config_path: str):
    """Set up difflens for this project.

    Chooses where versions, reviews and file content live and which AI
    provider `review --ai` uses, then writes .difflens.yml.
    """
    console.print("\n[bold cyan]difflens init[/bold cyan]: setup wizard\n")

    config: dict = {}

    console.print("Version store:")
    console.print("  [bold]sqlite[/bold]  local SQLite file (default)")
    console.print("  [bold]memory[/bold]  nothing is kept between runs")
    store = click.prompt("Version store", type=click.Choice(["sqlite", "memory"]), default="sqlite")
    config["store"] = store
    if store == "sqlite":
        db_path = click.prompt("SQLite database path", default=".difflens.db")
        if db_path != ".difflens.db":
            config["store_path"] = db_path

    console.print("\nReview store:")
    console.print("  [bold]same[/bold]  alongside the versions (default)")
    console.print("  [bold]gist[/bold]  shared GitHub Gist, zero infrastructure (good for teams)")
    console.print("  [bold]none[/bold]  do not keep reviews")
    review_store = click.prompt("Review store", type=click.Choice(["same", "gist", "none"]), default="same")
    config["review_store"] = review_store
    if review_store == "gist":
        console.print("\n[yellow]Note:[/yellow] the Gist store requires a token with [bold]gist[/bold] scope.")
        gist_id = _create_team_gist()
        if gist_id:
            console.print(f"[green]Created team Gist: {gist_id}[/green]")
            config["gist_id"] = gist_id
        else:
            console.print("[yellow]Gist creation failed. Add gist_id manually to .difflens.yml[/yellow]")

    blob_store = click.prompt("\nFile content storage", type=click.Choice(["local", "s3"]), default="local")
    config["blob_store"] = blob_store
    if blob_store == "s3":
        config["s3_bucket"] = click.prompt("S3 bucket")
        prefix = click.prompt("Key prefix", default="", show_default=False)
        if prefix:
            config["s3_prefix"] = prefix
    else:
        config["blob_root"] = click.prompt("Blob directory", default=".difflens/blobs")

    provider = click.prompt(
        "\nAI provider for `review --ai`",
        type=click.Choice(["ollama", "anthropic", "openai"]),
        default="ollama",
    )
    config["llm"] = {"provider": provider}

    _write_config(Path(config_path), config)
    console.print(f"[green]Created {config_path}[/green]")

    if provider == "anthropic":
        console.print("[yellow]Remember to export [bold]ANTHROPIC_API_KEY[/bold].[/yellow]")
    elif provider == "openai":
        console.print("[yellow]Remember to export [bold]OPENAI_API_KEY[/bold].[/yellow]")
    else:
        console.print("[dim]Set LLM_TYPE=cloud or LLM_ENDPOINT to use a remote Ollama server.[/dim]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Save a file with: [bold]difflens save <key> --from <path>[/bold]")


def _create_team_gist() -> str | None:
    """Create a private Gist for team review history and return its ID."""
    try:
        with tempfile.TemporaryDirectory() as tmp:
            # gh names Gist files after their path.
            path = os.path.join(tmp, _GIST_FILENAME)
            Path(path).write_text("[]")
            result = subprocess.run(
                ["gh", "gist", "create", "--public=false", "--desc", "difflens review history", path],
                capture_output=True,
                text=True,
                timeout=15,
            )
        if result.returncode == 0:
            return result.stdout.strip().rstrip("/").split("/")[-1]
        logger.warning("gh gist create failed: %s", result.stderr.strip())
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass
    return None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
