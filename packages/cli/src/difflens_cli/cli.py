"""CLI entry point for difflens.

Commands:
  save     version a file's current content (optionally uploading it first)
  review   full or incremental multi-dimensional review
  history  version history and summary stats for a file
  diff     line diff between two stored versions
  restore  roll a file back to a stored version
  folder   batch analysis of every code file in a folder
  stats    aggregate findings across stored reviews
  comment  threaded reviewer comments on a file
  init     interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from difflens_cli.commands.comment import comment_cmd
from difflens_cli.commands.diff import diff_cmd
from difflens_cli.commands.folder import folder_cmd
from difflens_cli.commands.history import history_cmd
from difflens_cli.commands.init import init_cmd
from difflens_cli.commands.restore import restore_cmd
from difflens_cli.commands.review import review_cmd
from difflens_cli.commands.save import save_cmd
from difflens_cli.commands.stats import stats_cmd
from difflens_store.errors import DifflensError


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        show_path=verbose,
    )
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler])
    logging.getLogger("difflens_core").setLevel(level)
    logging.getLogger("difflens_store").setLevel(level)
    logging.getLogger("difflens_cli").setLevel(level)


class DifflensGroup(click.Group):
    """Reports any DifflensError as one "[kind] message" line instead of a traceback."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except DifflensError as e:
            raise click.ClickException(f"[{e.kind}] {e.message}") from e


def _version() -> str:
    try:
        return importlib.metadata.version("difflens")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(cls=DifflensGroup)
@click.version_option(version=_version(), prog_name="difflens")
@click.option(
    "--config",
    "config_path",
    default=".difflens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DIFFLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool, quiet: bool):
    """Version-aware, incremental multi-dimensional code review."""
    from difflens_core.config import load_config, resolve_llm_config

    setup_logging(verbose=verbose, quiet=quiet)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    ctx.obj["config"] = config
    # Resolved once here and handed to the service explicitly.
    ctx.obj["llm_config"] = resolve_llm_config(config)


main.add_command(save_cmd)
main.add_command(review_cmd)
main.add_command(history_cmd)
main.add_command(diff_cmd)
main.add_command(restore_cmd)
main.add_command(folder_cmd)
main.add_command(stats_cmd)
main.add_command(comment_cmd)
main.add_command(init_cmd)
