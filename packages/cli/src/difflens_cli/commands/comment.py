"""comment commands: threaded reviewer notes on a file."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from difflens_store.models import COMMENT_STATUSES, COMMENT_TYPES

console = Console()


def _service(ctx):
    from difflens_cli.factory import get_service
    from difflens_store.noop import NoOpReviewStore

    service = get_service(ctx)
    if isinstance(service.reviews, NoOpReviewStore):
        raise click.UsageError(
            "No review store configured. Set 'review_store: same' or 'review_store: gist' in .difflens.yml."
        )
    return service


def _label(comment) -> str:
    where = f"line {comment.line_number}" if comment.line_number else "file"
    who = escape(comment.user_id or "anonymous")
    return (
        f"[bold]{comment.type}[/bold] [dim]{comment.id[:10]}[/dim] {where} by {who} ({comment.status})\n"
        f"{escape(comment.content)}"
    )


@click.group("comment")
def comment_cmd():
    """Add and read review comments."""


@comment_cmd.command("add")
@click.argument("file_key")
@click.argument("message")
@click.option("--line", "line_number", default=0, show_default=True, help="1-based line; 0 comments on the file.")
@click.option("--type", "comment_type", type=click.Choice(COMMENT_TYPES), default="comment", show_default=True)
@click.option("--reply-to", "parent_id", default=None, help="ID of the comment to reply to.")
@click.option("--review", "review_id", default=None, help="ID of the review this comment is about.")
@click.option("--issue", "issue_id", default=None, help="Identifier of the finding this comment is about.")
@click.option("--user", "user_id", default=None, help="Author recorded with the comment.")
@click.pass_context
def add_cmd(ctx, file_key, message, line_number, comment_type, parent_id, review_id, issue_id, user_id):
    """Comment on FILE_KEY, optionally on one line or as a reply."""
    comment = _service(ctx).add_comment(
        file_key,
        message,
        line_number=line_number,
        comment_type=comment_type,
        review_id=review_id,
        issue_id=issue_id,
        parent_id=parent_id,
        user_id=user_id,
    )
    console.print(f"[green]Comment {comment.id} added to {file_key}[/green]")


@comment_cmd.command("list")
@click.argument("file_key")
@click.option("--status", type=click.Choice(COMMENT_STATUSES), default=None, help="Only threads with this status.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@click.pass_context
def list_cmd(ctx, file_key, status, as_json):
    """Show comment threads on FILE_KEY, newest first."""
    threads = _service(ctx).list_comments(file_key, status=status)
    if as_json:
        click.echo(json.dumps({"comments": [t.to_dict() for t in threads], "count": len(threads)}, indent=2))
        return
    if not threads:
        console.print(f"[yellow]No comments on {file_key}.[/yellow]")
        return

    for thread in threads:
        tree = Tree(_label(thread.comment))
        for reply in thread.replies:
            tree.add(_label(reply))
        console.print(tree)
    console.print(f"\n{len(threads)} thread(s)")
