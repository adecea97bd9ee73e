"""stats command: aggregate findings across stored reviews of a file."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from difflens_cli.render import SEVERITY_STYLE

console = Console()


@click.command("stats")
@click.argument("file_key")
@click.option("--top", default=10, show_default=True, help="Number of top categories to show.")
@click.pass_context
def stats_cmd(ctx, file_key: str, top: int):
    """Show severity and category breakdowns across all reviews of FILE_KEY.

    Useful for spotting findings that keep coming back between versions.
    """
    from difflens_cli.factory import get_service
    from difflens_store.noop import NoOpReviewStore

    service = get_service(ctx)
    if isinstance(service.reviews, NoOpReviewStore):
        raise click.UsageError(
            "No review store configured. Set 'review_store: same' or 'review_store: gist' in .difflens.yml, "
            "or run `difflens init` to set one up."
        )

    records = service.list_reviews(file_key)
    if not records:
        console.print("[yellow]No reviews found for this file.[/yellow]")
        return

    total_reviews = len(records)
    by_type = Counter(r.review_type.value for r in records)
    total_issues = sum(len(r.issues) for r in records)
    severity_counter: Counter[str] = Counter()
    category_counter: Counter[str] = Counter()
    for record in records:
        for issue in record.issues:
            severity_counter[issue.get("severity", "info")] += 1
            category_counter[f"{issue.get('type', '')}/{issue.get('category', '')}"] += 1

    console.print(f"\n[bold]Review stats for [cyan]{file_key}[/cyan][/bold]")
    console.print(f"  Total reviews:  {total_reviews} ({by_type['full']} full, {by_type['incremental']} incremental)")
    console.print(f"  Total issues:   {total_issues}")
    console.print(f"  Avg per review: {total_issues / total_reviews:.1f}")

    if severity_counter:
        sev_table = Table(title="Severity Breakdown", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        sev_table.add_column("% of total", justify="right")
        for sev in ["critical", "error", "warning", "info"]:
            count = severity_counter.get(sev, 0)
            pct = f"{count / total_issues * 100:.1f}%" if total_issues else "0%"
            style = SEVERITY_STYLE.get(sev, "white")
            sev_table.add_row(f"[{style}]{sev}[/{style}]", str(count), pct)
        console.print(sev_table)

    if category_counter:
        cat_table = Table(title=f"Top {top} Categories", show_header=True)
        cat_table.add_column("Dimension / category")
        cat_table.add_column("Issues", justify="right")
        for category, count in category_counter.most_common(top):
            cat_table.add_row(category, str(count))
        console.print(cat_table)
