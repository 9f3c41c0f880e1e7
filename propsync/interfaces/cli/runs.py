"""Inspect the sync run log."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from propsync.infrastructure.db.repositories import SyncRunRepository
from propsync.interfaces.cli.context import build_cli_context
from propsync.interfaces.cli.sync import config_option, db_option

_STATUS_STYLE = {
    "completed": "green",
    "completed_with_errors": "yellow",
    "failed": "red",
    "running": "cyan",
}


@click.command(name="runs")
@db_option
@config_option
@click.option("--limit", type=click.IntRange(1, 500), default=20, show_default=True)
@click.option(
    "--type",
    "sync_type",
    type=click.Choice(["properties", "transactions"]),
    default=None,
    help="Only show runs of this type.",
)
@click.option("--errors/--no-errors", default=False, help="Print the error list of each run.")
def runs(
    db_path: str | None,
    config_path: str | None,
    limit: int,
    sync_type: str | None,
    errors: bool,
) -> None:
    """List recent sync runs, newest first."""
    console = Console()
    cli_context = build_cli_context(db_path, config_path)
    with cli_context.repository(SyncRunRepository) as repository:
        rows = repository.list_recent(limit=limit, sync_type=sync_type)

    if not rows:
        console.print("No sync runs recorded yet.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Type")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Started")
    table.add_column("Found", justify="right")
    table.add_column("Synced", justify="right")
    table.add_column("API calls", justify="right")
    table.add_column("Errors", justify="right")
    for row in rows:
        style = _STATUS_STYLE.get(row["status"], "white")
        table.add_row(
            str(row["id"]),
            row["sync_type"],
            row.get("target") or "",
            f"[{style}]{row['status']}[/{style}]",
            row["started_at"],
            str(row.get("properties_found") or 0),
            str(row.get("properties_synced") or 0),
            str(row.get("api_calls_used") or 0),
            str(len(row.get("errors") or [])),
        )
    console.print(table)

    if errors:
        for row in rows:
            for err in row.get("errors") or []:
                console.print(f"  #{row['id']}: {err}")


__all__ = ["runs"]
