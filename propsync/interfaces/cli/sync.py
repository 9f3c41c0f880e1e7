"""Synchronization commands: property sync, transaction sync and scheduled sync."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from propsync.infrastructure.http.client import (
    PropertyFilters,
    ProviderConfigurationError,
    ProviderError,
)
from propsync.interfaces.cli.context import build_cli_context
from propsync.services.areas import AREA_CHUNKS
from propsync.services.scheduled import run_scheduled_sync
from propsync.services.sync import SyncPreview, SyncRunResult, SyncValidationError

db_option = click.option(
    "--db",
    "db_path",
    default=None,
    help="Path to the SQLite database file. Defaults to paths.db_path from config.json.",
)
config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to an alternative config.json.",
)
location_option = click.option(
    "--location",
    "locations",
    type=int,
    multiple=True,
    help="Provider location id to sync; repeat for several areas.",
)
purpose_option = click.option(
    "--purpose",
    type=click.Choice(["for-sale", "for-rent"]),
    default="for-sale",
    show_default=True,
)


def _fail(console: Console, message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise click.exceptions.Exit(1)


def _print_run(console: Console, result: SyncRunResult) -> None:
    stats = result.stats
    colour = "green" if result.status == "completed" else "yellow"
    console.print(
        f"[{colour}]Sync {result.status}[/{colour}] (run #{result.run_id}): "
        f"found={stats.properties_found}, synced={stats.properties_synced}, "
        f"api calls={stats.api_calls_used}, available={result.total_available}"
    )
    if result.sync_type == "properties":
        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Photos rehosted", str(stats.photos_rehosted))
        table.add_row("Photos on CDN", str(stats.photos_cdn_referenced))
        table.add_row("Floor plans rehosted", str(stats.floor_plans_rehosted))
        table.add_row("Storage saved (MB)", f"{stats.estimated_storage_saved_mb:.2f}")
        table.add_row("Agents discovered", str(stats.agents_discovered))
        table.add_row("Agencies discovered", str(stats.agencies_discovered))
        console.print(table)
    if stats.errors:
        console.print("[yellow]Errors:[/yellow]")
        for err in stats.errors:
            console.print(f"  - {err}")


@click.command(name="sync")
@db_option
@config_option
@location_option
@purpose_option
@click.option("--category", default=None, help="Provider category slug (e.g. apartments).")
@click.option("--limit", type=click.IntRange(1, 100), default=25, show_default=True)
@click.option("--page", type=click.IntRange(min=0), default=0, show_default=True)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Only ask the provider how many listings match; nothing is written.",
)
def sync(
    db_path: str | None,
    config_path: str | None,
    locations: tuple[int, ...],
    purpose: str,
    category: str | None,
    limit: int,
    page: int,
    dry_run: bool,
) -> None:
    """Synchronize provider listings for the given locations into the database."""
    console = Console()
    cli_context = build_cli_context(db_path, config_path)
    filters = PropertyFilters(
        locations_ids=list(locations),
        purpose=purpose,
        category=category,
        limit=limit,
        page=page,
    )

    try:
        with cli_context.orchestrator() as orchestrator:
            console.print(
                f"[bold]Syncing {filters.describe()}[/bold] into {cli_context.db_path}..."
            )
            with console.status("Running sync..."):
                result = orchestrator.sync_properties(filters, dry_run=dry_run)
    except ProviderConfigurationError as exc:
        _fail(console, str(exc))
    except SyncValidationError as exc:
        _fail(console, f"{exc}; pass --location")
    except ProviderError as exc:
        _fail(console, f"Provider error ({exc.status}): {exc}")

    if isinstance(result, SyncPreview):
        console.print(
            f"[yellow]Dry run:[/yellow] {result.total_available} listings available, "
            f"would sync {result.would_sync} (1 API call)"
        )
        return
    _print_run(console, result)


@click.command(name="sync-transactions")
@db_option
@config_option
@location_option
@purpose_option
@click.option("--limit", type=click.IntRange(1, 100), default=25, show_default=True)
def sync_transactions(
    db_path: str | None,
    config_path: str | None,
    locations: tuple[int, ...],
    purpose: str,
    limit: int,
) -> None:
    """Fetch one page of market transactions for the given locations."""
    console = Console()
    cli_context = build_cli_context(db_path, config_path)
    filters = PropertyFilters(locations_ids=list(locations), purpose=purpose, limit=limit)

    try:
        with cli_context.orchestrator() as orchestrator:
            with console.status("Syncing transactions..."):
                result = orchestrator.sync_transactions(filters)
    except ProviderConfigurationError as exc:
        _fail(console, str(exc))
    except SyncValidationError as exc:
        _fail(console, f"{exc}; pass --location")
    except ProviderError as exc:
        _fail(console, f"Provider error ({exc.status}): {exc}")

    _print_run(console, result)


@click.command(name="scheduled-sync")
@db_option
@config_option
@click.option(
    "--chunk",
    type=click.IntRange(1, len(AREA_CHUNKS)),
    default=None,
    help="Only sync this chunk of areas (1-based).",
)
@purpose_option
@click.option("--limit", type=click.IntRange(1, 100), default=25, show_default=True)
def scheduled_sync(
    db_path: str | None,
    config_path: str | None,
    chunk: int | None,
    purpose: str,
    limit: int,
) -> None:
    """Sync every known Dubai area, one chunk of areas at a time."""
    console = Console()
    cli_context = build_cli_context(db_path, config_path)

    try:
        with cli_context.orchestrator() as orchestrator:
            result = run_scheduled_sync(
                orchestrator,
                chunk_index=chunk - 1 if chunk else None,
                purpose=purpose,
                limit=limit,
            )
    except ProviderConfigurationError as exc:
        _fail(console, str(exc))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Chunk", justify="right")
    table.add_column("Areas")
    table.add_column("Synced", justify="right")
    table.add_column("Run", justify="right")
    table.add_column("Error")
    for chunk_result in result.chunks:
        table.add_row(
            str(chunk_result.chunk),
            ", ".join(chunk_result.areas),
            str(chunk_result.synced),
            str(chunk_result.run_id or "-"),
            chunk_result.error or "",
        )
    console.print(table)
    colour = {"completed": "green", "failed": "red"}.get(result.status, "yellow")
    console.print(
        f"[{colour}]Scheduled sync {result.status}[/{colour}]: "
        f"{result.total_properties_synced} properties, "
        f"{result.chunks_processed}/{len(result.chunks)} chunks"
    )
    if result.status == "failed":
        raise click.exceptions.Exit(1)


__all__ = ["scheduled_sync", "sync", "sync_transactions"]
