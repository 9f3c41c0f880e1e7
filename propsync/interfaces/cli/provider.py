"""Provider diagnostics and reference data commands."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from propsync.infrastructure.http.client import ProviderConfigurationError, ProviderError
from propsync.interfaces.cli.context import build_cli_context
from propsync.interfaces.cli.sync import config_option
from propsync.services.areas import AREA_CHUNKS
from propsync.services.ingestion import diagnose


@click.command(name="test-connection")
@config_option
def test_connection(config_path: str | None) -> None:
    """Check the RapidAPI key with a single location search."""
    console = Console()
    cli_context = build_cli_context(config_path=config_path)
    try:
        client = cli_context.client()
        results = client.search_locations("dubai")
    except ProviderConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise click.exceptions.Exit(1)
    except ProviderError as exc:
        issue, recommendation = diagnose(exc.status)
        console.print(f"[red]API Error: {exc.status or 'n/a'} - {issue}[/red]")
        console.print(recommendation)
        raise click.exceptions.Exit(1)

    console.print(
        f"[green]API connection successful[/green] ({len(results)} locations, 1 API call)"
    )


@click.command(name="areas")
def areas() -> None:
    """List the known Dubai areas and their provider location ids."""
    console = Console()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Chunk", justify="right")
    table.add_column("Location id", justify="right")
    table.add_column("Area")
    for index, chunk in enumerate(AREA_CHUNKS, start=1):
        for area in chunk:
            table.add_row(str(index), str(area.id), area.name)
    console.print(table)


__all__ = ["areas", "test_connection"]
