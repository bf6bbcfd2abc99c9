"""CLI entry point for the Data Asset Catalog."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from asset_catalog.config import get_settings
from asset_catalog.errors import CatalogError
from asset_catalog.logging_config import configure_cli_logging
from asset_catalog.parsers import TableStore, WarehouseMetadataFetcher
from asset_catalog.services import AssetMaterializer

app = typer.Typer(
    name="asset-catalog",
    help="Data Asset Catalog CLI - browse assets from flat-file tables and Snowflake",
    add_completion=False,
)

console = Console()

assets_app = typer.Typer(help="Browse data assets")
app.add_typer(assets_app, name="assets")

tables_app = typer.Typer(help="Inspect the flat-file tables")
app.add_typer(tables_app, name="tables")

warehouse_app = typer.Typer(help="Snowflake warehouse utilities")
app.add_typer(warehouse_app, name="warehouse")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
):
    """Data Asset Catalog CLI."""
    configure_cli_logging(verbose)


def tables_path_option():
    return typer.Option(
        None,
        "--tables-path",
        help="Directory holding the flat-file tables (defaults to TABLES_PATH)",
        file_okay=False,
        dir_okay=True,
    )


def run_async(coro):
    """Helper to run async code from sync CLI."""
    return asyncio.run(coro)


def build_materializer(tables_path: Optional[Path] = None) -> AssetMaterializer:
    """Materializer from settings, optionally reading tables from another directory."""
    settings = get_settings()
    table_store = TableStore(tables_path or settings.tables_path, settings.table_files())
    fetcher = None
    if settings.warehouse_configured:
        fetcher = WarehouseMetadataFetcher(settings.snowflake_config())
    return AssetMaterializer(table_store, fetcher, warehouse_source_name=settings.warehouse_source_name)


def _run_or_exit(coro):
    """Run a coroutine, turning catalog errors into a red message and exit code 1."""
    try:
        return run_async(coro)
    except CatalogError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        if e.detail and e.detail != e.message:
            console.print(f"  [dim]{e.detail}[/dim]")
        raise typer.Exit(1)


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@assets_app.command("list")
def list_assets(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source selector, e.g. Hive or Snowflake"),
    limit: int = typer.Option(50, "--limit", "-n", help="Number of results to show"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON instead of a table"),
    tables_path: Optional[Path] = tables_path_option(),
):
    """List data assets."""
    materializer = build_materializer(tables_path)
    assets = _run_or_exit(materializer.get_all(source))

    if as_json:
        _echo_json([a.model_dump(by_alias=True) for a in assets[:limit]])
        return

    if not assets:
        console.print("[yellow]No assets found.[/yellow]")
        return

    table = Table(title=f"Data Assets ({min(len(assets), limit)} of {len(assets)} shown)")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Cols", justify="right")
    table.add_column("Sensitive", justify="center")
    table.add_column("Tags", style="yellow")

    for a in assets[:limit]:
        table.add_row(
            a.id,
            a.name,
            a.source,
            str(a.column_count),
            "🔒" if a.is_sensitive else "",
            ", ".join(a.tags) or "-",
        )

    console.print(table)


@assets_app.command("show")
def show_asset(
    asset_id: str = typer.Argument(..., help="Asset id (flat-file id or database.schema.table)"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Restrict the lookup to one source"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
    tables_path: Optional[Path] = tables_path_option(),
):
    """Show one data asset."""
    materializer = build_materializer(tables_path)
    asset = _run_or_exit(materializer.get_by_id(asset_id, source))

    if as_json:
        _echo_json(asset.model_dump(by_alias=True))
        return

    console.print(f"\n[bold]{asset.name}[/bold] [dim]({asset.source})[/dim]")
    console.print(f"  ID: {asset.id}")
    console.print(f"  Location: {asset.location}")
    if asset.description:
        console.print(f"  Description: {asset.description}")
    console.print(f"  Owner: {asset.owner or 'unknown'}")
    console.print(f"  Records: {asset.sample_record_count if asset.sample_record_count is not None else '-'}")
    console.print(f"  Tags: {', '.join(asset.tags) or '-'}")
    console.print(f"  Glossary terms: {', '.join(asset.business_glossary_terms) or '-'}")

    if asset.columns:
        table = Table(title=f"Schema ({asset.column_count} columns)")
        table.add_column("Column", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Nullable", justify="center")
        table.add_column("Description", style="dim")
        for c in asset.columns:
            table.add_row(c.column_name, c.data_type, "yes" if c.is_nullable else "no", c.description or "")
        console.print(table)


@assets_app.command("lineage")
def show_lineage(
    asset_id: str = typer.Argument(..., help="Asset id"),
    tables_path: Optional[Path] = tables_path_option(),
):
    """Show direct upstream and downstream dependencies of an asset."""
    materializer = build_materializer(tables_path)
    edges = _run_or_exit(materializer.get_lineage(asset_id))

    console.print(f"\n[bold]Lineage for: {asset_id}[/bold]")
    upstream = [e for e in edges if e.referencing_object_id == asset_id]
    downstream = [e for e in edges if e.referenced_object_id == asset_id]

    console.print(f"\n[cyan]Upstream ({len(upstream)})[/cyan]")
    for e in upstream:
        console.print(f"  ← {e.referenced_object_id} ({e.referenced_domain or 'unknown'})")

    console.print(f"\n[yellow]Downstream ({len(downstream)})[/yellow]")
    for e in downstream:
        console.print(f"  → {e.referencing_object_id} ({e.referencing_domain or 'unknown'})")


@assets_app.command("sample")
def show_sample(
    asset_id: str = typer.Argument(..., help="Asset id"),
    limit: int = typer.Option(5, "--limit", "-n", min=1, help="Number of rows"),
    tables_path: Optional[Path] = tables_path_option(),
):
    """Print a small sample of rows as JSON."""
    materializer = build_materializer(tables_path)
    rows = _run_or_exit(materializer.get_sample(asset_id, limit))
    if not rows:
        console.print("[yellow]No sample data available.[/yellow]")
        return
    _echo_json(rows)


@tables_app.command("status")
def tables_status(
    tables_path: Optional[Path] = tables_path_option(),
    show_issues: bool = typer.Option(True, "--issues/--no-issues", help="List recorded load and parse issues"),
):
    """Show row counts and load issues for the flat-file tables."""
    materializer = build_materializer(tables_path)
    status = _run_or_exit(materializer.status())

    table = Table(title=f"Flat-file tables ({status.tables_path})")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    for name, count in status.row_counts.items():
        table.add_row(name, str(count))
    console.print(table)

    console.print(f"  Load errors: {status.load_error_count}")
    console.print(f"  Parse issues: {status.parse_error_count}")

    if show_issues and status.issues:
        console.print("\n[yellow]Issues[/yellow]")
        for issue in status.issues:
            location = f" ({issue['location']})" if issue.get("location") else ""
            console.print(f"  [{issue['kind']}]{location} {issue['message']}", markup=False)

    if status.load_error_count:
        raise typer.Exit(1)


@warehouse_app.command("test")
def test_warehouse():
    """Test the configured Snowflake connection."""
    settings = get_settings()
    if not settings.warehouse_configured:
        console.print("[red]✗ Snowflake is not configured (set SNOWFLAKE_ACCOUNT and SNOWFLAKE_USER)[/red]")
        raise typer.Exit(1)

    fetcher = WarehouseMetadataFetcher(settings.snowflake_config())
    with console.status("Connecting to Snowflake..."):
        result = run_async(fetcher.test_connection())

    if result.success:
        console.print(f"[green]✓ {result.message}[/green]")
        for key, value in result.data.items():
            console.print(f"  {key}: {value}")
    else:
        console.print(f"[red]✗ {result.message}[/red]")
        if result.details:
            console.print(f"  [dim]{result.details}[/dim]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
):
    """Start the API server."""
    import uvicorn

    console.print("[green]Starting Data Asset Catalog API...[/green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Docs: http://localhost:{port}{get_settings().api_prefix}/docs")

    uvicorn.run(
        "asset_catalog.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
