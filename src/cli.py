"""Command Line Interface for the PAEC tabular import/export engine.

This module provides a CLI using Typer for importing baseline-form workbooks,
exporting stored records and inspecting the field mapping table.

Security Impact:
    - Every run is executed on behalf of an explicit actor and access scope
    - Exports only contain records visible under that scope
    - Audit entries are written for every import, export and delete
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from src.domain.ports import (
    EmptyResultError,
    MissingKeyColumnError,
    RecordNotFoundError,
    ReconciliationError,
    StoragePort,
)
from src.domain.record import AccessLevel, Actor, ExportQuery
from src.domain.services import FieldPathResolver
from src.domain.tabular import ExportLayout
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.settings import APP_VERSION, settings

# Initialize Typer app and Rich console
app = typer.Typer(
    name="paec-sync",
    help="PAEC Tabular Sync: spreadsheet import/export for baseline forms",
    add_completion=False
)
console = Console()

EXIT_EMPTY_RESULT = 2


def create_storage_adapter_cli() -> StoragePort:
    """Create storage adapter based on configuration (CLI wrapper)."""
    try:
        from src.main import create_storage_adapter
        return create_storage_adapter()
    except Exception as e:
        console.print(f"[red]✗[/red] Failed to create storage adapter: {str(e)}")
        raise typer.Exit(code=1)


def _actor(user: str, center: Optional[str], scope: AccessLevel) -> Actor:
    if scope == AccessLevel.CENTER and not center:
        console.print("[red]✗[/red] --scope center requires --center")
        raise typer.Exit(code=1)
    return Actor(user_id=user, center_id=center, access_to=scope)


def _orchestrator(storage: StoragePort):
    from src.main import ImportExportOrchestrator
    return ImportExportOrchestrator(storage=storage)


@app.command("import")
def import_sheet(
    input_file: Path = typer.Argument(..., help="Workbook or CSV to import (XLSX, XLSM, CSV)", exists=True),
    user: str = typer.Option("cli", "--actor", "-a", help="Acting user id (owner of created records)"),
    center: Optional[str] = typer.Option(None, "--center", help="Center of the acting user"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Import baseline-form rows, creating or updating records by PAEC No.

    Examples:
        paec-sync import baseline.xlsx --actor u1 --center c1
        paec-sync import baseline.csv -v
    """
    import logging
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        console.print("[dim]Verbose logging enabled[/dim]")

    actor = Actor(user_id=user, center_id=center)
    console.print(f"\n[bold blue]{settings.app_name}[/bold blue]")
    console.print(f"[dim]Input file:[/dim] {input_file}")
    console.print(f"[dim]Database:[/dim] {settings.db_config.db_type}")
    console.print()

    storage = create_storage_adapter_cli()
    try:
        summary = _orchestrator(storage).run_import_file(str(input_file), actor)

        console.print("[bold]Import Summary:[/bold]")
        summary_table = Table(show_header=False, box=None, padding=(0, 2))
        summary_table.add_row("Total rows:", f"[bold]{summary.total_rows:,}[/bold]")
        summary_table.add_row("Created:", f"[green]{summary.created:,}[/green]")
        summary_table.add_row("Updated:", f"[green]{summary.updated:,}[/green]")
        error_count = len(summary.errors)
        summary_table.add_row("Errors:", f"[red]{error_count:,}[/red]" if error_count else "0")
        summary_table.add_row("Fields changed:", f"{summary.fields_changed:,}")
        console.print(summary_table)

        if summary.errors:
            errors_table = Table(title="Row Errors")
            errors_table.add_column("Row", justify="right")
            errors_table.add_column("Message")
            for error in summary.errors:
                errors_table.add_row(str(error.row), error.message)
            console.print(errors_table)
            console.print(f"\n[yellow]⚠[/yellow] Import completed with {error_count} error(s)")
            raise typer.Exit(code=1)

        console.print("\n[green]✓[/green] Import completed successfully")
    except MissingKeyColumnError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)
    except ReconciliationError as e:
        console.print(f"\n[red]✗[/red] Import failed: {str(e)}")
        raise typer.Exit(code=1)
    finally:
        storage.close()


@app.command()
def export(
    layout: ExportLayout = typer.Option(ExportLayout.ANALYSIS, "--layout", "-l", case_sensitive=False, help="Column layout"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Column label to omit (repeatable)"),
    scope: AccessLevel = typer.Option(AccessLevel.ALL, "--scope", case_sensitive=False, help="Visible records: own, center or all"),
    user: str = typer.Option("cli", "--actor", "-a", help="Acting user id"),
    center: Optional[str] = typer.Option(None, "--center", help="Center of the acting user"),
    paec_no: Optional[str] = typer.Option(None, "--paec", help="PAEC No (substring match)"),
    patient_name: Optional[str] = typer.Option(None, "--name", help="Patient name (substring match)"),
    uhid: Optional[str] = typer.Option(None, "--uhid", help="UHID (substring match)"),
    from_date: Optional[datetime] = typer.Option(None, "--from", formats=["%Y-%m-%d"], help="Start date (inclusive)"),
    to_date: Optional[datetime] = typer.Option(None, "--to", formats=["%Y-%m-%d"], help="End date (inclusive)"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the workbook"),
) -> None:
    """Export stored records to an XLSX workbook.

    Examples:
        paec-sync export --layout template --scope center --center c1
        paec-sync export --name doe --from 2024-01-01 -x UHID
    """
    actor = _actor(user, center, scope)
    query = ExportQuery(
        paec_no=paec_no,
        patient_name=patient_name,
        uhid=uhid,
        from_date=from_date.date() if from_date else None,
        to_date=to_date.date() if to_date else None,
    )

    storage = create_storage_adapter_cli()
    try:
        export_file, target = _orchestrator(storage).export_to_directory(
            query, exclude or [], actor, layout, str(output_dir) if output_dir else None
        )
        console.print(f"[green]✓[/green] Exported {export_file.row_count:,} record(s) to {target}")
    except EmptyResultError as e:
        console.print(f"[yellow]⚠[/yellow] {str(e)}")
        raise typer.Exit(code=EXIT_EMPTY_RESULT)
    except ReconciliationError as e:
        console.print(f"[red]✗[/red] Export failed: {str(e)}")
        raise typer.Exit(code=1)
    finally:
        storage.close()


@app.command()
def template(
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the workbook"),
) -> None:
    """Write the blank import template with two sample rows."""
    from src.main import write_export

    storage = create_storage_adapter_cli()
    try:
        template_file = _orchestrator(storage).import_template()
        target = write_export(template_file, str(output_dir) if output_dir else None)
        console.print(f"[green]✓[/green] Template written to {target}")
    except ReconciliationError as e:
        console.print(f"[red]✗[/red] Template failed: {str(e)}")
        raise typer.Exit(code=1)
    finally:
        storage.close()


@app.command()
def delete(
    paec_no: str = typer.Argument(..., help="PAEC No of the record to soft-delete"),
    scope: AccessLevel = typer.Option(AccessLevel.ALL, "--scope", case_sensitive=False, help="Visible records: own, center or all"),
    user: str = typer.Option("cli", "--actor", "-a", help="Acting user id"),
    center: Optional[str] = typer.Option(None, "--center", help="Center of the acting user"),
) -> None:
    """Soft-delete the active record holding a PAEC No."""
    actor = _actor(user, center, scope)
    storage = create_storage_adapter_cli()
    try:
        record = _orchestrator(storage).delete_record(paec_no, actor)
        console.print(f"[green]✓[/green] Deleted {paec_no} (record {record.record_id})")
    except RecordNotFoundError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)
    finally:
        storage.close()


@app.command()
def mappings(
    layout: Optional[ExportLayout] = typer.Option(None, "--layout", "-l", case_sensitive=False, help="Show export columns of a layout instead of accepted headers"),
) -> None:
    """List accepted import headers, or the export columns of a layout."""
    resolver = FieldPathResolver()

    if layout is None:
        table = Table(title=f"Accepted headers (mapping v{resolver.version})")
        table.add_column("Header")
        table.add_column("Path")
        for header, path in resolver.accepted_headers().items():
            table.add_row(header, path)
    else:
        table = Table(title=f"Export columns: {layout.value}")
        table.add_column("#", justify="right")
        table.add_column("Label")
        table.add_column("Path")
        table.add_column("Type")
        for index, (entry, label, path) in enumerate(resolver.export_columns(layout), start=1):
            table.add_row(str(index), label, str(path), entry.field_type.value)

    console.print(table)


@app.command()
def info() -> None:
    """Display system information and configuration."""
    console.print("[bold blue]System Information[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Database Type:", settings.db_config.db_type)
    if settings.db_config.db_type == "duckdb":
        info_table.add_row("Database Path:", settings.get_db_path())
    info_table.add_row("Export Directory:", settings.export_dir)
    info_table.add_row("Audit Module:", settings.audit_module)
    info_table.add_row("Mapping Version:", FieldPathResolver().version)

    console.print(info_table)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"PAEC Tabular Sync v{APP_VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version information"
    )
) -> None:
    """PAEC Tabular Sync: spreadsheet import/export for baseline forms."""
    setup_logging(use_json=settings.log_json, log_level=settings.log_level)


if __name__ == "__main__":
    app()
