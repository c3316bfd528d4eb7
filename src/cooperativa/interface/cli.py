"""
Command line interface.

Thin typer layer over the container: every command loads the configuration,
makes sure the schema exists and calls one application service.
"""

import logging
from datetime import date
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cooperativa.application.container import Container
from cooperativa.domain.datetime_utils import format_date_display, format_time_display
from cooperativa.domain.tables import TABLE_REGISTRY
from cooperativa.infrastructure.config_loader import ConfigLoader
from cooperativa.infrastructure.excel import (
    TEMPLATE_INFO,
    WorkbookFormatError,
    build_workbook,
    build_workbook_base64,
    parse_workbook,
    parse_workbook_base64,
)
from cooperativa.infrastructure.logging_config import setup_logging
from cooperativa.infrastructure.store import StoreError

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="cooperativa",
    help="Cooperativa data tools: workbook export/import and change history.",
    add_completion=False,
    no_args_is_help=True,
)

# Failures a command reports to the user instead of crashing
_HANDLED = (StoreError, WorkbookFormatError, ValueError, OSError)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_dir: Path = typer.Option(Path("config"), "--config-dir", "-c", help="Directory containing cooperativa.json"),
    database: Optional[str] = typer.Option(None, "--database", "-d", help="SQLite database file (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on the console"),
):
    """Cooperativa data interchange and change tracking."""
    try:
        config = ConfigLoader(config_dir).load()
    except (FileNotFoundError, ValueError, PermissionError) as e:
        console.print(f"[red]Error de configuración:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if database:
        config = config.model_copy(update={"database_path": database})
    setup_logging("DEBUG" if verbose else config.log_level, config.log_file)
    ctx.obj = Container(config)
    ctx.call_on_close(ctx.obj.close)


def _container(ctx: typer.Context) -> Container:
    container: Container = ctx.obj
    container.init()
    return container


def _fail(command: str, error: Exception) -> NoReturn:
    logger.error("%s command failed: %s", command, error)
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def _counts_table(title: str, counts: dict) -> Table:
    table = Table(title=title)
    table.add_column("Tabla")
    table.add_column("Hoja")
    table.add_column("Filas", justify="right")
    for name, count in counts.items():
        table.add_row(name.value, TABLE_REGISTRY[name].sheet_name, str(count))
    return table


# ============================================================================
# Commands
# ============================================================================


@app.command()
def init(ctx: typer.Context):
    """Create the database schema and check connectivity."""
    try:
        container = _container(ctx)
    except _HANDLED as e:
        _fail("init", e)
    console.print(f"[green]Base de datos lista:[/green] {container.config.database_path}")


@app.command("export")
def export_command(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Workbook path (default: export directory)"),
    as_base64: bool = typer.Option(False, "--base64", help="Print the workbook as base64 instead of writing a file"),
):
    """Export every table to an .xlsx workbook."""
    try:
        container = _container(ctx)
        snapshot = container.snapshot_service.export_snapshot()
        if as_base64:
            typer.echo(build_workbook_base64(snapshot))
            return

        if output is None:
            output = Path(container.config.export_directory) / container.config.export_filename(
                date.today().isoformat()
            )
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(build_workbook(snapshot))
    except _HANDLED as e:
        _fail("export", e)

    console.print(_counts_table("Exportación", snapshot.counts()))
    console.print(f"[green]Archivo generado:[/green] {output}")


@app.command("import")
def import_command(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Workbook to import (or a base64 text file with --base64)"),
    as_base64: bool = typer.Option(False, "--base64", help="Source contains base64 text"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Replace ALL data with the content of a workbook."""
    if not yes:
        typer.confirm("Esto reemplaza todos los datos actuales. ¿Continuar?", abort=True)

    try:
        container = _container(ctx)
        if as_base64:
            snapshot = parse_workbook_base64(source.read_text(encoding="utf-8"))
        else:
            snapshot = parse_workbook(source.read_bytes())
        counts = container.snapshot_service.import_snapshot(snapshot)
    except _HANDLED as e:
        _fail("import", e)

    console.print(_counts_table("Importación", counts))
    console.print("[green]Datos importados.[/green]")


@app.command()
def changes(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Entries to show"),
):
    """Show the most recent change-log entries."""
    try:
        container = _container(ctx)
    except _HANDLED as e:
        _fail("changes", e)
    entries = container.change_log.list_recent_changes(limit or container.config.change_log_limit)

    if not entries:
        console.print("[dim]Sin cambios registrados.[/dim]")
        return

    table = Table(title="Registro de cambios")
    for column in ("Fecha", "Tabla", "Acción", "Registro", "Detalle"):
        table.add_column(column)
    for entry in entries:
        table.add_row(
            entry.created_at or "",
            entry.tabla,
            entry.accion,
            "" if entry.registro_id is None else str(entry.registro_id),
            "" if entry.payload is None else escape(str(entry.payload)),
        )
    console.print(table)


@app.command()
def summary(ctx: typer.Context):
    """Row counts per table."""
    try:
        snapshot = _container(ctx).snapshot_service.export_snapshot()
    except _HANDLED as e:
        _fail("summary", e)
    console.print(_counts_table("Resumen", snapshot.counts()))


@app.command()
def template():
    """Sheet names and column order expected by import."""
    table = Table(title="Plantilla Excel")
    table.add_column("Hoja")
    table.add_column("Columnas")
    for name, sheet in TEMPLATE_INFO["sheet_names"].items():
        table.add_row(sheet, ", ".join(TEMPLATE_INFO["columns"][name]))
    console.print(table)


@app.command()
def sessions(
    ctx: typer.Context,
    actividad_id: int = typer.Argument(..., help="Activity id"),
):
    """List an activity's attendance sessions, newest first."""
    try:
        container = _container(ctx)
        actividad = container.activities.get(actividad_id)
        items = container.attendance.list_sessions(actividad_id)
    except _HANDLED as e:
        _fail("sessions", e)

    table = Table(title=f"Asistencias: {escape(actividad.nombre)}")
    for column in ("Id", "Fecha", "Inicio", "Fin", "Se dictó", "Presentes"):
        table.add_column(column)
    for session in items:
        present = sum(1 for detalle in session.detalles if detalle.estado == "presente")
        table.add_row(
            str(session.id),
            format_date_display(session.fecha),
            format_time_display(session.hora_inicio),
            format_time_display(session.hora_fin),
            "sí" if session.se_dicto else "no",
            f"{present}/{len(session.detalles)}",
        )
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
