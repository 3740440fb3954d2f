"""
Command Line Interface for autoschema.
"""

from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.base import Database, build_engine, set_database
from ..exceptions import AutoSchemaError
from ..logs import configure_logging
from ..migration.command import CREATED, ERROR, NO_CHANGES, SKIPPED, UPDATED, AutoCreateCommand
from ..migration.store import MigrationStore
from ..schema.registry import registry
from ..schema.resolver import resolver

app = typer.Typer(help="autoschema - migrations and persistence from model declarations")
console = Console()

STATUS_STYLE = {
    CREATED: ("✅", "green"),
    UPDATED: ("🔁", "cyan"),
    NO_CHANGES: ("➖", "dim"),
    SKIPPED: ("⏭️", "yellow"),
    ERROR: ("❌", "red"),
}


@app.callback()
def setup(
    log_level: Optional[str] = typer.Option(None, help="Log level (default: from config)"),
):
    """Configure logging for every command."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, settings.log_format)


@app.command("auto-create")
def auto_create(
    models_package: Optional[str] = typer.Option(None, help="Package to scan for models"),
    database_url: Optional[str] = typer.Option(None, help="Database to compare against"),
    path: Optional[str] = typer.Option(None, help="Alembic versions directory"),
    recreate: Optional[str] = typer.Option(None, help="batch_alter_table recreate mode (auto/always/never)"),
):
    """Generate create/alter migrations for every discovered model."""
    settings = get_settings()
    package = models_package or settings.models_package

    try:
        models = registry.discover(package)
    except ImportError as e:
        console.print(f"❌ Cannot import models package '{package}': {e}")
        raise typer.Exit(code=1)

    if not models:
        console.print(f"No models found in '{package}'")
        return

    database = Database(build_engine(database_url))
    set_database(database)
    command = AutoCreateCommand(
        database,
        MigrationStore(path or settings.migrations_path),
        batch_recreate=recreate or settings.batch_recreate,
    )

    try:
        diagnostics = command.run(models)
    finally:
        database.dispose()

    table = Table(title="Auto-create migrations", show_header=True, header_style="bold magenta")
    table.add_column("Model", style="cyan")
    table.add_column("Table", style="yellow")
    table.add_column("Status")
    table.add_column("Details")

    for diagnostic in diagnostics:
        emoji, style = STATUS_STYLE.get(diagnostic.status, ("❓", "white"))
        table.add_row(
            diagnostic.model,
            diagnostic.table or "-",
            f"[{style}]{emoji} {diagnostic.status.replace('_', ' ')}[/{style}]",
            diagnostic.message,
        )

    console.print(table)


@app.command()
def columns(
    model: str = typer.Argument(..., help="Model class name"),
    models_package: Optional[str] = typer.Option(None, help="Package to scan for models"),
):
    """Show the effective column set of a model."""
    package = models_package or get_settings().models_package
    try:
        registry.discover(package)
    except ImportError as e:
        console.print(f"❌ Cannot import models package '{package}': {e}")
        raise typer.Exit(code=1)

    try:
        model_class = registry.get(model)
        effective = resolver.resolve(model_class)
    except AutoSchemaError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)

    table = Table(title=f"{model_class.__name__} columns", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="yellow")
    table.add_column("Type", style="green")
    table.add_column("Nullable")
    table.add_column("Fillable")
    table.add_column("Hidden")
    table.add_column("Cast", style="blue")

    for name, column in effective.items():
        table.add_row(
            name,
            column.type,
            "yes" if column.nullable else "no",
            "yes" if column.fillable else "no",
            "yes" if column.hidden else "no",
            column.cast or "",
        )

    console.print(table)


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"autoschema v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
