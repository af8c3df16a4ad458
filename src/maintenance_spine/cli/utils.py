"""
CLI utility helpers: output formatting and repository access.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from maintenance_spine.core.errors import MaintenanceError
from maintenance_spine.core.settings import get_settings
from maintenance_spine.scheduling.repository import RecurringWindowRepository, connect

console = Console()
err_console = Console(stderr=True)


# ── Repository helper ────────────────────────────────────────────────────


def open_repository(database: str | None = None) -> RecurringWindowRepository:
    """Open the schedule repository.  Defaults to the configured database path."""
    db_path = database or str(get_settings().database_path)
    repository = RecurringWindowRepository(connect(db_path))
    repository.ensure_schema()
    return repository


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: MaintenanceError | str) -> NoReturn:
    """Print an error and exit with status 1."""
    message = error.message if isinstance(error, MaintenanceError) else error
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


def output_rows(rows: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dicts as JSON or as a Rich table."""
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print("[dim]No items.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
