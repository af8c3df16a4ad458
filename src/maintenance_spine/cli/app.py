"""
Root Typer application for the maintenance-spine CLI.

    maintenance-spine check "0 2 * * *"
    maintenance-spine preview "0 2 * * 1-5" --duration 2h --count 5
    maintenance-spine add agent-1 "0 2 * * *" --reason "OS patching" --duration 2h
    maintenance-spine list
    maintenance-spine windows agent-1
    maintenance-spine tick
    maintenance-spine run --interval 60
"""

from __future__ import annotations

import time
from datetime import timedelta

import typer

from maintenance_spine.cli.utils import console, err_console, fail, open_repository, output_rows
from maintenance_spine.core.errors import MaintenanceError
from maintenance_spine.core.logging import configure_logging
from maintenance_spine.core.settings import get_settings
from maintenance_spine.core.timestamps import utc_now
from maintenance_spine.scheduling.duration import parse_duration
from maintenance_spine.scheduling.matcher import CheckKind, ScheduleMatcher, check_schedule
from maintenance_spine.scheduling.recurring import RecurringWindowScheduler
from maintenance_spine.scheduling.service import MaintenancePlanner

app = typer.Typer(
    name="maintenance-spine",
    help="maintenance-spine: recurring maintenance window planning.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from maintenance_spine import __version__

        typer.echo(f"maintenance-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """maintenance-spine CLI for recurring maintenance schedules."""
    try:
        settings = get_settings()
    except MaintenanceError as exc:
        fail(exc)
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_format == "json",
    )


def _zone(timezone: str | None) -> str:
    return timezone or get_settings().timezone


@app.command("check")
def check(
    schedule: str = typer.Argument(..., help="Schedule text (newlines allowed)"),
    timezone: str | None = typer.Option(None, "--timezone", "-z", help="Defaults to the configured zone"),
) -> None:
    """Validate a schedule without storing it."""
    result = check_schedule(schedule, timezone=_zone(timezone))
    if result.kind is CheckKind.ERROR:
        fail(result.message or "Invalid schedule")
    if result.kind is CheckKind.WARNING:
        console.print(f"[yellow]Warning[/yellow]: {result.message}")
        return
    console.print("[green]OK[/green]")


@app.command("preview")
def preview(
    schedule: str = typer.Argument(..., help="Schedule text"),
    duration: str = typer.Option("", "--duration", "-d", help='Window length, e.g. "2h"'),
    count: int = typer.Option(5, "--count", "-n", min=1),
    timezone: str | None = typer.Option(None, "--timezone", "-z", help="Defaults to the configured zone"),
    scheduler_id: str | None = typer.Option(None, "--id", help="Seed H fields with a stored schedule's id"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the next windows a schedule would produce.

    Without --id, H fields use a placeholder seed, so the minutes shown
    are illustrative; a stored schedule spreads by its own id.
    """
    try:
        matcher = ScheduleMatcher(schedule, hash_id=scheduler_id, timezone=_zone(timezone))
        minutes = parse_duration(duration)
    except MaintenanceError as exc:
        fail(exc)

    rows = []
    cursor = utc_now()
    while len(rows) < count:
        start = matcher.next_match(cursor)
        if start is None:
            break
        rows.append({"start": start.isoformat(), "end": (start + timedelta(minutes=minutes)).isoformat()})
        cursor = start
    output_rows(rows, as_json=json_out, title="Upcoming windows")


@app.command("add")
def add(
    resource: str = typer.Argument(..., help="Managed resource, e.g. an agent name"),
    schedule: str = typer.Argument(..., help="Schedule text"),
    reason: str = typer.Option("", "--reason", "-r"),
    duration: str = typer.Option("", "--duration", "-d"),
    take_online: bool = typer.Option(True, "--take-online/--stay-offline"),
    keep_up_when_active: bool = typer.Option(True, "--keep-up-when-active/--force"),
    max_wait: str = typer.Option("", "--max-wait", help="Minutes to wait for running work"),
    user: str | None = typer.Option(None, "--user"),
    database: str | None = typer.Option(None, "--database"),
) -> None:
    """Store a recurring maintenance schedule for a resource."""
    try:
        scheduler = RecurringWindowScheduler(
            schedule,
            reason=reason,
            take_online=take_online,
            keep_up_when_active=keep_up_when_active,
            max_wait_minutes=max_wait,
            duration=duration,
            userid=user,
        )
        open_repository(database).save(resource, scheduler)
    except MaintenanceError as exc:
        fail(exc)
    console.print(f"[green]Added[/green] {scheduler.id}")


@app.command("list")
def list_schedules(
    resource: str | None = typer.Option(None, "--resource"),
    database: str | None = typer.Option(None, "--database"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List stored recurring schedules."""
    try:
        repository = open_repository(database)
        if resource:
            stored = repository.list_for_resource(resource)
            failures = []
        else:
            result = repository.load_all()
            stored, failures = result.loaded, result.failures
    except MaintenanceError as exc:
        fail(exc)

    rows = [{"resource": s.resource, **s.scheduler.to_dict()} for s in stored]
    output_rows(rows, as_json=json_out, title="Recurring schedules")
    for failure in failures:
        err_console.print(f"[yellow]Skipped[/yellow] {failure.id} ({failure.resource}): {failure.error.message}")


@app.command("windows")
def windows(
    resource: str = typer.Argument(..., help="Managed resource"),
    database: str | None = typer.Option(None, "--database"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List stored maintenance windows of a resource."""
    try:
        stored = open_repository(database).list_windows(resource)
    except MaintenanceError as exc:
        fail(exc)
    output_rows([w.to_dict() for w in stored], as_json=json_out, title=f"Windows: {resource}")


@app.command("tick")
def tick(
    database: str | None = typer.Option(None, "--database"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run the planner once: compute, store and purge windows."""
    try:
        planner = MaintenancePlanner(open_repository(database))
        planner.reload()
        emitted = planner.run_once()
    except MaintenanceError as exc:
        fail(exc)

    rows = [
        {"resource": resource, **window.to_dict()}
        for resource, resource_windows in emitted.items()
        for window in resource_windows
    ]
    output_rows(rows, as_json=json_out, title="New windows")


@app.command("run")
def run(
    database: str | None = typer.Option(None, "--database"),
    interval: float | None = typer.Option(None, "--interval", help="Seconds between planner ticks"),
) -> None:
    """Run the planner loop until interrupted.

    Example::

        maintenance-spine run --interval 60
    """
    interval = interval or get_settings().planner_interval_seconds
    try:
        planner = MaintenancePlanner(open_repository(database), interval_seconds=interval)
        planner.start()
    except MaintenanceError as exc:
        fail(exc)

    for failure in planner.failures:
        err_console.print(f"[yellow]Skipped[/yellow] {failure.id} ({failure.resource}): {failure.error.message}")
    console.print(
        f"[bold green]Maintenance planner running[/bold green] "
        f"(schedules={len(planner.schedules)}, interval={interval}s)"
    )

    try:
        while planner.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        console.print("\n[yellow]Planner stopped by user[/yellow]")
    finally:
        planner.stop()
