"""maintenance-spine command line interface (typer + rich)."""

from maintenance_spine.cli.app import app

__all__ = ["app"]
