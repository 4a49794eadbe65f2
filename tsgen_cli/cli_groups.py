"""Command groups for the tsgen CLI.

  tsgen config  — show and edit ~/.tsgen/config.toml
  tsgen backup  — list and restore backups taken by in-place rewrites
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import config_manager
from .diff_engine import DiffEngine

console = Console()

# ── Configuration group ──────────────────────────────────────
config_grp = typer.Typer(
    help="⚙️  Configuration — analysis thresholds and license header.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ── Backup group ─────────────────────────────────────────────
backup_grp = typer.Typer(
    help="🗂  Backups — restore files rewritten in place.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@config_grp.command("show")
def show_config():
    """Print the effective configuration."""
    cfg = config_manager.load_config()
    typer.echo(f"Config file: {config_manager.CONFIG_FILE}")
    for section, values in cfg.items():
        typer.echo(f"[{section}]")
        if isinstance(values, dict):
            for key, value in values.items():
                typer.echo(f"  {key} = {value!r}")


@config_grp.command("set-analysis")
def set_analysis(
    large_file_lines: Optional[int] = typer.Option(None, "--large-file-lines", min=1, help="Line count that triggers a large-file warning."),
    complexity_threshold: Optional[int] = typer.Option(None, "--complexity", min=1, help="Aggregate complexity that triggers a warning."),
    diff_tolerance: Optional[int] = typer.Option(None, "--diff-tolerance", min=0, help="Line-span change tolerated by compare."),
):
    """Update analysis thresholds."""
    if large_file_lines is None and complexity_threshold is None and diff_tolerance is None:
        console.print("[yellow]Nothing to change.[/yellow]")
        raise typer.Exit(1)
    if not config_manager.save_analysis_config(large_file_lines, complexity_threshold, diff_tolerance):
        console.print("[red]✗[/red] Could not write configuration.")
        raise typer.Exit(1)
    typer.echo("Analysis settings saved.")


@config_grp.command("set-license")
def set_license(header: str = typer.Argument(..., help="Header text; use \\n for line breaks.")):
    """Store the default license header for 'tsgen license'."""
    if not config_manager.save_license_header(header.replace("\\n", "\n")):
        console.print("[red]✗[/red] Could not write configuration.")
        raise typer.Exit(1)
    typer.echo("License header saved.")


@backup_grp.command("list")
def list_backups():
    """List backups, newest first."""
    backups = DiffEngine().list_backups()
    if not backups:
        typer.echo("No backups yet.")
        raise typer.Exit(code=0)

    table = Table(show_header=True)
    table.add_column("Backup ID", style="cyan", no_wrap=True)
    table.add_column("When")
    table.add_column("Description")
    table.add_column("Files", justify="right")
    for entry in backups:
        table.add_row(entry["backup_id"], entry["timestamp"], entry.get("description", ""), str(len(entry["files"])))
    console.print(table)


@backup_grp.command("restore")
def restore_backup(backup_id: str = typer.Argument(..., help="ID shown by 'tsgen backup list'.")):
    """Restore the files saved in a backup."""
    if not DiffEngine().rollback(backup_id):
        console.print(f"[red]✗[/red] Backup '{backup_id}' not found or unreadable.")
        raise typer.Exit(1)
    typer.echo(f"Restored backup '{backup_id}'.")
