"""
Tiered Backup CLI - Command-line interface.

Run backups, inspect retention plans and manage settings from the terminal.
"""

import logging
import signal
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tiered_backup.automations.scheduler import BackupScheduler
from tiered_backup.config.duration import format_duration, parse_duration_seconds
from tiered_backup.config.settings import (
    BackupSettings,
    load_settings,
    resolve_config_path,
    save_settings,
    update_setting,
)
from tiered_backup.core.exceptions import ConfigurationError, RetentionError
from tiered_backup.core.models import bytes_to_human
from tiered_backup.orchestrator.core import BackupOrchestrator
from tiered_backup.retention.pruner import RetentionPruner, apply_plan
from tiered_backup.state.manager import BackupState

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

app = typer.Typer(
    name="tiered-backup",
    help="Tiered Backup - Timestamped Archive Snapshots with Tiered Retention",
    no_args_is_help=True,
)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to the YAML config file")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Tiered Backup - Timestamped Archive Snapshots with Tiered Retention."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def _load(config: Optional[Path]) -> BackupSettings:
    try:
        return load_settings(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def run(config: Optional[Path] = ConfigOption):
    """Run one backup now."""
    settings = _load(config)
    orchestrator = BackupOrchestrator.from_settings(settings)
    try:
        result = orchestrator.run_now()
    finally:
        orchestrator.close()

    info = orchestrator.last_info
    duration = f"{info.duration_seconds:.1f}s" if info and not result.is_rejected else "-"
    style = "green" if result.success else "red"
    console.print(
        Panel.fit(
            f"[bold {style}]Backup {'complete' if result.success else 'failed'}[/bold {style}]\n"
            f"Files: {result.files_count}\n"
            f"Size: {bytes_to_human(result.total_bytes)}\n"
            f"Took: {duration}\n"
            f"Message: {escape(result.message)}",
        )
    )

    if not result.success:
        raise typer.Exit(1)


@app.command()
def status(config: Optional[Path] = ConfigOption):
    """Show the last backup, any backup in progress and the automatic backup schedule."""
    settings = _load(config)
    snapshot = BackupState.load_snapshot(settings.resolve_state_file())
    info = snapshot.last_backup

    if snapshot.running:
        console.print("[bold yellow]A backup is in progress[/bold yellow]")

    if info is None:
        console.print("[yellow]No backup recorded yet[/yellow]")
    else:
        table = Table(title="Last Backup", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        outcome = "[green]success[/green]" if info.success else "[red]failed[/red]"
        table.add_row("Result", outcome)
        table.add_row("Finished", info.finished_at[:19])
        table.add_row("Files", str(info.files_count))
        table.add_row("Size", bytes_to_human(info.total_bytes))
        table.add_row("Took", f"{info.duration_seconds:.1f}s")
        table.add_row("Message", escape(info.message))
        console.print(table)

    interval = settings.interval_seconds()
    if interval > 0:
        console.print(f"Automatic backup: every {format_duration(interval)}")
    else:
        console.print("Automatic backup: disabled")

    remaining = snapshot.seconds_until_next_run()
    if remaining is not None:
        console.print(f"Next automatic backup in {format_duration(remaining)}")
    elif interval > 0:
        console.print("Next automatic backup: not scheduled (serve is not running)")


@app.command()
def plan(
    config: Optional[Path] = ConfigOption,
    apply: bool = typer.Option(False, "--apply", help="Delete the artifacts marked for deletion"),
):
    """Show which backups the retention policy keeps and deletes."""
    settings = _load(config)
    try:
        tiers = settings.retention_tiers()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    pruner = RetentionPruner(
        prefix=settings.archive_prefix,
        extension=settings.archive_extension,
        tiers=tiers,
        max_total=settings.retention.max_total,
        max_backups=max(0, settings.max_backups),
    )
    output_dir = settings.resolve_output_dir()
    now = datetime.now(timezone.utc)
    try:
        retention_plan = pruner.plan(output_dir, now=now)
    except RetentionError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    policy = "tiered" if retention_plan.tiered else "max-backups"
    table = Table(title=f"Retention Plan ({policy})")
    table.add_column("Backup", style="cyan")
    table.add_column("Age", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Decision")

    rows = sorted(
        retention_plan.keep + retention_plan.delete,
        key=lambda a: (a.timestamp, a.name),
        reverse=True,
    )
    for artifact in rows:
        age = format_duration((now - artifact.timestamp).total_seconds())
        claim = retention_plan.claims.get(artifact.name)
        decision = f"[green]keep ({claim})[/green]" if claim else "[red]delete[/red]"
        table.add_row(artifact.name, age, bytes_to_human(artifact.size_bytes), decision)

    console.print(table)
    console.print(f"Keep: {len(retention_plan.keep)}  Delete: {len(retention_plan.delete)}")

    if apply and retention_plan.delete:
        result = apply_plan(retention_plan)
        console.print(
            f"[green]Deleted {result.deleted_count} backup(s), "
            f"freed {bytes_to_human(result.freed_bytes)}[/green]"
        )
        for error in result.errors:
            console.print(f"[yellow]{escape(error)}[/yellow]")
        if not result.success:
            raise typer.Exit(1)


def reload_service(
    config: Optional[Path],
    orchestrator: BackupOrchestrator,
    scheduler: BackupScheduler,
) -> bool:
    """
    Re-read the config file and apply it to a running service.

    The scheduler is only restarted when the interval changed. An invalid
    file leaves the current settings in place.

    Returns:
        True if the new settings were applied
    """
    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        console.print(f"[red]Reload failed, keeping current settings:[/red] {escape(str(e))}")
        return False

    orchestrator.update_settings(settings)
    interval = settings.interval_seconds()
    if interval != scheduler.interval_seconds:
        scheduler.reschedule(interval)

    every = format_duration(interval) if interval > 0 else "disabled"
    console.print(f"[green]Configuration reloaded[/green] (automatic backup: {every})")
    return True


@app.command()
def serve(config: Optional[Path] = ConfigOption):
    """
    Run automatic backups at the configured interval until interrupted.

    SIGTERM stops the service. SIGHUP re-reads the config file.
    """
    settings = _load(config)
    interval = settings.interval_seconds()
    if interval <= 0:
        console.print("[yellow]Automatic backup is disabled (interval is 0S)[/yellow]")
        raise typer.Exit(1)

    orchestrator = BackupOrchestrator.from_settings(settings)
    scheduler = BackupScheduler(
        orchestrator.run_now, interval, on_schedule=orchestrator.state.set_next_run
    )
    stop_requested = threading.Event()
    reload_requested = threading.Event()

    def handle_stop(signum, frame):
        stop_requested.set()

    def handle_reload(signum, frame):
        reload_requested.set()

    signal.signal(signal.SIGTERM, handle_stop)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handle_reload)

    console.print(
        Panel.fit(
            f"[bold blue]Tiered Backup[/bold blue]\n"
            f"Targets: {', '.join(settings.targets()) or 'none'}\n"
            f"Every: {format_duration(interval)}\n"
            f"Output: {settings.resolve_output_dir()}",
        )
    )
    scheduler.start()
    try:
        while not stop_requested.wait(1.0):
            if reload_requested.is_set():
                reload_requested.clear()
                reload_service(config, orchestrator, scheduler)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping scheduler[/yellow]")
    finally:
        scheduler.stop()
        orchestrator.close()


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="interval, output-dir, max-backups or notify-players"),
    value: str = typer.Argument(..., help="New value"),
    config: Optional[Path] = ConfigOption,
):
    """Change one setting and save the config file."""
    settings = _load(config)
    try:
        updated = update_setting(settings, key, value)
    except ConfigurationError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)

    path = save_settings(updated, resolve_config_path(config))
    console.print(f"[green]Set {key.lower()} = {value}[/green] ({path})")


@app.command("parse-duration")
def parse_duration_cmd(
    literal: str = typer.Argument(..., help="Duration such as 1D2H30M, 3H, 5M or 45S"),
):
    """Convert a duration literal to seconds."""
    try:
        seconds = parse_duration_seconds(literal)
    except ConfigurationError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)
    console.print(f"{seconds} seconds ({format_duration(seconds)})")


@app.command()
def version():
    """Show Tiered Backup version."""
    from tiered_backup import __version__

    console.print(f"Tiered Backup v{__version__}")


if __name__ == "__main__":
    app()
