"""
Top-level CLI commands: serve, inspect, generate-key.
"""

import os
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from claude_monitor.logger import setup_logging

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO")
    setup_logging(level=log_level, log_file=os.getenv("LOG_FILE"))


def load_environment():
    """Load variables from a .env file in the working directory, if any."""
    load_dotenv()


def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port"),
    data_file: Optional[Path] = typer.Option(
        None, "--data-file", help="Snapshot file (default from env)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """Run the monitor API."""
    from claude_monitor.config import MonitorConfig
    from claude_monitor.server import run

    if verbose:
        configure_logging(verbose=True)

    try:
        config = MonitorConfig.from_env()
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)

    if host:
        config.host = host
    if port:
        config.port = port
    if data_file:
        config.data_file = data_file
    if verbose:
        config.log_level = "DEBUG"

    run(config)


def inspect(
    data_file: Optional[Path] = typer.Option(
        None, "--data-file", help="Snapshot file (default from env)"
    ),
):
    """Summarize a snapshot file."""
    from claude_monitor.config import MonitorConfig
    from claude_monitor.core.persistence import PersistenceManager
    from claude_monitor.models import Snapshot

    path = data_file or MonitorConfig.from_env().data_file
    if not path.exists():
        typer.echo(f"No snapshot at {path}")
        raise typer.Exit(code=1)

    manager = PersistenceManager(path, capture=Snapshot)
    snapshot = manager.load(quarantine=False)
    if snapshot is None:
        typer.echo(f"Could not read snapshot: {manager.last_error}", err=True)
        raise typer.Exit(code=1)

    statuses = Counter(s.status.value for s in snapshot.sessions.values())
    typer.echo(f"Snapshot: {path}")
    typer.echo(f"  Sessions: {len(snapshot.sessions)}")
    for status in ("active", "idle", "ended"):
        typer.echo(f"    {status}: {statuses.get(status, 0)}")
    typer.echo(f"  Events retained: {len(snapshot.events)}")
    if snapshot.events:
        typer.echo(
            f"    range: {snapshot.events[0].event_id} .. {snapshot.events[-1].event_id}"
        )
    typer.echo(f"  Last event id: {snapshot.last_event_id}")


def generate_key():
    """Print a new random shared secret for CLAUDE_MONITOR_API_KEY."""
    from claude_monitor.middleware import generate_api_key

    typer.echo(generate_api_key())


def register_commands(app: typer.Typer):
    app.command("serve")(serve)
    app.command("inspect")(inspect)
    app.command("generate-key")(generate_key)
