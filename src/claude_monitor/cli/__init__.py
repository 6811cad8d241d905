"""
Claude Monitor CLI.

- serve:        run the HTTP API
- inspect:      summarize a snapshot file
- generate-key: print a new shared secret
"""

import typer

from claude_monitor.cli.main import configure_logging, load_environment, register_commands

app = typer.Typer(help="Claude Monitor - live Claude Code session tracking")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    Claude Monitor - live Claude Code session tracking.
    """
    load_environment()
    configure_logging(verbose)


register_commands(app)

if __name__ == "__main__":
    app()
