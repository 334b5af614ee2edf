"""Command-line interface for the activity logger."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .classifier import classify
from .config import CollectorSettings
from .normalization import shorten

app = typer.Typer(help="Log foreground activity sessions and your own Slack messages.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", path_type=Path, help="Also write logs to this file."
    ),
) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


@app.command()
def run(
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        path_type=Path,
        help="Directory for session logs (one JSON file per run).",
    ),
    message_dir: Optional[Path] = typer.Option(
        None,
        "--message-dir",
        path_type=Path,
        help="Directory for captured Slack messages (one JSON file each).",
    ),
    sample_seconds: float = typer.Option(
        1.5,
        "--interval",
        min=0.2,
        help="Sampling interval in seconds.",
    ),
    probe_timeout: Optional[float] = typer.Option(
        None,
        "--probe-timeout",
        min=0.5,
        help="Seconds to wait for the foreground query before skipping a tick.",
    ),
    slack: bool = typer.Option(
        True,
        "--slack/--no-slack",
        help="Capture your own Slack messages when credentials are set.",
    ),
) -> None:
    """Record sessions until interrupted (Ctrl+C or SIGTERM)."""
    from .probe import SampleError
    from .runner import run_agent

    settings = CollectorSettings.from_intervals(
        sample_seconds=sample_seconds, probe_timeout_seconds=probe_timeout
    )
    try:
        run_agent(
            log_dir=log_dir,
            message_dir=message_dir,
            settings=settings,
            enable_slack=slack,
        )
    except (OSError, SampleError) as exc:
        logging.getLogger(__name__).error("Failed to start: %s", exc)
        raise typer.Exit(code=1) from exc


@app.command()
def show(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Session log file."),
) -> None:
    """Print the sessions stored in a log file, even one left unterminated."""
    from .storage import load_sessions

    records = load_sessions(path)
    if not records:
        typer.echo("No sessions recorded in this file.")
        return
    for record in records:
        typer.echo(
            f"{record.start:%H:%M:%S}-{record.end:%H:%M:%S} "
            f"{record.duration_seconds:>6}s  {record.category:<26} "
            f"{record.application} - {shorten(record.window_title, 60)}"
        )


@app.command(name="classify")
def classify_command(
    application: str = typer.Argument(..., help="Application name."),
    title: str = typer.Argument("", help="Window or tab title."),
) -> None:
    """Show which activity a given application and title map to."""
    typer.echo(classify(application, title))
