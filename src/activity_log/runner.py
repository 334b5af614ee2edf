"""Helpers to launch the collector and the message ingestor together."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Mapping, Optional

from .collector import ActivityCollector
from .config import CollectorSettings, IngestConfigError, IngestSettings
from .ingest import start_ingest_thread
from .paths import get_message_dir, get_session_log_dir
from .probe import FrontmostProbe, default_probe
from .storage import SessionLogWriter

logger = logging.getLogger(__name__)


def install_signal_handlers(stop_event: threading.Event) -> None:
    """Set ``stop_event`` on SIGINT or SIGTERM."""

    def _request_stop(signum: int, _frame: object) -> None:
        if not stop_event.is_set():
            logger.info("Received %s; finishing the current session.", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)


def start_ingest_if_configured(
    stop_event: threading.Event,
    message_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[threading.Thread]:
    """Start Slack ingestion, or log once and return None without credentials."""
    try:
        settings = IngestSettings.from_env(environ, message_dir=message_dir)
    except IngestConfigError as exc:
        logger.warning("Slack ingest disabled: %s", exc)
        return None
    return start_ingest_thread(settings, stop_event)


def run_agent(
    *,
    log_dir: Optional[Path] = None,
    message_dir: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    enable_slack: bool = True,
    probe: Optional[FrontmostProbe] = None,
    stop_event: Optional[threading.Event] = None,
    handle_signals: bool = True,
) -> None:
    """Run until SIGINT/SIGTERM, then close the open session and the log.

    Raises ``OSError`` or ``SampleError`` if the session log or the probe
    cannot be set up; nothing has started at that point.
    """
    settings = settings or CollectorSettings()
    probe = probe or default_probe(timeout=settings.probe_timeout.total_seconds())
    writer = SessionLogWriter.create(log_dir or get_session_log_dir())

    stop_event = stop_event or threading.Event()
    if handle_signals and threading.current_thread() is threading.main_thread():
        install_signal_handlers(stop_event)

    if enable_slack:
        start_ingest_if_configured(stop_event, message_dir or get_message_dir())

    collector = ActivityCollector(probe=probe, writer=writer, settings=settings)
    collector.run_until_stopped(stop_event)
