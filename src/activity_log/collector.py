"""Polling collector that samples foreground activity and logs sessions."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .config import CollectorSettings
from .models import SessionRecord, Sample, format_timestamp
from .normalization import shorten
from .probe import FrontmostProbe, SampleError
from .storage import SessionLogWriter
from .tracker import SessionTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ActivityCollector:
    """Samples foreground activity at a fixed interval and writes sessions.

    Every tick asks the probe for the frontmost application, feeds the
    :class:`SessionTracker` and appends any session it finalizes. A failed
    sample skips the tick; a failed append is logged and the tracker keeps
    going. :meth:`shutdown` closes the open session and the log exactly once.
    """

    def __init__(
        self,
        probe: FrontmostProbe,
        writer: SessionLogWriter,
        settings: Optional[CollectorSettings] = None,
        tracker: Optional[SessionTracker] = None,
        clock: Clock = _local_now,
    ) -> None:
        self.settings = settings or CollectorSettings()
        self._probe = probe
        self._writer = writer
        self._tracker = tracker or SessionTracker()
        self._clock = clock
        self._stopped = False

    @property
    def tracker(self) -> SessionTracker:
        return self._tracker

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run the collector until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self.shutdown()

    def sample_once(self) -> Optional[SessionRecord]:
        try:
            application, title = self._probe.sample()
        except SampleError as exc:
            logger.warning("Sample skipped: %s", exc)
            return None

        now = self._clock()
        previous = self._tracker.active
        record = self._tracker.observe(Sample(application, title, now), now)
        if record is not None:
            self._persist(record)
        if self._tracker.active is not previous:
            self._log_start()
        return record

    def shutdown(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            record = self._tracker.close(self._clock())
            if record is not None:
                self._persist(record, on_exit=True)
        finally:
            try:
                self._writer.close()
            except OSError:
                logger.exception("Failed to close session log %s", self._writer.path)
            logger.info("Collector stopped.")

    def _persist(self, record: SessionRecord, on_exit: bool = False) -> None:
        try:
            self._writer.append(record)
        except (OSError, ValueError):
            logger.exception("Failed to log session %s", record.to_dict())
            return
        logger.info(
            "%s | end   | %s | dur=%ds%s",
            format_timestamp(record.end),
            record.category,
            record.duration_seconds,
            " (on exit)" if on_exit else "",
        )

    def _log_start(self) -> None:
        active = self._tracker.active
        if active is None:
            return
        logger.info(
            "%s | start | %s | %s - %s",
            format_timestamp(active.started_at),
            active.category,
            active.application,
            shorten(active.window_title, 80),
        )

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting collector; writing to %s", self._writer.path)
        interval = self.settings.sample_interval.total_seconds()
        while not stop_event.is_set():
            self.sample_once()
            # Sleep in an interruptible manner.
            stop_event.wait(interval)
