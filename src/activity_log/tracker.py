"""State machine that turns a stream of samples into finalized sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from .classifier import classify
from .models import ActiveSession, Sample, SessionRecord
from .normalization import clean_text

Classifier = Callable[[str, str], str]


def finalize(session: ActiveSession, end: datetime) -> SessionRecord:
    """Close ``session`` at ``end``, producing the record to persist."""
    elapsed = (end - session.started_at).total_seconds()
    return SessionRecord(
        start=session.started_at,
        end=end,
        application=clean_text(session.application),
        window_title=clean_text(session.window_title),
        category=clean_text(session.category),
        duration_seconds=max(0, int(elapsed + 0.5)),
    )


class SessionTracker:
    """Tracks the currently open session and emits records on transitions.

    The tracker is either idle (``active is None``) or holds exactly one
    :class:`ActiveSession`. It performs no I/O and is not thread-safe; the
    polling loop owns it exclusively.
    """

    def __init__(self, classifier: Classifier = classify) -> None:
        self._classify = classifier
        self._active: Optional[ActiveSession] = None

    @property
    def active(self) -> Optional[ActiveSession]:
        return self._active

    def observe(self, sample: Sample, now: Optional[datetime] = None) -> Optional[SessionRecord]:
        """Feed one sample; return the finalized previous session on a transition."""
        now = now or sample.timestamp
        category = self._classify(sample.application, sample.window_title)
        current = self._active

        if current is None:
            self._active = self._open(sample, category, now)
            return None

        if self._matches(current, sample, category):
            return None

        record = finalize(current, now)
        self._active = self._open(sample, category, now)
        return record

    def close(self, now: datetime) -> Optional[SessionRecord]:
        """Finalize the open session, if any, and return to the idle state."""
        current = self._active
        if current is None:
            return None
        self._active = None
        return finalize(current, now)

    @staticmethod
    def _open(sample: Sample, category: str, now: datetime) -> ActiveSession:
        return ActiveSession(
            application=sample.application,
            window_title=sample.window_title,
            category=category,
            started_at=now,
        )

    @staticmethod
    def _matches(session: ActiveSession, sample: Sample, category: str) -> bool:
        return (
            session.application == sample.application
            and session.window_title == sample.window_title
            and session.category == category
        )
