"""Domain models for recorded activity and ingested messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def format_timestamp(value: datetime) -> str:
    """Render an instant as RFC3339 with second precision and a UTC offset."""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat(timespec="seconds")


@dataclass(slots=True, frozen=True)
class Sample:
    """A single observation of the foreground application."""

    application: str
    window_title: str
    timestamp: datetime


@dataclass(slots=True, frozen=True)
class ActiveSession:
    """The session currently open inside the tracker."""

    application: str
    window_title: str
    category: str
    started_at: datetime


@dataclass(slots=True, frozen=True)
class SessionRecord:
    """A finalized block of time spent in a single activity."""

    start: datetime
    end: datetime
    application: str
    window_title: str
    category: str
    duration_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": format_timestamp(self.start),
            "end": format_timestamp(self.end),
            "app": self.application,
            "title": self.window_title,
            "activity": self.category,
            "durationSec": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        return cls(
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            application=data["app"],
            window_title=data["title"],
            category=data["activity"],
            duration_seconds=int(data["durationSec"]),
        )


@dataclass(slots=True, frozen=True)
class MessageRecord:
    """A single chat message captured from the event stream."""

    timestamp: datetime
    source: str
    text: str
    title: str = ""
    direction: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": format_timestamp(self.timestamp),
            "source": self.source,
        }
        if self.direction:
            data["direction"] = self.direction
        if self.title:
            data["title"] = self.title
        data["text"] = self.text
        if self.metadata:
            data["meta"] = dict(self.metadata)
        return data
