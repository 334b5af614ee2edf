"""Configuration models and helpers for the activity logger."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

from .paths import get_message_dir


class IngestConfigError(RuntimeError):
    """Raised when the message ingestor lacks required credentials."""


@dataclass(slots=True)
class CollectorSettings:
    """Runtime configuration for the polling collector."""

    sample_interval: timedelta = timedelta(milliseconds=1500)
    probe_timeout: timedelta = timedelta(seconds=3)

    @classmethod
    def from_intervals(
        cls,
        sample_seconds: float,
        probe_timeout_seconds: float | None = None,
    ) -> "CollectorSettings":
        timeout = (
            probe_timeout_seconds
            if probe_timeout_seconds is not None
            else max(sample_seconds * 2, 3.0)
        )
        return cls(
            sample_interval=timedelta(seconds=sample_seconds),
            probe_timeout=timedelta(seconds=timeout),
        )


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip() == "1"


@dataclass(slots=True)
class IngestSettings:
    """Credentials and filters for the Slack message ingestor."""

    bot_token: str
    app_token: str
    self_user_id: str
    message_dir: Path
    log_all: bool = False
    debug: bool = False
    source: str = "Slack"
    direction: str = "sent"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        message_dir: Optional[Path] = None,
    ) -> "IngestSettings":
        env = os.environ if environ is None else environ
        bot_token = env.get("SLACK_BOT_TOKEN", "").strip()
        app_token = env.get("SLACK_APP_TOKEN", "").strip()
        self_user_id = env.get("SLACK_SELF_USER_ID", "").strip()
        if not bot_token or not app_token:
            raise IngestConfigError("SLACK_BOT_TOKEN / SLACK_APP_TOKEN not set")
        if not self_user_id:
            raise IngestConfigError("SLACK_SELF_USER_ID not set")
        return cls(
            bot_token=bot_token,
            app_token=app_token,
            self_user_id=self_user_id,
            message_dir=Path(message_dir) if message_dir else get_message_dir(),
            log_all=_flag(env.get("SLACK_LOG_ALL")),
            debug=_flag(env.get("SLACK_DEBUG")),
        )
