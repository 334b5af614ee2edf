"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "ActivityLog"
APP_AUTHOR = "ActivityLog"


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    return Path(dirs.user_data_path)


def get_session_log_dir() -> Path:
    return get_data_dir() / "log"


def get_message_dir() -> Path:
    return get_data_dir() / "Message"
