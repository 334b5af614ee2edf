"""Utilities to normalize process names, window titles and file names."""

from __future__ import annotations

import re
from typing import Optional

_BROWSER_SUFFIXES: dict[str, tuple[str, ...]] = {
    "msedge.exe": (" - Microsoft Edge",),
    "chrome.exe": (" - Google Chrome",),
    "firefox.exe": (" - Mozilla Firefox",),
    "brave.exe": (" - Brave",),
    "opera.exe": (" - Opera",),
}

_WHITESPACE_PATTERN = re.compile(r"[\t\n\f\r ]+")
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_MAX_FILENAME_FRAGMENT = 64


def clean_text(value: Optional[str]) -> str:
    """Drop NUL bytes, collapse whitespace runs and trim the result."""
    if not value:
        return ""
    value = value.replace("\x00", "")
    return _WHITESPACE_PATTERN.sub(" ", value).strip()


def shorten(value: str, limit: int) -> str:
    """Truncate to ``limit`` characters, marking the cut with an ellipsis."""
    if len(value) <= limit:
        return value
    return value[:limit] + "…"


def safe_filename_fragment(value: str) -> str:
    """Turn an arbitrary title into something usable inside a file name."""
    fragment = value.replace(" ", "_").replace("/", "-").replace("\\", "-")
    fragment = _ILLEGAL_FILENAME_CHARS.sub("", fragment)
    fragment = fragment.strip(".")
    return fragment[:_MAX_FILENAME_FRAGMENT]


def normalize_window_title(process_name: Optional[str], window_title: Optional[str]) -> str:
    """Remove common browser suffixes to surface tab names."""
    if not window_title:
        return ""
    normalized = window_title.strip()
    if not process_name:
        return normalized

    suffixes = _BROWSER_SUFFIXES.get(process_name.lower())
    if suffixes:
        for suffix in suffixes:
            if normalized.endswith(suffix):
                normalized = normalized[: -len(suffix)].rstrip(" -")
                break

    normalized = _strip_tab_count(normalized)
    return re.sub(r"\s{2,}", " ", normalized).strip()


_EXTRA_TAB_COUNT_PATTERN = re.compile(r"\s+and\s+\d+\s+more\s+pages?", re.IGNORECASE)


def _strip_tab_count(value: str) -> str:
    cleaned = _EXTRA_TAB_COUNT_PATTERN.sub("", value)
    return cleaned.strip(" -|")
