"""Probes that report the foreground application and its window or tab title."""

from __future__ import annotations

import ctypes
import logging
import subprocess
import sys
from typing import Optional, Protocol

import psutil

from .normalization import normalize_window_title

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0

CHROMIUM_BROWSERS = ("chrome", "edge", "brave", "vivaldi", "opera", "arc")


class SampleError(RuntimeError):
    """The foreground application could not be determined this time."""


class FrontmostProbe(Protocol):
    def sample(self) -> tuple[str, str]:
        """Return ``(application, title)`` or raise :class:`SampleError`."""


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


_FRONT_APP_SCRIPT = """
tell application "System Events"
    set frontApp to name of first process whose frontmost is true
end tell
return frontApp
"""

_SAFARI_TAB_SCRIPT = """
tell application "Safari"
    try
        if (count of windows) > 0 then
            return name of current tab of front window
        else
            return ""
        end if
    on error
        return ""
    end try
end tell
"""

_CHROMIUM_TAB_SCRIPT = """
tell application "{app}"
    try
        if (count of windows) > 0 then
            return title of active tab of front window
        else
            return ""
        end if
    on error
        return ""
    end try
end tell
"""

_WINDOW_TITLE_SCRIPT = """
tell application "System Events"
    tell process "{app}"
        try
            return name of front window
        on error
            try
                return value of attribute "AXTitle" of front window
            on error
                return ""
            end try
        end try
    end tell
end tell
"""


class MacFrontmostProbe:
    """Queries macOS through ``osascript``, preferring the active browser tab."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def sample(self) -> tuple[str, str]:
        try:
            app = self._run(_FRONT_APP_SCRIPT).strip()
        except SampleError as exc:
            raise SampleError(f"get frontmost app failed: {exc}") from exc

        title = self._tab_title(app)
        if title is None:
            try:
                title = self._run(_WINDOW_TITLE_SCRIPT.format(app=_escape(app)))
            except SampleError:
                logger.debug("No window title available for %s", app)
                title = ""
        return app, title.strip()

    def _tab_title(self, app: str) -> Optional[str]:
        lowered = app.lower()
        if lowered == "safari":
            script = _SAFARI_TAB_SCRIPT
        elif any(name in lowered for name in CHROMIUM_BROWSERS):
            script = _CHROMIUM_TAB_SCRIPT.format(app=_escape(app))
        else:
            return None
        try:
            return self._run(script)
        except SampleError:
            logger.debug("Tab lookup failed for %s; using window title.", app)
            return None

    def _run(self, script: str) -> str:
        try:
            result = subprocess.run(
                ["osascript", "-e", script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise SampleError(f"osascript timed out after {self.timeout:.1f}s") from exc
        except OSError as exc:
            raise SampleError(f"osascript could not be started: {exc}") from exc
        if result.returncode != 0:
            raise SampleError(result.stderr.strip() or f"osascript exited {result.returncode}")
        return result.stdout


class WindowsFrontmostProbe:
    """Retrieves the foreground window title and process name."""

    def __init__(self) -> None:
        from ctypes import wintypes

        self._wintypes = wintypes
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def sample(self) -> tuple[str, str]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            raise SampleError("No foreground window.")

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)

        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            raise SampleError("Foreground window has no owning process.")
        try:
            process_name = psutil.Process(pid.value).name()
        except (psutil.Error, ProcessLookupError) as exc:
            raise SampleError(f"Process lookup failed for pid {pid.value}: {exc}") from exc

        return process_name, normalize_window_title(process_name, buffer.value)


def default_probe(timeout: float = DEFAULT_TIMEOUT) -> FrontmostProbe:
    """Pick the probe for the running platform."""
    if sys.platform == "darwin":
        return MacFrontmostProbe(timeout=timeout)
    if sys.platform == "win32":
        return WindowsFrontmostProbe()
    raise SampleError(f"Foreground window sampling is not supported on {sys.platform}.")
