"""File-based persistence for sessions and messages."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import IO, Optional

from .models import MessageRecord, SessionRecord
from .normalization import safe_filename_fragment

logger = logging.getLogger(__name__)

SESSION_FILE_FMT = "activity_%Y%m%d_%H%M%S.json"
MESSAGE_TIME_FMT = "%Y%m%d_%H%M%S"

_OPEN_TOKEN = "[\n"
_SEPARATOR = ",\n"
_CLOSE_TOKEN = "\n]\n"


class SessionLogWriter:
    """Appends session records to a JSON array file, one durable write at a time.

    The file holds ``[`` followed by comma-separated records and only becomes
    a complete JSON document once :meth:`close` writes the closing bracket.
    Writes are unbuffered: every successful :meth:`append` goes straight to
    the OS and is fsynced, and a failed one leaves nothing queued behind it.
    A crash therefore leaves a file that :func:`load_sessions` can repair.
    """

    def __init__(self, path: Path, stream: IO[bytes]) -> None:
        self.path = Path(path)
        self._stream = stream
        self._wrote_first = False
        self._closed = False

    @classmethod
    def create(cls, directory: Path, started_at: Optional[datetime] = None) -> "SessionLogWriter":
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        started_at = started_at or datetime.now()
        path = directory / started_at.strftime(SESSION_FILE_FMT)
        stream = path.open("xb", buffering=0)
        writer = cls(path, stream)
        try:
            writer._write(_OPEN_TOKEN)
        except OSError:
            stream.close()
            raise
        logger.info("Logging sessions to %s", path)
        return writer

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, record: SessionRecord) -> None:
        if self._closed:
            raise ValueError(f"Session log {self.path} is already closed.")
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        self._write(_SEPARATOR + payload if self._wrote_first else payload)
        self._wrote_first = True
        os.fsync(self._stream.fileno())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._write(_CLOSE_TOKEN)
        finally:
            self._stream.close()

    def _write(self, text: str) -> None:
        data = memoryview(text.encode("utf-8"))
        while data:
            written = self._stream.write(data)
            data = data[written:]

    def __enter__(self) -> "SessionLogWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def load_sessions(path: Path) -> list[SessionRecord]:
    """Read a session log, repairing a file that was never closed."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        items = json.loads(text)
    except json.JSONDecodeError:
        repaired = text.rstrip().rstrip(",")
        if not repaired.endswith("]"):
            repaired += "\n]"
        items = json.loads(repaired)
        logger.debug("Repaired unterminated session log %s", path)
    return [SessionRecord.from_dict(item) for item in items]


class MessageWriter:
    """Stores every message as its own pretty-printed JSON file."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def save(self, message: MessageRecord) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = message.timestamp.strftime(MESSAGE_TIME_FMT)
        millis = message.timestamp.microsecond // 1000
        stem = f"msg_{stamp}.{millis:03d}_{safe_filename_fragment(message.title)}"
        content = json.dumps(message.to_dict(), ensure_ascii=False, indent=2) + "\n"

        attempt = 0
        while True:
            suffix = f"-{attempt}" if attempt else ""
            path = self.directory / f"{stem}{suffix}.json"
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(content)
            except FileExistsError:
                attempt += 1
                continue
            return path
