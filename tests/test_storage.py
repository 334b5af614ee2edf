import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from activity_log.models import MessageRecord, SessionRecord
from activity_log.storage import MessageWriter, SessionLogWriter, load_sessions

T0 = datetime(2025, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


def make_record(index: int) -> SessionRecord:
    start = T0 + timedelta(minutes=index)
    return SessionRecord(
        start=start,
        end=start + timedelta(seconds=30),
        application=f"App {index}",
        window_title=f"Window «{index}»",
        category="Programming",
        duration_seconds=30,
    )


class FaultyStream(io.BytesIO):
    """In-memory raw log whose numbered write calls fail."""

    def __init__(self, fileno_target, fail_calls) -> None:
        super().__init__()
        super().write(b"[\n")
        self._calls = 0
        self._fail_calls = set(fail_calls)
        self._final = b""
        self._fileno_target = fileno_target

    def write(self, value) -> int:
        self._calls += 1
        if self._calls in self._fail_calls:
            raise OSError("disk full")
        return super().write(value)

    def fileno(self) -> int:
        return self._fileno_target.fileno()

    def close(self) -> None:
        if not self.closed:
            self._final = self.getvalue()
        super().close()

    def text(self) -> str:
        data = self._final if self.closed else self.getvalue()
        return data.decode("utf-8")


def test_create_writes_opening_token(tmp_path):
    started = datetime(2025, 3, 4, 9, 15, 7)
    writer = SessionLogWriter.create(tmp_path / "log", started_at=started)
    assert writer.path == tmp_path / "log" / "activity_20250304_091507.json"
    assert writer.path.read_text(encoding="utf-8") == "[\n"
    writer.close()


def test_round_trip_preserves_order(tmp_path):
    records = [make_record(i) for i in range(5)]
    with SessionLogWriter.create(tmp_path, started_at=T0) as writer:
        for record in records:
            writer.append(record)

    assert json.loads(writer.path.read_text(encoding="utf-8"))[0]["app"] == "App 0"
    assert load_sessions(writer.path) == records


def test_empty_log_is_valid_json(tmp_path):
    writer = SessionLogWriter.create(tmp_path, started_at=T0)
    writer.close()
    assert json.loads(writer.path.read_text(encoding="utf-8")) == []


def test_records_use_session_keys_and_literal_text(tmp_path):
    with SessionLogWriter.create(tmp_path, started_at=T0) as writer:
        writer.append(make_record(1))
    text = writer.path.read_text(encoding="utf-8")
    assert "«1»" in text
    item = json.loads(text)[0]
    assert set(item) == {"start", "end", "app", "title", "activity", "durationSec"}
    assert item["start"] == "2025-03-04T09:01:00+00:00"
    assert item["durationSec"] == 30


def test_every_append_leaves_repairable_file(tmp_path):
    writer = SessionLogWriter.create(tmp_path, started_at=T0)
    for count in range(1, 4):
        writer.append(make_record(count))
        assert len(load_sessions(writer.path)) == count
    writer.close()


def test_unterminated_log_is_repaired(tmp_path):
    writer = SessionLogWriter.create(tmp_path, started_at=T0)
    writer.append(make_record(0))
    writer.append(make_record(1))
    # Simulate a crash: the closing bracket is never written.
    assert load_sessions(writer.path) == [make_record(0), make_record(1)]
    writer.close()


def test_failed_append_keeps_earlier_records(tmp_path):
    with (tmp_path / "anchor").open("w") as anchor:
        stream = FaultyStream(anchor, fail_calls={3})
        writer = SessionLogWriter(tmp_path / "faulty.json", stream)

        writer.append(make_record(1))
        writer.append(make_record(2))
        with pytest.raises(OSError):
            writer.append(make_record(3))

        items = json.loads(stream.text() + "\n]")
    assert [item["app"] for item in items] == ["App 1", "App 2"]


def test_failed_append_is_not_written_later(tmp_path):
    with (tmp_path / "anchor").open("w") as anchor:
        stream = FaultyStream(anchor, fail_calls={2})
        writer = SessionLogWriter(tmp_path / "faulty.json", stream)

        writer.append(make_record(1))
        with pytest.raises(OSError):
            writer.append(make_record(2))
        writer.append(make_record(3))
        writer.close()

        items = json.loads(stream.text())
    assert [item["app"] for item in items] == ["App 1", "App 3"]


def test_log_file_has_no_write_buffer(tmp_path):
    writer = SessionLogWriter.create(tmp_path, started_at=T0)
    assert isinstance(writer._stream, io.FileIO)
    writer.close()


def test_append_after_close_raises(tmp_path):
    writer = SessionLogWriter.create(tmp_path, started_at=T0)
    writer.close()
    writer.close()
    with pytest.raises(ValueError):
        writer.append(make_record(0))


def test_create_fails_when_directory_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(OSError):
        SessionLogWriter.create(blocker / "log", started_at=T0)


def make_message(title: str = "C0123", text: str = "hello <world> & \"you\"") -> MessageRecord:
    return MessageRecord(
        timestamp=datetime(2025, 3, 4, 9, 0, 1, 234567, tzinfo=timezone.utc),
        source="Slack",
        direction="sent",
        title=title,
        text=text,
        metadata={"channelId": title, "threadTs": "", "userId": "U1", "ts": "1741078801.000100"},
    )


def test_message_file_is_pretty_and_unescaped(tmp_path):
    path = MessageWriter(tmp_path / "Message").save(make_message(text="日本語 <b>&</b>"))
    assert path.name == "msg_20250304_090001.234_C0123.json"
    text = path.read_text(encoding="utf-8")
    assert "日本語 <b>&</b>" in text
    assert text.startswith('{\n  "timestamp"')
    assert text.endswith("}\n")
    data = json.loads(text)
    assert data["meta"]["userId"] == "U1"
    assert data["direction"] == "sent"


def test_message_filenames_do_not_collide(tmp_path):
    writer = MessageWriter(tmp_path)
    first = writer.save(make_message())
    second = writer.save(make_message())
    assert first != second
    assert second.name == "msg_20250304_090001.234_C0123-1.json"
    assert len(list(tmp_path.iterdir())) == 2


def test_message_title_is_sanitized(tmp_path):
    path = MessageWriter(tmp_path).save(make_message(title='team a/b\\c:"d"'))
    assert path.parent == tmp_path
    assert path.name == "msg_20250304_090001.234_team_a-b-cd.json"


def test_message_optional_fields_are_omitted():
    record = MessageRecord(
        timestamp=datetime(2025, 3, 4, tzinfo=timezone.utc), source="Slack", text="hi"
    )
    assert record.to_dict() == {
        "timestamp": "2025-03-04T00:00:00+00:00",
        "source": "Slack",
        "text": "hi",
    }
