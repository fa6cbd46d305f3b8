import io
import json
from datetime import datetime

import pytest

from learnlite.core.config import NotificationSettings, SinkKind
from learnlite.core.exceptions import ConfigurationError, DeliveryError
from learnlite.notifications.event_store import ClaimedEvent
from learnlite.notifications.sinks import FileSink, StreamSink, build_sink

ENROLLMENT = ClaimedEvent(
    id=1, topic="enrollment.created", payload={"user_id": 2, "course_id": 1}, created_at=datetime(2026, 1, 1, 9, 0)
)
CERTIFICATE = ClaimedEvent(
    id=2, topic="cert.issued", payload={"certificate_id": 5}, created_at=datetime(2026, 1, 1, 9, 1)
)


@pytest.mark.asyncio
async def test_stream_sink_writes_one_line_per_event():
    stream = io.StringIO()
    sink = StreamSink(stream)

    await sink.deliver(ENROLLMENT)
    await sink.deliver(CERTIFICATE)

    lines = stream.getvalue().splitlines()
    assert len(lines) == 2
    assert "enrollment.created #1" in lines[0]
    assert lines[0].endswith('{"user_id": 2, "course_id": 1}')
    assert "cert.issued #2" in lines[1]


@pytest.mark.asyncio
async def test_stream_sink_failure_raises_delivery_error():
    stream = io.StringIO()
    stream.close()

    with pytest.raises(DeliveryError):
        await StreamSink(stream).deliver(ENROLLMENT)


@pytest.mark.asyncio
async def test_file_sink_appends_jsonl_records(tmp_path):
    path = tmp_path / "nested" / "var" / "notifications.log"
    sink = FileSink(path)
    sink.prepare()
    assert path.parent.is_dir()

    await sink.deliver(ENROLLMENT)
    await sink.deliver(CERTIFICATE)

    records = [json.loads(line) for line in path.read_text().splitlines()]
    assert [list(r) for r in records] == [["timestamp", "id", "topic", "payload", "created_at"]] * 2
    assert records[0]["id"] == 1
    assert records[0]["topic"] == "enrollment.created"
    assert records[0]["payload"] == {"user_id": 2, "course_id": 1}
    assert records[0]["created_at"] == "2026-01-01T09:00:00"
    assert records[1]["topic"] == "cert.issued"


@pytest.mark.asyncio
async def test_file_sink_never_truncates_existing_lines(tmp_path):
    path = tmp_path / "notifications.log"
    path.write_text('{"id": 0}\n')
    sink = FileSink(path)
    sink.prepare()

    await sink.deliver(ENROLLMENT)

    lines = path.read_text().splitlines()
    assert lines[0] == '{"id": 0}'
    assert json.loads(lines[1])["id"] == 1


def test_file_sink_unwritable_path_is_configuration_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(ConfigurationError):
        FileSink(blocker / "var" / "notifications.log").prepare()


@pytest.mark.asyncio
async def test_file_sink_io_failure_raises_delivery_error(tmp_path):
    # A directory cannot be opened for append
    sink = FileSink(tmp_path)

    with pytest.raises(DeliveryError):
        await sink.deliver(ENROLLMENT)


def test_build_sink_selects_variant(tmp_path):
    file_settings = NotificationSettings(sink=SinkKind.FILE, file_path=tmp_path / "n.log")
    stream_settings = NotificationSettings(sink="console")

    file_sink = build_sink(file_settings)
    assert isinstance(file_sink, FileSink)
    assert file_sink.path == tmp_path / "n.log"
    assert file_sink.name == "file"
    assert isinstance(build_sink(stream_settings), StreamSink)
    assert build_sink(stream_settings).name == "stream"
