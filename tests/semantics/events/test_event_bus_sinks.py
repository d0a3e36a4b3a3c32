"""
Semantic test: replay events reach every sink, and sinks are finalized once.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from remote_write_replay.core.events.event_bus import EventBus
from remote_write_replay.core.events.events import BatchBuiltEvent, FileDecodedEvent
from remote_write_replay.core.events.sinks.file_recorder import FileRecorderSink
from remote_write_replay.core.events.sinks.sink_logging import LoggingEventSink


def test_file_recorder_writes_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "events" / "replay.jsonl"
    bus = EventBus([FileRecorderSink(path)])

    bus.emit(FileDecodedEvent(path="a.json", series_count=2, sample_count=7))
    bus.emit(
        BatchBuiltEvent(
            source="a.json",
            window_start_ms=0,
            window_end_ms=60_000,
            series_count=2,
            sample_count=7,
        )
    )
    bus.close()
    bus.close()

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [record["type"] for record in records] == ["FileDecodedEvent", "BatchBuiltEvent"]
    assert records[1]["window_end_ms"] == 60_000


def test_logging_sink_logs_events(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.replay.events")
    bus = EventBus([LoggingEventSink(logger, level=logging.INFO)])

    with caplog.at_level(logging.INFO, logger="tests.replay.events"):
        bus.emit(FileDecodedEvent(path="a.json", series_count=1, sample_count=1))

    assert "FileDecodedEvent" in caplog.text

