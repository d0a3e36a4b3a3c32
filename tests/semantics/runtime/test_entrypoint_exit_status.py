"""
Semantic test: command line exit status.

Invariants:
- Configuration errors (missing URL, no input files, malformed headers)
  exit non-zero before any work starts.
- A run where every transmission succeeds exits 0 and prints a summary.
- A transmission failure exits non-zero.
- The request span flag is converted to milliseconds by truncation and
  header whitespace is trimmed before the config is frozen.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from remote_write_replay.core.domain.types import WriteBatch
from remote_write_replay.core.errors import RemoteWriteHTTPError
from remote_write_replay.replay.runtime import entrypoint, replayer
from remote_write_replay.replay.runtime.context import RemoteWriteTarget
from remote_write_replay.replay.transport.client import SendResult

URL = "http://localhost:9201/write"


class _OkClient:
    targets: list[RemoteWriteTarget] = []

    def __init__(self, target: RemoteWriteTarget) -> None:
        _OkClient.targets.append(target)

    def send(self, batch: WriteBatch) -> SendResult:
        return SendResult(status_code=204, compressed_bytes=1)

    def close(self) -> None:
        return


class _FailingClient(_OkClient):
    def send(self, batch: WriteBatch) -> SendResult:
        raise RemoteWriteHTTPError(500, "Internal Server Error", "")


@pytest.fixture
def dump_file(tmp_path: Path) -> Path:
    path = tmp_path / "dump.json"
    path.write_text(
        json.dumps(
            [
                {"metric": {"__name__": "up"}, "values": [[0, "1"], [30, "1"], [90, "0"]]},
                {"metric": {"__name__": "load"}, "values": [[45, "0.5"]]},
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _no_pushgateway(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)


@pytest.mark.parametrize(
    "argv",
    [
        ["dump.json"],
        ["--url", URL],
        ["--url", URL, "--headers", "X-Scope-OrgID", "dump.json"],
        ["--url", URL, "--headers", ":v", "dump.json"],
        ["--url", URL, "--request-span", "0s", "dump.json"],
        ["--url", URL, "--write-timeout", "soon", "dump.json"],
    ],
)
def test_configuration_errors_exit_non_zero(argv: list[str]) -> None:
    assert entrypoint.main(argv) == 1


def test_successful_run_exits_zero(
    dump_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _OkClient.targets = []
    monkeypatch.setattr(replayer, "RemoteWriteClient", _OkClient)

    status = entrypoint.main(
        [
            "--url", URL,
            "--concurrency", "4",
            "--headers", "X-Scope-OrgID:tenant",
            str(dump_file),
        ]
    )

    assert status == 0
    assert "Replay summary" in capsys.readouterr().out
    assert len(_OkClient.targets) == 4
    assert _OkClient.targets[0].headers["X-Scope-OrgID"] == "tenant"


def test_events_are_recorded_when_requested(
    dump_file: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(replayer, "RemoteWriteClient", _OkClient)
    events_path = tmp_path / "events.jsonl"

    status = entrypoint.main(
        ["--url", URL, "--record-events", str(events_path), str(dump_file)]
    )

    assert status == 0
    types = [
        json.loads(line)["type"]
        for line in events_path.read_text(encoding="utf-8").splitlines()
    ]
    assert types.count("BatchBuiltEvent") == 2
    assert types.count("BatchTransmittedEvent") == 2


def test_transmission_failure_exits_non_zero(
    dump_file: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(replayer, "RemoteWriteClient", _FailingClient)

    assert entrypoint.main(["--url", URL, str(dump_file)]) == 1


def test_unreadable_input_exits_non_zero(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(replayer, "RemoteWriteClient", _OkClient)

    assert entrypoint.main(["--url", URL, str(tmp_path / "absent.json")]) == 1


def test_request_span_and_headers_are_normalized(dump_file: Path) -> None:
    args = entrypoint._build_parser().parse_args(
        [
            "--url", URL,
            "--request-span", "1500us",
            "--headers", "X-Scope-OrgID: 1234",
            str(dump_file),
        ]
    )

    config = entrypoint.build_config(args)

    assert config.request_span_ms == 1
    assert config.to_target().headers["X-Scope-OrgID"] == "1234"
