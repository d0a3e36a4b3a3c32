"""
Semantic test: remote write request contract.

Invariants:
- The body is snappy(protobuf(WriteRequest)) and decodes back to the batch.
- Required headers are always present; operator headers are applied after
  them and win on collision.
- Each request carries the configured write timeout.
- Any non-2xx status, network error or timeout surfaces as a
  TransmissionError; nothing is retried.
- At most MAX_ERROR_BODY_BYTES of an error body are read to report its
  first line.
"""

from __future__ import annotations

from typing import Any, Iterator

import pytest
import requests
import snappy

from remote_write_replay.core.domain.types import (
    Label,
    Sample,
    SeriesProjection,
    TimeWindow,
    WriteBatch,
)
from remote_write_replay.core.errors import (
    DeadlineExceededError,
    RemoteWriteHTTPError,
    TransmissionError,
)
from remote_write_replay.replay.runtime.context import RemoteWriteTarget
from remote_write_replay.replay.transport.client import (
    MAX_ERROR_BODY_BYTES,
    RemoteWriteClient,
)
from remote_write_replay.replay.wire.codec import WriteRequest

URL = "http://receiver.local/api/v1/push"


class _FakeResponse:
    def __init__(self, status_code: int, reason: str = "", content: bytes = b"") -> None:
        self.status_code = status_code
        self.reason = reason
        self.content = content
        self.closed = False
        self.bytes_read = 0

    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        for start in range(0, len(self.content), chunk_size):
            chunk = self.content[start:start + chunk_size]
            self.bytes_read += len(chunk)
            yield chunk

    def close(self) -> None:
        self.closed = True


class _FakeSession:
    def __init__(self, *, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def post(
        self,
        url: str,
        *,
        data: bytes,
        headers: dict[str, str],
        timeout: float,
        stream: bool = False,
    ) -> _FakeResponse:
        self.calls.append(
            {"url": url, "data": data, "headers": headers, "timeout": timeout, "stream": stream}
        )
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response

    def close(self) -> None:
        self.closed = True


def _batch() -> WriteBatch:
    return WriteBatch(
        window=TimeWindow(start_ms=0, end_ms=60_000),
        timeseries=(
            SeriesProjection(
                labels=(Label(name="__name__", value="up"), Label(name="job", value="node")),
                samples=(
                    Sample(timestamp_ms=1_000, value=1.0),
                    Sample(timestamp_ms=2_000, value=float("inf")),
                ),
            ),
            SeriesProjection(
                labels=(Label(name="__name__", value="load"),),
                samples=(Sample(timestamp_ms=1_500, value=0.25),),
            ),
        ),
    )


def _target(headers: dict[str, str] | None = None) -> RemoteWriteTarget:
    return RemoteWriteTarget(url=URL, write_timeout_s=12.5, extra_headers=headers or {})


def test_body_is_snappy_compressed_write_request() -> None:
    session = _FakeSession(response=_FakeResponse(204))
    client = RemoteWriteClient(_target(), session=session)

    result = client.send(_batch())

    call = session.calls[0]
    assert call["url"] == URL
    assert call["timeout"] == 12.5
    assert result.status_code == 204
    assert result.compressed_bytes == len(call["data"])

    request = WriteRequest.FromString(snappy.decompress(call["data"]))
    assert len(request.timeseries) == 2

    first = request.timeseries[0]
    assert [(label.name, label.value) for label in first.labels] == [
        ("__name__", "up"),
        ("job", "node"),
    ]
    assert [sample.timestamp for sample in first.samples] == [1_000, 2_000]
    assert first.samples[1].value == float("inf")
    assert request.timeseries[1].samples[0].value == 0.25


def test_required_headers_are_sent() -> None:
    session = _FakeSession(response=_FakeResponse(200))
    RemoteWriteClient(_target({"X-Scope-OrgID": "1234"}), session=session).send(_batch())

    headers = session.calls[0]["headers"]
    assert headers["Content-Encoding"] == "snappy"
    assert headers["Content-Type"] == "application/x-protobuf"
    assert headers["X-Prometheus-Remote-Write-Version"] == "0.1.0"
    assert headers["X-Scope-OrgID"] == "1234"


def test_operator_headers_win_on_collision() -> None:
    session = _FakeSession(response=_FakeResponse(200))
    target = _target({"Content-Type": "application/x-custom"})

    RemoteWriteClient(target, session=session).send(_batch())

    assert session.calls[0]["headers"]["Content-Type"] == "application/x-custom"


def test_target_headers_are_immutable() -> None:
    target = _target({"X-Org": "1"})

    with pytest.raises(TypeError):
        target.extra_headers["X-Org"] = "2"  # type: ignore[index]


@pytest.mark.parametrize("status_code", [400, 404, 500, 503])
def test_non_2xx_status_is_fatal(status_code: int) -> None:
    response = _FakeResponse(status_code, "Bad", b"first line\nsecond line")
    session = _FakeSession(response=response)

    with pytest.raises(RemoteWriteHTTPError) as raised:
        RemoteWriteClient(_target(), session=session).send(_batch())

    assert raised.value.status_code == status_code
    assert raised.value.body_line == "first line"
    assert str(raised.value) == f"server returned HTTP status {status_code} Bad: first line"
    assert response.closed
    assert len(session.calls) == 1


def test_error_body_read_is_bounded() -> None:
    response = _FakeResponse(502, "Bad Gateway", b"x" * (MAX_ERROR_BODY_BYTES * 3))
    session = _FakeSession(response=response)

    with pytest.raises(RemoteWriteHTTPError) as raised:
        RemoteWriteClient(_target(), session=session).send(_batch())

    assert session.calls[0]["stream"] is True
    assert response.bytes_read == MAX_ERROR_BODY_BYTES
    assert raised.value.body_line == "x" * MAX_ERROR_BODY_BYTES


def test_timeout_is_reported_as_deadline_exceeded() -> None:
    session = _FakeSession(error=requests.ReadTimeout("slow"))

    with pytest.raises(DeadlineExceededError):
        RemoteWriteClient(_target(), session=session).send(_batch())


def test_network_error_is_transmission_error() -> None:
    session = _FakeSession(error=requests.ConnectionError("refused"))

    with pytest.raises(TransmissionError):
        RemoteWriteClient(_target(), session=session).send(_batch())


def test_close_releases_session() -> None:
    session = _FakeSession(response=_FakeResponse(200))
    client = RemoteWriteClient(_target(), session=session)

    client.close()

    assert session.closed
