"""
Remote write HTTP client.

One client per worker; each owns a private ``requests.Session`` so no
connection state is shared between threads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import requests

from remote_write_replay.core.errors import (
    DeadlineExceededError,
    RemoteWriteHTTPError,
    TransmissionError,
)
from remote_write_replay.replay.wire.codec import encode

if TYPE_CHECKING:
    from remote_write_replay.core.domain.types import WriteBatch
    from remote_write_replay.replay.runtime.context import RemoteWriteTarget

LOGGER = logging.getLogger(__name__)

# Only the first line of an error body is reported, read from at most this
# many bytes.
MAX_ERROR_BODY_BYTES = 2048


@dataclass(frozen=True, slots=True)
class SendResult:
    status_code: int
    compressed_bytes: int


class BatchSender(Protocol):
    """Anything a transmission worker can hand batches to."""

    def send(self, batch: WriteBatch) -> SendResult:
        """Deliver one batch or raise a TransmissionError."""

    def close(self) -> None:
        """Release held resources."""


class RemoteWriteClient:
    """Sends WriteBatches to a Prometheus remote write endpoint."""

    def __init__(
        self,
        target: RemoteWriteTarget,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._target = target
        self._session = session if session is not None else requests.Session()

    def send(self, batch: WriteBatch) -> SendResult:
        """
        Encode and POST one batch.

        Raises a TransmissionError subclass on any failure; never retries.
        The write timeout bounds the connect and each socket read, not the
        whole exchange: a server that keeps trickling bytes can hold a
        request past it.
        """
        body = encode(batch)

        try:
            response = self._session.post(
                self._target.url,
                data=body,
                headers=self._target.headers,
                timeout=self._target.write_timeout_s,
                stream=True,
            )
        except requests.Timeout as exc:
            raise DeadlineExceededError(
                f"request to {self._target.url} exceeded "
                f"{self._target.write_timeout_s}s write timeout"
            ) from exc
        except requests.RequestException as exc:
            raise TransmissionError(f"request to {self._target.url} failed: {exc}") from exc

        try:
            if response.status_code // 100 != 2:
                raise RemoteWriteHTTPError(
                    status_code=response.status_code,
                    reason=response.reason or "",
                    body_line=_first_line(response),
                )
        finally:
            response.close()

        LOGGER.debug(
            "Batch delivered",
            extra={
                "status_code": response.status_code,
                "bytes": len(body),
                "window_start_ms": batch.window.start_ms,
            },
        )
        return SendResult(status_code=response.status_code, compressed_bytes=len(body))

    def close(self) -> None:
        self._session.close()


def _first_line(response: requests.Response) -> str:
    try:
        raw = next(response.iter_content(chunk_size=MAX_ERROR_BODY_BYTES), b"")
    except requests.RequestException:
        return ""

    text = raw.decode("utf-8", errors="replace")
    return text.splitlines()[0] if text else ""
