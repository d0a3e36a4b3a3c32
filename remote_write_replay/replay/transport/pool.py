"""
Fixed-size transmission worker pool.

A single producer submits batches into a bounded FIFO; W worker threads
drain it, each through its own BatchSender. The first failure fires a
shared abort flag: the producer is refused further batches and every
worker stops after its in-flight request. The failure is handed back to
the caller from ``join()`` instead of terminating the process.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from remote_write_replay.core.errors import (
    ConfigError,
    ReplayAborted,
    ReplayError,
    TransmissionError,
)
from remote_write_replay.core.events.events import (
    BatchTransmittedEvent,
    TransmissionFailedEvent,
)

if TYPE_CHECKING:
    from remote_write_replay.core.domain.types import WriteBatch
    from remote_write_replay.core.events.event_bus import EventBus
    from remote_write_replay.replay.transport.client import BatchSender, SendResult

LOGGER = logging.getLogger(__name__)

# Buffer this many batches so the next file can be decoded while the
# previous one is still being sent.
DEFAULT_QUEUE_CAPACITY = 20

_CLOSED = object()


@dataclass(frozen=True, slots=True)
class PoolStats:
    batches_sent: int
    samples_sent: int
    bytes_sent: int


class TransmissionPool:
    """Bounded queue plus W workers with fail-fast abort semantics."""

    def __init__(
        self,
        *,
        client_factory: Callable[[], BatchSender],
        workers: int,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        event_bus: EventBus | None = None,
        poll_interval_s: float = 0.1,
    ) -> None:
        if workers < 1:
            raise ConfigError("concurrency must be >= 1")

        if queue_capacity < 1:
            raise ConfigError("queue capacity must be >= 1")

        self._client_factory = client_factory
        self._worker_count = workers
        self._event_bus = event_bus
        self._poll_interval_s = poll_interval_s

        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_capacity)
        self._abort = threading.Event()
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

        self._error: BaseException | None = None
        self._started = False
        self._closed = False

        self._batches_sent = 0
        self._samples_sent = 0
        self._bytes_sent = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._started:
            return

        for index in range(self._worker_count):
            thread = threading.Thread(
                target=self._run_worker,
                name=f"remote-write-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        self._started = True

    def submit(self, batch: WriteBatch) -> None:
        """
        Enqueue one batch, blocking while the queue is full.

        Raises ReplayAborted as soon as any worker has failed.
        """
        if self._closed:
            raise RuntimeError("cannot submit to a closed pool")

        self._put(batch)

    def close(self) -> None:
        """Signal that no more batches will be submitted."""
        if self._closed:
            return

        self._closed = True

        for _ in self._threads:
            try:
                self._put(_CLOSED)
            except ReplayAborted:
                # Workers are already stopping; nothing left to signal.
                return

    def abort(self, cause: BaseException | None = None) -> None:
        """Stop the pipeline. The first recorded cause wins."""
        with self._lock:
            if self._error is None and cause is not None:
                self._error = cause
        self._abort.set()

    def join(self) -> PoolStats:
        """
        Wait for every worker to finish and return the transmission totals.

        Raises the first failure recorded by a worker (or passed to abort).
        """
        for thread in self._threads:
            thread.join()

        if self._error is not None:
            raise self._error

        return self.stats()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                batches_sent=self._batches_sent,
                samples_sent=self._samples_sent,
                bytes_sent=self._bytes_sent,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _put(self, item: object) -> None:
        while True:
            if self._abort.is_set():
                raise ReplayAborted(self._error)
            try:
                self._queue.put(item, timeout=self._poll_interval_s)
                return
            except queue.Full:
                continue

    def _run_worker(self) -> None:
        name = threading.current_thread().name

        try:
            client = self._client_factory()
        except Exception as exc:
            self._fail(name, None, exc)
            return

        try:
            while not self._abort.is_set():
                try:
                    item = self._queue.get(timeout=self._poll_interval_s)
                except queue.Empty:
                    continue

                if item is _CLOSED:
                    return

                batch: WriteBatch = item  # type: ignore[assignment]
                try:
                    result = client.send(batch)
                except Exception as exc:
                    self._fail(name, batch, exc)
                    return

                self._record(name, batch, result)
        finally:
            client.close()

    def _record(self, worker: str, batch: WriteBatch, result: SendResult) -> None:
        with self._lock:
            self._batches_sent += 1
            self._samples_sent += batch.sample_count
            self._bytes_sent += result.compressed_bytes

        if self._event_bus is not None:
            self._event_bus.emit(
                BatchTransmittedEvent(
                    worker=worker,
                    source=batch.source,
                    window_start_ms=batch.window.start_ms,
                    window_end_ms=batch.window.end_ms,
                    sample_count=batch.sample_count,
                    compressed_bytes=result.compressed_bytes,
                    status_code=result.status_code,
                )
            )

    def _fail(
        self,
        worker: str,
        batch: WriteBatch | None,
        exc: Exception,
    ) -> None:
        if not isinstance(exc, ReplayError):
            wrapped = TransmissionError(f"{type(exc).__name__}: {exc}")
            wrapped.__cause__ = exc
            exc = wrapped

        with self._lock:
            first = self._error is None
            if first:
                self._error = exc

        self._abort.set()

        if first:
            LOGGER.error(
                "Transmission failed, aborting replay: %s",
                exc,
                extra={"worker": worker},
            )

        if self._event_bus is not None and batch is not None:
            self._event_bus.emit(
                TransmissionFailedEvent(
                    worker=worker,
                    source=batch.source,
                    window_start_ms=batch.window.start_ms,
                    window_end_ms=batch.window.end_ms,
                    error=str(exc),
                )
            )
