"""
Replay orchestration.

Reads input files one at a time, turns each into time-window batches and
feeds them to the transmission pool. Only one file's decoded series are
resident at once; the bounded queue throttles decoding when transmission
falls behind.
"""

from __future__ import annotations

import logging
import time
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from remote_write_replay.core.errors import ReplayAborted
from remote_write_replay.core.events.events import FileDecodedEvent
from remote_write_replay.replay.batching.builder import build_batches
from remote_write_replay.replay.io.json_reader import read_series
from remote_write_replay.replay.runtime.summary import ReplaySummary
from remote_write_replay.replay.transport.client import RemoteWriteClient
from remote_write_replay.replay.transport.pool import TransmissionPool

if TYPE_CHECKING:
    from remote_write_replay.core.domain.types import Series
    from remote_write_replay.core.events.event_bus import EventBus
    from remote_write_replay.replay.runtime.config import ReplayConfig
    from remote_write_replay.replay.transport.client import BatchSender

LOGGER = logging.getLogger(__name__)


class Replayer:
    """
    Runs one replay: files -> batches -> pool -> endpoint.

    The run is all-or-nothing. The first failure anywhere stops the
    producer and the workers and is raised from ``run()``.
    """

    def __init__(
        self,
        config: ReplayConfig,
        *,
        client_factory: Callable[[], BatchSender] | None = None,
        event_bus: EventBus | None = None,
        reader: Callable[[Path], list[Series]] = read_series,
    ) -> None:
        self._config = config
        self._event_bus = event_bus
        self._reader = reader

        if client_factory is None:
            client_factory = partial(RemoteWriteClient, config.to_target())

        self._client_factory = client_factory

        self._series_decoded = 0
        self._batches_built = 0

    def run(self) -> ReplaySummary:
        started = time.monotonic()

        pool = TransmissionPool(
            client_factory=self._client_factory,
            workers=self._config.concurrency,
            queue_capacity=self._config.queue_capacity,
            event_bus=self._event_bus,
        )
        pool.start()

        try:
            self._produce(pool)
            pool.close()
        except ReplayAborted:
            LOGGER.error("Producer stopped after transmission failure")
        except Exception as exc:
            pool.abort(exc)

        # Raises the first failure, whether from a worker or the producer.
        stats = pool.join()

        return ReplaySummary(
            files=len(self._config.files),
            series=self._series_decoded,
            batches_built=self._batches_built,
            batches_sent=stats.batches_sent,
            samples_sent=stats.samples_sent,
            bytes_sent=stats.bytes_sent,
            duration_seconds=time.monotonic() - started,
        )

    def _produce(self, pool: TransmissionPool) -> None:
        for path in self._config.files:
            LOGGER.info("Processing file %s", path)

            series = self._reader(path)
            self._series_decoded += len(series)

            if self._event_bus is not None:
                self._event_bus.emit(
                    FileDecodedEvent(
                        path=str(path),
                        series_count=len(series),
                        sample_count=sum(len(s.samples) for s in series),
                    )
                )

            for batch in build_batches(
                series,
                self._config.request_span_ms,
                max_samples_per_request=self._config.max_samples_per_request,
                source=str(path),
                event_bus=self._event_bus,
            ):
                pool.submit(batch)
                self._batches_built += 1

            # Drop the decoded file before reading the next one.
            del series
