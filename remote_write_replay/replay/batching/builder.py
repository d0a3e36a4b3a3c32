"""
Time-window batching.

This module splits the series decoded from one input file into
remote write batches, one per non-empty time window. Window boundaries
are aligned to absolute multiples of the span, so replaying overlapping
data always yields the same boundaries.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Iterator, Sequence

from remote_write_replay.core.domain.labels import format_labels, normalize_labels
from remote_write_replay.core.domain.types import (
    Label,
    Sample,
    Series,
    SeriesProjection,
    TimeWindow,
    WriteBatch,
)
from remote_write_replay.core.errors import ConfigError
from remote_write_replay.core.events.events import BatchBuiltEvent

if TYPE_CHECKING:
    from remote_write_replay.core.events.event_bus import EventBus

LOGGER = logging.getLogger(__name__)


def timestamp_range(series: Sequence[Series]) -> tuple[int, int] | None:
    """
    Return (lowest, highest) timestamp over all samples, or None when
    there are no samples at all.
    """
    lowest: int | None = None
    highest: int | None = None

    for s in series:
        for sample in s.samples:
            ts = sample.timestamp_ms
            if lowest is None or ts < lowest:
                lowest = ts
            if highest is None or ts > highest:
                highest = ts

    if lowest is None or highest is None:
        return None
    return lowest, highest


def aligned_window_start(timestamp_ms: int, span_ms: int) -> int:
    """Start of the span-aligned window containing ``timestamp_ms``."""
    return (timestamp_ms // span_ms) * span_ms


def build_batches(
    series: Sequence[Series],
    span_ms: int,
    *,
    max_samples_per_request: int | None = None,
    source: str | None = None,
    event_bus: EventBus | None = None,
) -> Iterator[WriteBatch]:
    """
    Lazily yield one WriteBatch per non-empty window, in window order.

    Validation happens eagerly so that a bad span fails before the caller
    starts consuming batches.
    """
    if span_ms <= 0:
        raise ConfigError(f"request span must be > 0 (got {span_ms} ms)")

    if max_samples_per_request is not None and max_samples_per_request <= 0:
        raise ConfigError("max_samples_per_request must be > 0")

    return _iter_batches(
        series=series,
        span_ms=span_ms,
        max_samples_per_request=max_samples_per_request,
        source=source,
        event_bus=event_bus,
    )


def _iter_batches(
    *,
    series: Sequence[Series],
    span_ms: int,
    max_samples_per_request: int | None,
    source: str | None,
    event_bus: EventBus | None,
) -> Iterator[WriteBatch]:
    bounds = timestamp_range(series)
    if bounds is None:
        LOGGER.info("No samples found", extra={"source": source})
        return

    lowest, highest = bounds
    LOGGER.info("Lowest timestamp: %d ms", lowest, extra={"source": source})
    LOGGER.info("Highest timestamp: %d ms", highest, extra={"source": source})

    aligned_start = aligned_window_start(lowest, span_ms)

    # ------------------------------------------------------------------
    # 1. Bucket every series by window index in a single pass
    # ------------------------------------------------------------------

    # One entry per series that has samples: (labels, {window_index: samples})
    bucketed: list[tuple[tuple[Label, ...], dict[int, list[Sample]]]] = []
    occupied: set[int] = set()

    for s in series:
        if not s.samples:
            continue

        buckets: dict[int, list[Sample]] = defaultdict(list)
        for sample in s.samples:
            buckets[(sample.timestamp_ms - aligned_start) // span_ms].append(sample)

        occupied.update(buckets.keys())
        bucketed.append((normalize_labels(s.metric), buckets))

    # ------------------------------------------------------------------
    # 2. Walk windows in increasing order, skipping empty ones
    # ------------------------------------------------------------------

    for index in sorted(occupied):
        time_start = aligned_start + index * span_ms
        window = TimeWindow(start_ms=time_start, end_ms=time_start + span_ms)

        projections: list[SeriesProjection] = []
        for labels, buckets in bucketed:
            samples = buckets.get(index)
            if not samples:
                continue

            LOGGER.debug(
                "Time series {%s} has %d samples in time range [%d, %d]",
                format_labels(labels),
                len(samples),
                samples[0].timestamp_ms,
                samples[-1].timestamp_ms,
            )
            projections.append(
                SeriesProjection(labels=labels, samples=tuple(samples))
            )

        if not projections:
            continue

        for chunk in _split_projections(projections, max_samples_per_request):
            batch = WriteBatch(window=window, timeseries=chunk, source=source)

            LOGGER.info(
                "Sending batch of %d samples for time window [%d, %d)",
                batch.sample_count,
                window.start_ms,
                window.end_ms,
                extra={"source": source},
            )

            if event_bus is not None:
                event_bus.emit(
                    BatchBuiltEvent(
                        source=source,
                        window_start_ms=window.start_ms,
                        window_end_ms=window.end_ms,
                        series_count=batch.series_count,
                        sample_count=batch.sample_count,
                    )
                )

            yield batch


def _split_projections(
    projections: list[SeriesProjection],
    max_samples: int | None,
) -> Iterator[tuple[SeriesProjection, ...]]:
    """
    Group projections into chunks of at most ``max_samples`` samples.

    Chunks break on series boundaries only; a projection larger than the
    limit travels alone.
    """
    if max_samples is None:
        yield tuple(projections)
        return

    current: list[SeriesProjection] = []
    current_samples = 0

    for projection in projections:
        size = len(projection.samples)
        exceeds_limit = current_samples + size > max_samples

        if current and exceeds_limit:
            yield tuple(current)
            current = []
            current_samples = 0

        current.append(projection)
        current_samples += size

    if current:
        yield tuple(current)
