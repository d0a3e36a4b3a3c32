"""
Semantic test: reference batching scenarios.

Scenario 1:
span = 60s; series A has samples at 0s, 30s, 90s; series B at 45s.
Window [0, 60s) holds A(0), A(30s), B(45s); window [60s, 120s) holds A(90s)
only. Two batches in total.

Scenario 2:
A series without samples never appears in any batch.
"""

from __future__ import annotations

from remote_write_replay.core.domain.types import Label, Sample, Series
from remote_write_replay.replay.batching.builder import build_batches

SPAN_MS = 60_000


def _samples(*timestamps: int) -> tuple[Sample, ...]:
    return tuple(Sample(timestamp_ms=ts, value=1.0) for ts in timestamps)


def test_two_series_split_into_two_windows() -> None:
    series_a = Series(metric={"__name__": "a", "job": "x"}, samples=_samples(0, 30_000, 90_000))
    series_b = Series(metric={"__name__": "b"}, samples=_samples(45_000))

    batches = list(build_batches([series_a, series_b], SPAN_MS))

    assert len(batches) == 2

    first, second = batches
    assert (first.window.start_ms, first.window.end_ms) == (0, 60_000)
    assert [
        (projection.labels[0].value, [s.timestamp_ms for s in projection.samples])
        for projection in first.timeseries
    ] == [("a", [0, 30_000]), ("b", [45_000])]

    assert (second.window.start_ms, second.window.end_ms) == (60_000, 120_000)
    assert len(second.timeseries) == 1
    assert second.timeseries[0].labels == (
        Label(name="__name__", value="a"),
        Label(name="job", value="x"),
    )
    assert [s.timestamp_ms for s in second.timeseries[0].samples] == [90_000]


def test_series_without_samples_is_dropped() -> None:
    empty = Series(metric={"__name__": "empty"}, samples=())
    populated = Series(metric={"__name__": "full"}, samples=_samples(1_000, 61_000))

    batches = list(build_batches([empty, populated], SPAN_MS))

    assert len(batches) == 2
    for batch in batches:
        names = [projection.labels[0].value for projection in batch.timeseries]
        assert names == ["full"]
