"""Core domain types shared by the batcher, codec and transport.

All types are immutable. Samples are read once and never modified; batches
are built once and consumed exactly once by a single worker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Sample:
    timestamp_ms: int
    value: float


@dataclass(frozen=True, slots=True)
class Label:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class Series:
    """A uniquely tagged sequence of samples as read from one input file."""

    metric: Mapping[str, str]
    samples: tuple[Sample, ...]


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Half-open interval ``[start_ms, end_ms)``."""

    start_ms: int
    end_ms: int

    def contains(self, timestamp_ms: int) -> bool:
        return self.start_ms <= timestamp_ms < self.end_ms


@dataclass(frozen=True, slots=True)
class SeriesProjection:
    """The part of a series that falls into one window."""

    labels: tuple[Label, ...]
    samples: tuple[Sample, ...]


@dataclass(frozen=True, slots=True)
class WriteBatch:
    """
    One remote write request worth of data.

    A batch always holds at least one series projection.
    """

    window: TimeWindow
    timeseries: tuple[SeriesProjection, ...]
    source: str | None = None

    def __post_init__(self) -> None:
        if not self.timeseries:
            raise ValueError("WriteBatch requires at least one series")

    @property
    def series_count(self) -> int:
        return len(self.timeseries)

    @property
    def sample_count(self) -> int:
        return sum(len(ts.samples) for ts in self.timeseries)
