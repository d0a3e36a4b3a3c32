"""
Replay event models.

These events represent immutable facts observed during a run.
They are consumed by loggers and recorders.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FileDecodedEvent:
    path: str
    series_count: int
    sample_count: int


@dataclass(slots=True)
class BatchBuiltEvent:
    source: str | None

    window_start_ms: int
    window_end_ms: int

    series_count: int
    sample_count: int


@dataclass(slots=True)
class BatchTransmittedEvent:
    worker: str
    source: str | None

    window_start_ms: int
    window_end_ms: int

    sample_count: int
    compressed_bytes: int
    status_code: int


@dataclass(slots=True)
class TransmissionFailedEvent:
    worker: str
    source: str | None

    window_start_ms: int
    window_end_ms: int

    error: str
