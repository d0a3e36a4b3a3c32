"""
JSON dump decoding.

Input files hold a JSON array of Prometheus ``SampleStream`` objects as
written by promdump / the query_range API:

    [
      {
        "metric": {"__name__": "up", "job": "node"},
        "values": [[1435781451.781, "1"], [1435781466.781, "0"]]
      }
    ]

Timestamps are unix seconds with millisecond precision; they are parsed as
decimals and truncated to integer milliseconds. Values are strings so that
"NaN", "+Inf" and "-Inf" survive JSON.
"""

from __future__ import annotations

import json
import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from remote_write_replay.core.domain.types import Sample, Series
from remote_write_replay.core.errors import InputError

LOGGER = logging.getLogger(__name__)

_MS_PER_SECOND = Decimal(1000)


def seconds_to_millis(raw: Decimal | int | float | str) -> int:
    """Convert unix seconds to integer milliseconds, truncating toward zero."""
    try:
        seconds = raw if isinstance(raw, Decimal) else Decimal(str(raw))
        millis = (seconds * _MS_PER_SECOND).to_integral_value(rounding=ROUND_DOWN)
    except InvalidOperation as exc:
        raise ValueError(f"invalid timestamp: {raw!r}") from exc

    if not millis.is_finite():
        raise ValueError(f"invalid timestamp: {raw!r}")
    return int(millis)


def parse_sample_value(raw: str | int | float | Decimal) -> float:
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError as exc:
            raise ValueError(f"invalid sample value: {raw!r}") from exc
    return float(raw)


class SamplePairRecord(BaseModel):
    """One ``[timestamp, "value"]`` pair."""

    timestamp_ms: int
    value: float

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_pair(cls, pair: Any) -> SamplePairRecord:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError("sample must be a [timestamp, value] pair")

        timestamp, value = pair
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float, Decimal, str)):
            raise ValueError(f"invalid timestamp: {timestamp!r}")
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
            raise ValueError(f"invalid sample value: {value!r}")

        return cls(
            timestamp_ms=seconds_to_millis(timestamp),
            value=parse_sample_value(value),
        )


class SampleStreamRecord(BaseModel):
    """One decoded series object."""

    metric: dict[str, str] = Field(default_factory=dict)
    values: list[SamplePairRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("values", mode="before")
    @classmethod
    def _parse_pairs(cls, data: Any) -> Any:
        if data is None:
            return []
        if not isinstance(data, list):
            return data
        return [
            item if isinstance(item, SamplePairRecord) else SamplePairRecord.from_pair(item)
            for item in data
        ]

    def to_series(self) -> Series:
        return Series(
            metric=dict(self.metric),
            samples=tuple(
                Sample(timestamp_ms=pair.timestamp_ms, value=pair.value)
                for pair in self.values
            ),
        )


_STREAMS = TypeAdapter(list[SampleStreamRecord])


def decode_series(payload: Any) -> list[Series]:
    """Validate an already-parsed JSON document into domain series."""
    records = _STREAMS.validate_python(payload)
    return [record.to_series() for record in records]


def read_series(path: str | Path) -> list[Series]:
    """
    Read and decode one input file.

    Raises InputError naming the file on any read or decode failure.
    """
    path = Path(path)

    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise InputError(f"cannot read {path}: {exc}") from exc

    try:
        payload = json.loads(raw, parse_float=Decimal)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputError(f"invalid JSON in {path}: {exc}") from exc

    try:
        series = decode_series(payload)
    except ValidationError as exc:
        raise InputError(f"malformed series payload in {path}: {exc}") from exc

    LOGGER.debug(
        "Decoded input file",
        extra={"path": str(path), "series": len(series)},
    )
    return series
