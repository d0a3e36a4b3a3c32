"""Replay configuration model.

This module defines the ReplayConfig schema used to validate the command
line surface before any file is read or any worker is started, plus the
parsers for the header and duration flag formats.
"""

from __future__ import annotations

import re
from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from remote_write_replay.core.errors import ConfigError
from remote_write_replay.replay.runtime.context import RemoteWriteTarget
from remote_write_replay.replay.transport.pool import DEFAULT_QUEUE_CAPACITY

DEFAULT_WRITE_TIMEOUT_S = 300.0
DEFAULT_REQUEST_SPAN_MS = 60_000

# Seconds per unit, as accepted by Go's time.ParseDuration.
_DURATION_UNITS: dict[str, Decimal] = {
    "ns": Decimal("1e-9"),
    "us": Decimal("1e-6"),
    "µs": Decimal("1e-6"),
    "μs": Decimal("1e-6"),
    "ms": Decimal("1e-3"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_BARE_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")

# RFC 9110 field-name token.
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def parse_headers(raw: str) -> dict[str, str]:
    """Parse ``"Name:value,Other:value"`` into a header mapping.

    Each pair is split on its first ``:`` only, so values may contain
    colons. Whitespace around the name and the value is dropped. A pair
    without ``:`` (including an empty pair) or with an empty or non-token
    name is an error.
    """
    headers: dict[str, str] = {}
    if not raw:
        return headers

    for header in raw.split(","):
        name, sep, value = header.partition(":")
        name = name.strip()
        if not sep or not _HEADER_NAME.fullmatch(name):
            raise ConfigError(f"Invalid header format: {header}")
        headers[name] = value.strip()

    return headers


def _duration_seconds(raw: str) -> Decimal:
    text = raw.strip()
    if not text:
        raise ConfigError("empty duration")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if _BARE_NUMBER.fullmatch(text):
        return sign * Decimal(text)

    total = Decimal(0)
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += Decimal(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration: {raw!r}")

    return sign * total


def parse_duration(raw: str) -> float:
    """Parse a Go-style duration (``"5m"``, ``"1h30m"``, ``"250ms"``) into seconds.

    A bare number is read as seconds.
    """
    return float(_duration_seconds(raw))


def parse_duration_ms(raw: str) -> int:
    """Same as parse_duration, in whole milliseconds truncated toward zero."""
    millis = _duration_seconds(raw) * 1000
    return int(millis.to_integral_value(rounding=ROUND_DOWN))


class ReplayConfig(BaseModel):
    """Validated, immutable configuration for one replay run."""

    url: str = Field(..., min_length=1)
    write_timeout_s: float = Field(default=DEFAULT_WRITE_TIMEOUT_S, gt=0)
    request_span_ms: int = Field(default=DEFAULT_REQUEST_SPAN_MS, gt=0)
    concurrency: int = Field(default=1, ge=1)
    max_samples_per_request: int | None = Field(default=None, gt=0)
    queue_capacity: int = Field(default=DEFAULT_QUEUE_CAPACITY, ge=1)

    headers: dict[str, str] = Field(default_factory=dict)
    files: list[Path] = Field(..., min_length=1)

    events_path: Path | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value

    @classmethod
    def from_options(cls, **options: Any) -> ReplayConfig:
        """Build a config, reporting validation failures as ConfigError."""
        try:
            return cls.model_validate(options)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    def to_target(self) -> RemoteWriteTarget:
        """Freeze the destination settings shared by all workers."""
        return RemoteWriteTarget(
            url=self.url,
            write_timeout_s=self.write_timeout_s,
            extra_headers=self.headers,
        )
