"""Public API for the remote_write_replay package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from remote_write_replay.core.domain.labels import normalize_labels
from remote_write_replay.core.domain.types import (
    Label,
    Sample,
    Series,
    SeriesProjection,
    TimeWindow,
    WriteBatch,
)

# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------
from remote_write_replay.core.errors import (
    ConfigError,
    InputError,
    ReplayAborted,
    ReplayError,
    TransmissionError,
)

# ----------------------------------------------------------------------
# Pipeline API
# ----------------------------------------------------------------------
from remote_write_replay.replay.batching.builder import build_batches
from remote_write_replay.replay.io.json_reader import read_series
from remote_write_replay.replay.runtime.config import ReplayConfig
from remote_write_replay.replay.runtime.replayer import Replayer
from remote_write_replay.replay.transport.client import RemoteWriteClient
from remote_write_replay.replay.transport.pool import TransmissionPool

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Domain
    "Label",
    "Sample",
    "Series",
    "SeriesProjection",
    "TimeWindow",
    "WriteBatch",
    "normalize_labels",

    # Pipeline
    "build_batches",
    "read_series",
    "ReplayConfig",
    "Replayer",
    "RemoteWriteClient",
    "TransmissionPool",

    # Errors
    "ReplayError",
    "ConfigError",
    "InputError",
    "TransmissionError",
    "ReplayAborted",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("remote-write-replay")
except PackageNotFoundError:
    __version__ = "0.0.0"
