from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

REQUIRED_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Content-Encoding": "snappy",
        "Content-Type": "application/x-protobuf",
        "X-Prometheus-Remote-Write-Version": "0.1.0",
    }
)


@dataclass(frozen=True, slots=True)
class RemoteWriteTarget:
    """
    Immutable destination settings shared read-only by all workers.

    Built once before any worker starts and never mutated afterwards.
    """

    url: str
    write_timeout_s: float
    extra_headers: Mapping[str, str]

    def __post_init__(self) -> None:
        """
        Freeze the operator headers so no worker can mutate them.
        """
        object.__setattr__(
            self,
            "extra_headers",
            MappingProxyType(dict(self.extra_headers)),
        )

    @property
    def headers(self) -> dict[str, str]:
        """
        Request headers: the required set first, then operator headers.

        Operator headers are applied last and win on collision.
        """
        merged = dict(REQUIRED_HEADERS)
        merged.update(self.extra_headers)
        return merged
