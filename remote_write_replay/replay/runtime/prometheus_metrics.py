"""
Pushgateway reporting for replay runs.

A replay is a batch job with no scrape endpoint, so its totals are pushed
once at exit. Enabled by PROMETHEUS_PUSHGATEWAY_URL, e.g.
http://pushgateway.monitoring.svc.cluster.local:9091.

PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON may hold a JSON object of string
labels (``{"replay_id": "backfill-2024-01"}``); without one, concurrent
replays overwrite each other's group.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Mapping

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

from remote_write_replay.replay.runtime.summary import ReplaySummary

LOGGER = logging.getLogger(__name__)

PUSHGATEWAY_JOB = "remote_write_replay"

# (metric name, help text, ReplaySummary attribute)
_SUMMARY_GAUGES: tuple[tuple[str, str, str], ...] = (
    ("remote_write_replay_files", "Input files processed.", "files"),
    ("remote_write_replay_series", "Series decoded from input files.", "series"),
    ("remote_write_replay_batches_built", "Write batches built.", "batches_built"),
    ("remote_write_replay_batches_sent", "Write batches acknowledged by the receiver.", "batches_sent"),
    ("remote_write_replay_samples_sent", "Samples acknowledged by the receiver.", "samples_sent"),
    ("remote_write_replay_bytes_sent", "Compressed request bytes acknowledged.", "bytes_sent"),
    ("remote_write_replay_duration_seconds", "Wall time of the replay.", "duration_seconds"),
)


def grouping_key_from_env(environ: Mapping[str, str]) -> dict[str, str]:
    raw = environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
    if not raw:
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
        return {}

    if not isinstance(data, dict):
        return {}

    return {
        key: value
        for key, value in data.items()
        if isinstance(key, str) and isinstance(value, str)
    }


class ReplayMetricsPublisher:
    """Pushes one replay's outcome and totals to a Pushgateway."""

    def __init__(
        self,
        gateway_url: str | None,
        *,
        grouping_key: Mapping[str, str] | None = None,
    ) -> None:
        self._gateway_url = gateway_url
        self._grouping_key = dict(grouping_key or {})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> ReplayMetricsPublisher:
        return cls(
            environ.get("PROMETHEUS_PUSHGATEWAY_URL"),
            grouping_key=grouping_key_from_env(environ),
        )

    @property
    def enabled(self) -> bool:
        return bool(self._gateway_url)

    def build_registry(
        self,
        summary: ReplaySummary | None,
        *,
        status: str,
    ) -> CollectorRegistry:
        """Collect the run's gauges, labelled by outcome."""
        registry = CollectorRegistry()

        success = Gauge(
            "remote_write_replay_success",
            "1 when every batch was delivered, 0 otherwise.",
            labelnames=["status"],
            registry=registry,
        )
        success.labels(status=status).set(1.0 if status == "success" else 0.0)

        # A failed run has no totals.
        if summary is None:
            return registry

        for name, documentation, attribute in _SUMMARY_GAUGES:
            gauge = Gauge(name, documentation, labelnames=["status"], registry=registry)
            gauge.labels(status=status).set(float(getattr(summary, attribute)))

        return registry

    def publish(self, summary: ReplaySummary | None, *, status: str) -> None:
        if not self.enabled:
            return

        push_to_gateway(
            gateway=self._gateway_url,
            job=PUSHGATEWAY_JOB,
            registry=self.build_registry(summary, status=status),
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": PUSHGATEWAY_JOB, "grouping_key": self._grouping_key},
        )
