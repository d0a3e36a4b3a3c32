"""
Command line entrypoint.

Reads JSON SampleStream dumps (as produced by promdump) and replays them
to a Prometheus remote write endpoint (remote_storage_adapter, Mimir,
VictoriaMetrics, ...).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from remote_write_replay.core.errors import ConfigError, ReplayError
from remote_write_replay.core.events.event_bus import EventBus
from remote_write_replay.core.events.sinks.file_recorder import FileRecorderSink
from remote_write_replay.core.events.sinks.sink_logging import LoggingEventSink
from remote_write_replay.replay.runtime.config import (
    ReplayConfig,
    parse_duration,
    parse_duration_ms,
    parse_headers,
)
from remote_write_replay.replay.runtime.prometheus_metrics import ReplayMetricsPublisher
from remote_write_replay.replay.runtime.replayer import Replayer
from remote_write_replay.replay.runtime.summary import (
    ReplaySummary,
    print_replay_summary,
)
from remote_write_replay.replay.transport.pool import DEFAULT_QUEUE_CAPACITY

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remote-write-replay",
        description=(
            "Replay SampleStream JSON files to a Prometheus remote write endpoint"
        ),
    )

    parser.add_argument("--url", default="", help="URL for remote write endpoint.")

    parser.add_argument(
        "--write-timeout",
        default="5m",
        help="Per-request write timeout (Go-style duration, e.g. 30s, 5m).",
    )

    parser.add_argument(
        "--request-span",
        default="1m",
        help=(
            "Maximum duration that one request can span in terms of the "
            "samples it contains."
        ),
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=(
            "Maximum number of samples per request. Windows are split on "
            "series boundaries. Default: one request per window."
        ),
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Number of concurrent remote write workers.",
    )

    parser.add_argument(
        "--headers",
        default="",
        help=(
            'Additional HTTP headers as "Name:value" pairs separated by ",", '
            'for example "X-Scope-OrgID:1234,X-Org-Id:1234".'
        ),
    )

    parser.add_argument(
        "--queue-capacity",
        type=int,
        default=DEFAULT_QUEUE_CAPACITY,
        help="Number of built batches buffered ahead of the workers.",
    )

    parser.add_argument(
        "--record-events",
        type=Path,
        default=None,
        help="Append replay events as JSON lines to this file.",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    parser.add_argument("files", nargs="*", type=Path, help="Input JSON files.")

    return parser


def build_config(args: argparse.Namespace) -> ReplayConfig:
    """Validate parsed arguments. Raises ConfigError before any work starts."""
    if not args.url:
        raise ConfigError("Please specify --url")

    if not args.files:
        raise ConfigError(
            "Please specify at least one input file as a command line argument"
        )

    return ReplayConfig.from_options(
        url=args.url,
        write_timeout_s=parse_duration(args.write_timeout),
        request_span_ms=parse_duration_ms(args.request_span),
        concurrency=args.concurrency,
        max_samples_per_request=args.batch_size,
        queue_capacity=args.queue_capacity,
        headers=parse_headers(args.headers),
        files=args.files,
        events_path=args.record_events,
    )


def _build_event_bus(config: ReplayConfig) -> EventBus:
    bus = EventBus([LoggingEventSink(logging.getLogger("remote_write_replay.events"))])
    if config.events_path is not None:
        try:
            bus.register(FileRecorderSink(config.events_path))
        except OSError as exc:
            raise ConfigError(f"cannot open event record file: {exc}") from exc
    return bus


def _push_metrics(summary: ReplaySummary | None, *, status: str) -> None:
    try:
        ReplayMetricsPublisher.from_env().publish(summary, status=status)
    except Exception:
        LOGGER.exception("Prometheus push failed")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        config = build_config(args)
        event_bus = _build_event_bus(config)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1

    summary: ReplaySummary | None = None
    status = "failed"

    try:
        summary = Replayer(config, event_bus=event_bus).run()
        status = "success"
    except ReplayError as exc:
        LOGGER.error("Replay failed: %s", exc)
        return 1
    finally:
        event_bus.close()
        _push_metrics(summary, status=status)

    print_replay_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
