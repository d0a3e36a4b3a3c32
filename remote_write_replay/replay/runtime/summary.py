from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ReplaySummary:
    files: int
    series: int
    batches_built: int
    batches_sent: int
    samples_sent: int
    bytes_sent: int
    duration_seconds: float

    @property
    def samples_per_second(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return self.samples_sent / self.duration_seconds


# ---------------------------------------------------------------------------
# Pretty printing
# ---------------------------------------------------------------------------

def print_replay_summary(summary: ReplaySummary) -> None:
    print("=" * 72)
    print("Replay summary")
    print("=" * 72)
    print(f"Files processed   : {summary.files}")
    print(f"Series decoded    : {summary.series}")
    print(f"Batches built     : {summary.batches_built}")
    print(f"Batches sent      : {summary.batches_sent}")
    print(f"Samples sent      : {summary.samples_sent}")
    print(f"Bytes sent        : {summary.bytes_sent / 1024**2:.2f} MiB")
    print(f"Duration          : {summary.duration_seconds:.1f} s")
    print(f"Throughput        : {summary.samples_per_second:.0f} samples/s")
    print("=" * 72)
