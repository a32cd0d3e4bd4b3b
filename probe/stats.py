"""
Throughput statistics over a measurement log.

Pure functions plus one small stateful detector -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

from itertools import groupby
from typing import List, Optional, Sequence

from .constants import BUCKET_MS, BYTES_PER_MB, PLATEAU_WINDOW, WARMUP_MS
from .sampler import Measurement


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------

def group_by_second(measurements: Sequence[Measurement]) -> List[List[Measurement]]:
    """Split an ordered measurement log into one bucket per elapsed second."""
    return [
        list(bucket)
        for _, bucket in groupby(measurements, key=lambda m: m.elapsed_ms // BUCKET_MS)
    ]


def bucket_rate(bucket: Sequence[Measurement], span_ms: Optional[int] = None) -> float:
    """
    MB/s moved between the first and last measurement of *bucket*.

    With ``span_ms=None`` the actual span between those two measurements is
    the denominator; a fixed span gives a steadier per-second figure.
    """
    if len(bucket) < 2:
        return 0.0
    first, last = bucket[0], bucket[-1]
    if span_ms is None:
        span_ms = last.elapsed_ms - first.elapsed_ms
    if span_ms <= 0:
        return 0.0
    mb = (last.cumulative_bytes - first.cumulative_bytes) / BYTES_PER_MB
    return mb / (span_ms / 1000)


def bucket_rates(
    measurements: Sequence[Measurement],
    span_ms: Optional[int] = BUCKET_MS,
) -> List[Optional[float]]:
    """Rate per one-second bucket, ``None`` where a bucket has a single sample."""
    return [
        bucket_rate(bucket, span_ms) if len(bucket) >= 2 else None
        for bucket in group_by_second(measurements)
    ]


def peak_rate(rates: Sequence[Optional[float]]) -> float:
    """Largest known rate, 0.0 if there is none."""
    return max((r for r in rates if r is not None), default=0.0)


def max_bucket_rate(measurements: Sequence[Measurement]) -> float:
    return peak_rate(bucket_rates(measurements))


def is_plateau(rates: Sequence[Optional[float]], window: int = PLATEAU_WINDOW) -> bool:
    """True when some earlier bucket beat every one of the last *window* buckets."""
    if len(rates) <= window:
        return False
    prior = peak_rate(rates[:-window])
    recent = peak_rate(rates[-window:])
    return prior > recent


# ---------------------------------------------------------------------------
# Stopping rule
# ---------------------------------------------------------------------------

class PlateauDetector:
    """
    Edge-triggered plateau check.

    ``should_stop`` is called with the log *before* the current chunk is
    recorded.  It evaluates only once the run is past the warm-up and only
    on the first chunk of a new second, so every bucket it looks at is
    complete.
    """

    def __init__(self, warmup_ms: int = WARMUP_MS, window: int = PLATEAU_WINDOW) -> None:
        self.warmup_ms = warmup_ms
        self.window = window
        self.checks = 0

    def crossed_second(self, measurements: Sequence[Measurement], elapsed_ms: int) -> bool:
        previous_ms = measurements[-1].elapsed_ms if measurements else 0
        return previous_ms // BUCKET_MS < elapsed_ms // BUCKET_MS

    def should_stop(self, measurements: Sequence[Measurement], elapsed_ms: int) -> bool:
        if elapsed_ms < self.warmup_ms:
            return False
        if not self.crossed_second(measurements, elapsed_ms):
            return False
        self.checks += 1
        return is_plateau(bucket_rates(measurements), self.window)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_with_thousands(value: float) -> str:
    return f"{value:,.0f}"


def format_rate(rate_mbs: float) -> str:
    """Human-readable MB/s with the equivalent megabit figure."""
    return f"{rate_mbs:.1f} MB/s ({rate_mbs * 8:.0f} mbit)"


def format_size(num_bytes: int) -> str:
    """Human-readable byte count in MB (binary)."""
    mb = num_bytes / BYTES_PER_MB
    if mb >= 1024:
        return f"{mb / 1024:.2f} GB"
    return f"{mb:.2f} MB"
