"""
Time-stamped byte counters for a single probe run.

The sampler doubles as the run's stopwatch: every measurement is stamped
with milliseconds elapsed since ``start()`` on a monotonic clock.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass(frozen=True)
class Measurement:
    """Cumulative bytes read at a point in the run."""

    elapsed_ms: int
    cumulative_bytes: int


class Sampler:
    """Append-only measurement log owned by one probe run."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._start: Optional[float] = None
        self.measurements: List[Measurement] = []

    def start(self) -> None:
        self._start = self._clock()

    def elapsed_ms(self) -> int:
        if self._start is None:
            return 0
        return int((self._clock() - self._start) * 1000)

    @property
    def total_bytes(self) -> int:
        return self.measurements[-1].cumulative_bytes if self.measurements else 0

    def record(self, bytes_read: int, elapsed_ms: Optional[int] = None) -> Measurement:
        """Append a measurement for *bytes_read* new bytes and return it."""
        if bytes_read < 0:
            raise ValueError("bytes_read must be >= 0")
        if elapsed_ms is None:
            elapsed_ms = self.elapsed_ms()
        if self.measurements:
            elapsed_ms = max(elapsed_ms, self.measurements[-1].elapsed_ms)

        m = Measurement(elapsed_ms=elapsed_ms, cumulative_bytes=self.total_bytes + bytes_read)
        self.measurements.append(m)
        return m
