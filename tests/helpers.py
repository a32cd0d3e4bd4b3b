"""Fake clocks and synthetic body streams for driving ``SpeedProbe.measure``."""

import asyncio
import math

from probe.constants import BYTES_PER_MB
from probe.sampler import Measurement

# 64 KiB reads keep the synthetic runs short; at 1/2/4/8 MB/s every read
# lasts an exact binary fraction of a second, so bucket counts are exact.
TEST_CHUNK = 64 * 1024


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class SyntheticStream:
    """
    Body that delivers ``chunk`` bytes per read and advances *clock* by the
    time those bytes take at ``profile(second)`` MB/s.  EOF after *seconds*.
    """

    def __init__(self, clock, profile, seconds, chunk=TEST_CHUNK):
        self.clock = clock
        self.profile = profile
        self.seconds = seconds
        self.chunk = chunk
        self.reads = 0

    async def read(self, n):
        if self.clock.now >= self.seconds:
            return b""
        rate = self.profile(int(math.floor(self.clock.now)))
        self.clock.now += self.chunk / (rate * BYTES_PER_MB)
        self.reads += 1
        return b"\0" * self.chunk


class StallingStream:
    """Real-time body that sends *chunks* reads worth of data, then hangs."""

    def __init__(self, chunks, chunk=TEST_CHUNK):
        self.remaining = chunks
        self.chunk = chunk

    async def read(self, n):
        if self.remaining > 0:
            self.remaining -= 1
            return b"\0" * self.chunk
        await asyncio.Event().wait()


class FailingStream:
    """Body that raises *exc* after *good_reads* successful reads."""

    def __init__(self, exc, good_reads=3, chunk=TEST_CHUNK):
        self.exc = exc
        self.good_reads = good_reads
        self.chunk = chunk

    async def read(self, n):
        if self.good_reads == 0:
            raise self.exc
        self.good_reads -= 1
        return b"\0" * self.chunk


def constant(rate):
    return lambda second: rate


def steady_log(chunks_per_second, seconds, chunk=TEST_CHUNK):
    """Measurements for a steady stream, stamped the way the probe stamps them."""
    log = []
    total = 0
    for k in range(1, chunks_per_second * seconds):
        total += chunk
        log.append(Measurement(elapsed_ms=k * 1000 // chunks_per_second, cumulative_bytes=total))
    return log
