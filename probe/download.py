"""
Download speed probe module.

Streams a single HTTP GET for at most ``duration_seconds`` and reports the
best one-second throughput.  The run ends early once the last few seconds
no longer beat an earlier second (see ``stats.PlateauDetector``).
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import aiohttp

from .constants import (
    BYTES_PER_MB,
    CHUNK_SIZE,
    COMMON_HEADERS,
    CONNECT_TIMEOUT,
    DEFAULT_DURATION,
    READ_TIMEOUT,
)
from .exceptions import ProbeConnectionError, StreamReadError
from .sampler import Sampler
from .stats import PlateauDetector, bucket_rates, peak_rate
from .urls import url_directory

LOGGER = logging.getLogger(__name__)


class StopReason:
    EOF = "eof"
    DURATION = "duration"
    PLATEAU = "plateau"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpeedtestResult:
    """Outcome of one probe run."""

    downloaded_bytes: int = 0
    elapsed_ms: int = 0
    max_rate_mbs: float = 0.0
    stop_reason: str = StopReason.EOF
    samples: List[float] = field(default_factory=list)

    @property
    def downloaded_mb(self) -> float:
        return self.downloaded_bytes / BYTES_PER_MB

    @property
    def max_rate_mbit(self) -> float:
        return self.max_rate_mbs * 8

    def to_dict(self) -> dict:
        return {
            "downloaded_bytes": self.downloaded_bytes,
            "downloaded_mb": round(self.downloaded_mb, 2),
            "elapsed_ms": self.elapsed_ms,
            "max_rate_mbs": round(self.max_rate_mbs, 2),
            "max_rate_mbit": round(self.max_rate_mbit, 2),
            "stop_reason": self.stop_reason,
            "samples": [round(s, 2) for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

def create_session(
    headers: Optional[dict] = None,
    connect_timeout: float = CONNECT_TIMEOUT,
    read_timeout: float = READ_TIMEOUT,
) -> aiohttp.ClientSession:
    """Keep-alive session suitable for sequential or concurrent probes."""
    connector = aiohttp.TCPConnector(force_close=False, enable_cleanup_closed=True)
    timeout = aiohttp.ClientTimeout(total=None, connect=connect_timeout, sock_read=read_timeout)
    return aiohttp.ClientSession(
        headers={**COMMON_HEADERS, **(headers or {})},
        connector=connector,
        timeout=timeout,
    )


def _is_success(response: aiohttp.ClientResponse) -> bool:
    return 200 <= response.status < 300


# ---------------------------------------------------------------------------
# Probe
# ---------------------------------------------------------------------------

class SpeedProbe:
    """
    Single-stream download throughput probe.

    Each chunk read is stamped by a ``Sampler``.  Rates are taken per
    one-second bucket with a fixed 1000 ms denominator; the reported speed
    is the best bucket.  A probe instance holds no per-run state, so one
    instance may run against several URLs concurrently.
    """

    def __init__(
        self,
        duration_seconds: int = DEFAULT_DURATION,
        chunk_size: int = CHUNK_SIZE,
        logger: Optional[Any] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.chunk_size = chunk_size
        self.logger = logger or LOGGER
        self.clock = clock
        self.on_progress: Optional[Callable[[float, float], None]] = None

    async def test(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> SpeedtestResult:
        """Probe *url* and return its result."""
        self.logger.info("Starting speed probe for %s", url)

        if session is None:
            async with create_session() as own:
                return await self._run(own, url, cancel)
        return await self._run(session, url, cancel)

    async def _run(
        self,
        session: aiohttp.ClientSession,
        url: str,
        cancel: Optional[asyncio.Event],
    ) -> SpeedtestResult:
        response = await self._open(session, url)
        async with response:
            try:
                return await self.measure(response.content, cancel=cancel)
            except StreamReadError as exc:
                raise StreamReadError(url, exc.reason) from exc.__cause__

    async def _open(self, session: aiohttp.ClientSession, url: str) -> aiohttp.ClientResponse:
        """GET headers only, retrying once with a Referer on failure or redirect."""
        response = await self._get(session, url)
        if _is_success(response) and not response.history:
            return response

        referer = url_directory(url)
        self.logger.debug(
            "GET %s answered %s from %s, retrying with Referer %s",
            url, response.status, response.url, referer,
        )
        response.release()

        response = await self._get(session, url, headers={"Referer": referer})
        if not _is_success(response):
            response.release()
            raise ProbeConnectionError(url, status=response.status, reason=response.reason)
        return response

    async def _get(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: Optional[dict] = None,
    ) -> aiohttp.ClientResponse:
        try:
            return await session.get(url, headers=headers, timeout=self._request_timeout(session))
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProbeConnectionError(url, reason=str(exc) or type(exc).__name__) from exc

    def _request_timeout(self, session: aiohttp.ClientSession) -> aiohttp.ClientTimeout:
        """Session timeouts with ``sock_read`` widened to the hard cap."""
        timeout = session.timeout
        cap = float(self.duration_seconds)
        if timeout.sock_read is None or timeout.sock_read >= cap:
            return timeout
        return aiohttp.ClientTimeout(
            total=timeout.total,
            connect=timeout.connect,
            sock_read=cap,
            sock_connect=timeout.sock_connect,
        )

    async def measure(self, stream: Any, cancel: Optional[asyncio.Event] = None) -> SpeedtestResult:
        """
        Run the read loop over *stream* (anything with ``async read(n)``).

        Every read is bounded by the time left until the hard cap, so a
        stalled connection cannot hold the run past ``duration_seconds``.
        A socket-read timeout from aiohttp is treated the same way.
        """
        cap_ms = self.duration_seconds * 1000
        sampler = Sampler(clock=self.clock)
        detector = PlateauDetector()
        reason = StopReason.EOF

        sampler.start()
        while True:
            if cancel is not None and cancel.is_set():
                reason = StopReason.CANCELLED
                break

            remaining = (cap_ms - sampler.elapsed_ms()) / 1000
            if remaining <= 0:
                reason = StopReason.DURATION
                break

            try:
                chunk = await asyncio.wait_for(stream.read(self.chunk_size), timeout=remaining)
            except asyncio.TimeoutError:
                # aiohttp.ServerTimeoutError lands here too
                reason = StopReason.DURATION
                break
            except aiohttp.ClientError as exc:
                raise StreamReadError(reason=str(exc) or type(exc).__name__) from exc
            except OSError as exc:
                raise StreamReadError(reason=str(exc)) from exc

            if not chunk:
                break

            elapsed = sampler.elapsed_ms()
            if elapsed >= cap_ms:
                reason = StopReason.DURATION
                break

            new_second = detector.crossed_second(sampler.measurements, elapsed)
            if detector.should_stop(sampler.measurements, elapsed):
                reason = StopReason.PLATEAU
                break
            if new_second and self.on_progress and sampler.measurements:
                rates = bucket_rates(sampler.measurements)
                self.on_progress(min(elapsed / cap_ms, 1.0), rates[-1] or 0.0)

            sampler.record(len(chunk), elapsed)

        elapsed_ms = sampler.elapsed_ms()
        rates = bucket_rates(sampler.measurements)
        result = SpeedtestResult(
            downloaded_bytes=sampler.total_bytes,
            elapsed_ms=elapsed_ms,
            max_rate_mbs=peak_rate(rates),
            stop_reason=reason,
            samples=[r for r in rates if r is not None],
        )

        if sampler.measurements:
            self.logger.info(
                "Downloaded: %.2f MB, Time: %d ms, Speed: %.1f MB/s (%.0f mbit)",
                result.downloaded_mb, result.elapsed_ms,
                result.max_rate_mbs, result.max_rate_mbit,
            )
        else:
            self.logger.warning("Speed probe failed, nothing downloaded.")

        return result
