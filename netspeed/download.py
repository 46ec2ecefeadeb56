"""
Download throughput sampler.

Runs parallel HTTPS GET loops against a rotating list of CDN targets for a
fixed window.  Every received chunk bumps one shared byte counter and gives
the reporter a chance to emit an instantaneous-rate sample; the final speed
is total bytes over the whole window.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import aiohttp

from .connectivity import host_is_online
from .constants import (
    CHUNK_SIZE,
    COMMON_HEADERS,
    CONNECT_TIMEOUT,
    DEFAULT_CONNECTIONS,
    DEFAULT_DOWNLOAD_DURATION,
    MAX_CONNECTIONS,
    MIN_CONNECTIONS,
    READ_TIMEOUT,
    REPORT_INTERVAL,
    RETRY_COOLDOWN,
    STOP_GRACE,
)
from .errors import NoDataReceived, Offline
from .models import SpeedSample
from .stats import ConnectionStats, to_mbps
from .targets import DEFAULT_REGISTRY, TargetRegistry

logger = logging.getLogger(__name__)

SampleCallback = Callable[[SpeedSample], None]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class DownloadResult:
    """Download test result."""

    speed_mbps: float = 0.0
    bytes_total: int = 0
    duration_ms: float = 0.0
    connections: List[ConnectionStats] = field(default_factory=list)
    samples: List[SpeedSample] = field(default_factory=list)

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        self.speed_mbps = to_mbps(self.bytes_total, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "speed_mbps": round(self.speed_mbps, 2),
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "connections": [c.to_dict() for c in self.connections],
            "samples": [s.to_dict() for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------

class ByteCounter:
    """Integer total shared by all download loops."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def add(self, n: int) -> int:
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class SampleReporter:
    """
    Turns counter growth into throttled instantaneous-rate samples.

    ``chunk_arrived`` is called after every chunk from any loop.  A sample
    is emitted only when more than ``interval`` seconds have passed since
    the previous one, and covers exactly the bytes received in between.
    The counter is global, so a rotation between samples can show up as a
    spike; that is expected.
    """

    def __init__(
        self,
        counter: ByteCounter,
        start: float,
        on_sample: Optional[SampleCallback] = None,
        interval: float = REPORT_INTERVAL,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.counter = counter
        self.start = start
        self.on_sample = on_sample
        self.interval = interval
        self._wall_clock = wall_clock
        self.previous_total = 0
        self.last_report = start
        self.samples: List[SpeedSample] = []

    def chunk_arrived(self, now: float) -> Optional[SpeedSample]:
        time_diff = now - self.last_report
        if time_diff <= self.interval:
            return None

        total = self.counter.value
        sample = SpeedSample(
            timestamp_ms=self._wall_clock() * 1000,
            instantaneous_mbps=to_mbps(total - self.previous_total, time_diff),
        )
        self.samples.append(sample)
        if self.on_sample:
            self.on_sample(sample)

        self.previous_total = total
        self.last_report = now
        return sample

    @property
    def average_mbps(self) -> float:
        """Running average since the start, as of the last emitted sample."""
        return to_mbps(self.previous_total, self.last_report - self.start)


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class DownloadTester:
    """
    Parallel download speed tester.

    Each loop starts on target ``loop_id % len(targets)`` so concurrent
    loops hit different hosts.  A failed request rotates that loop to the
    next target after a short cooldown; a finished body just re-requests
    the same target.  Loops stop cooperatively at their next chunk boundary
    once the window closes or ``cancel()`` is called.
    """

    def __init__(
        self,
        duration_seconds: float = DEFAULT_DOWNLOAD_DURATION,
        registry: TargetRegistry = DEFAULT_REGISTRY,
        online_check: Callable[[], bool] = host_is_online,
        cooldown: float = RETRY_COOLDOWN,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.registry = registry
        self.online_check = online_check
        self.cooldown = cooldown
        self.on_sample: Optional[SampleCallback] = None
        self._stop: Optional[asyncio.Event] = None

    def cancel(self) -> None:
        """Ask a running test to wind down early."""
        if self._stop is not None:
            self._stop.set()

    async def test(
        self,
        on_sample: Optional[SampleCallback] = None,
        connections: int = DEFAULT_CONNECTIONS,
    ) -> DownloadResult:
        connections = max(MIN_CONNECTIONS, min(connections, MAX_CONNECTIONS))

        counter = ByteCounter()
        conn_stats: List[ConnectionStats] = []

        start_time = time.perf_counter()
        end_time = start_time + self.duration_seconds
        stop = asyncio.Event()
        self._stop = stop
        reporter = SampleReporter(counter, start_time, on_sample or self.on_sample)

        # -- Worker ---------------------------------------------------------

        async def _worker(session: aiohttp.ClientSession, loop_id: int) -> None:
            stats = ConnectionStats(id=loop_id)
            conn_stats.append(stats)
            cursor = loop_id % len(self.registry)
            t0 = time.perf_counter()

            try:
                while not stop.is_set() and time.perf_counter() < end_time:
                    target = self.registry.target_for(cursor)
                    stats.hostname = target.hostname
                    url = target.cache_busted(f"{int(time.time() * 1000)}-{loop_id}")
                    stats.requests += 1

                    try:
                        async with session.get(url) as resp:
                            resp.raise_for_status()
                            await self._consume(resp, stats, counter, reporter, stop, end_time)
                    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                        stats.failures += 1
                        if stop.is_set():
                            break
                        cursor = self.registry.next_index(cursor)
                        stats.rotations += 1
                        logger.debug(
                            "Loop %d: %s failed (%s), rotating to %s",
                            loop_id, target.hostname, str(exc) or type(exc).__name__,
                            self.registry.target_for(cursor).hostname,
                        )
                        await _pause(stop, min(self.cooldown, end_time - time.perf_counter()))
            finally:
                stats.duration_ms = (time.perf_counter() - t0) * 1000
                stats.calculate()

        # -- Orchestration --------------------------------------------------

        connector = aiohttp.TCPConnector(limit=connections, limit_per_host=connections)
        timeout = aiohttp.ClientTimeout(total=None, connect=CONNECT_TIMEOUT, sock_read=READ_TIMEOUT)
        headers = {**COMMON_HEADERS, "Accept-Encoding": "identity"}

        async with aiohttp.ClientSession(
            headers=headers,
            connector=connector,
            timeout=timeout,
        ) as session:
            workers = [asyncio.create_task(_worker(session, i)) for i in range(connections)]
            try:
                await _pause(stop, end_time - time.perf_counter())
                stop.set()
                _, pending = await asyncio.wait(workers, timeout=STOP_GRACE)
                for t in pending:
                    t.cancel()
            finally:
                stop.set()
                for t in workers:
                    if not t.done():
                        t.cancel()
                outcomes = await asyncio.gather(*workers, return_exceptions=True)

        self._stop = None
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                raise outcome

        result = DownloadResult(
            bytes_total=counter.value,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            connections=conn_stats,
            samples=reporter.samples,
        )

        if result.bytes_total == 0:
            if not self.online_check():
                raise Offline()
            raise NoDataReceived()

        result.calculate()
        logger.info(
            "Download: %.2f Mbps (%d bytes in %.0f ms over %d loops)",
            result.speed_mbps, result.bytes_total, result.duration_ms, connections,
        )
        return result

    # -- Internals ----------------------------------------------------------

    @staticmethod
    async def _consume(
        resp: aiohttp.ClientResponse,
        stats: ConnectionStats,
        counter: ByteCounter,
        reporter: SampleReporter,
        stop: asyncio.Event,
        end_time: float,
    ) -> None:
        """Count body bytes as they arrive, stopping at the window edge."""
        content = getattr(resp, "content", None)
        if content is None:
            body = await resp.read()
            _credit(len(body), stats, counter, reporter)
            return

        while not stop.is_set():
            remaining = end_time - time.perf_counter()
            if remaining <= 0:
                break
            try:
                chunk = await asyncio.wait_for(
                    content.read(CHUNK_SIZE),
                    timeout=min(remaining, READ_TIMEOUT),
                )
            except asyncio.TimeoutError:
                if time.perf_counter() >= end_time:
                    break
                raise
            if not chunk:
                break
            _credit(len(chunk), stats, counter, reporter)


def _credit(n: int, stats: ConnectionStats, counter: ByteCounter, reporter: SampleReporter) -> None:
    if n <= 0:
        return
    stats.bytes_transferred += n
    counter.add(n)
    reporter.chunk_arrived(time.perf_counter())


async def _pause(stop: asyncio.Event, seconds: float) -> None:
    """Sleep up to *seconds*, waking early if *stop* is set."""
    if seconds <= 0:
        return
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def measure_download(
    on_sample: Optional[SampleCallback] = None,
    window_ms: float = DEFAULT_DOWNLOAD_DURATION * 1000,
    concurrency: int = DEFAULT_CONNECTIONS,
    registry: TargetRegistry = DEFAULT_REGISTRY,
) -> float:
    """Run one download window and return its Mbps."""
    tester = DownloadTester(duration_seconds=window_ms / 1000, registry=registry)
    result = await tester.test(on_sample, connections=concurrency)
    return result.speed_mbps
