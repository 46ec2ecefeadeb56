"""
HTTP round-trip latency probe.

One cache-defeating GET against the probe target under a hard deadline.
Only transport-level completion is timed: the status code and body are
ignored, so the target may be any small, always-available resource.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

import aiohttp

from .connectivity import host_is_online
from .constants import COMMON_HEADERS, PING_TIMEOUT
from .errors import ProbeTimeout, ProbeUnreachable
from .targets import DEFAULT_REGISTRY, Target

logger = logging.getLogger(__name__)


class LatencyProber:
    """Measure latency to a single target.  No retries."""

    def __init__(
        self,
        target: Optional[Target] = None,
        timeout: float = PING_TIMEOUT,
        online_check: Callable[[], bool] = host_is_online,
    ) -> None:
        self.target = target or DEFAULT_REGISTRY.probe
        self.timeout = timeout
        self.online_check = online_check

    async def measure(self) -> int:
        """Return the round-trip time in whole milliseconds."""
        url = self.target.cache_busted(str(int(time.time() * 1000)))
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout) as session:
            start = time.perf_counter()
            try:
                async with session.get(url, allow_redirects=False) as resp:
                    elapsed = time.perf_counter() - start
                    resp.release()
            except asyncio.TimeoutError as exc:
                logger.debug("Probe to %s timed out after %.1f s", self.target.hostname, self.timeout)
                raise ProbeTimeout() from exc
            except (aiohttp.ClientError, OSError) as exc:
                logger.debug("Probe to %s failed: %s", self.target.hostname, exc)
                if not self.online_check():
                    raise ProbeUnreachable(
                        "You appear to be offline. Please check your network connection."
                    ) from exc
                raise ProbeUnreachable() from exc

        latency_ms = round(elapsed * 1000)
        logger.info("Latency to %s: %d ms", self.target.hostname, latency_ms)
        return latency_ms


async def measure_latency(timeout: float = PING_TIMEOUT) -> int:
    return await LatencyProber(timeout=timeout).measure()
