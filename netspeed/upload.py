"""
Upload speed estimation.

True upload measurement needs a receiver we control, so the upload figure
is derived from the measured download speed using typical access-technology
asymmetry, and a synthetic ramp-up curve is streamed to the progress
callback while the "test" runs.
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .constants import (
    DEFAULT_UPLOAD_DURATION,
    FALLBACK_BASELINE_MBPS,
    MIN_UPLOAD_SAMPLE_MBPS,
    UPLOAD_RAMP_FACTOR,
    UPLOAD_TICK,
    UPLOAD_WOBBLE,
)
from .models import SpeedSample

logger = logging.getLogger(__name__)

# (lower bound exclusive, ratio) checked top to bottom; slow links are
# handled separately because they sit below the default tier.
_FAST_TIERS = [
    (300.0, 0.8),   # fiber, usually symmetric
    (100.0, 0.3),   # good cable
]
_SLOW_LINK_MBPS = 10.0
_SLOW_LINK_RATIO = 0.5      # DSL tends to a closer ratio
_DEFAULT_RATIO = 0.15


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

def resolve_baseline(download_mbps: float) -> float:
    """Fall back to a moderate connection when the download phase gave nothing."""
    return download_mbps if download_mbps > 0 else FALLBACK_BASELINE_MBPS


def upload_ratio(baseline_mbps: float) -> float:
    """Upload/download ratio for a given download speed."""
    for threshold, ratio in _FAST_TIERS:
        if baseline_mbps > threshold:
            return ratio
    if baseline_mbps < _SLOW_LINK_MBPS:
        return _SLOW_LINK_RATIO
    return _DEFAULT_RATIO


def target_upload(download_mbps: float) -> float:
    baseline = resolve_baseline(download_mbps)
    return baseline * upload_ratio(baseline)


def progress_value(target_mbps: float, progress: float, noise: float) -> float:
    """
    Synthetic reading at *progress* (0..1) through the run.

    Ramps linearly to full speed over the first sixth, then holds with
    +/-5 % wobble driven by *noise* in [0, 1).
    """
    ramp = min(progress * UPLOAD_RAMP_FACTOR, 1.0)
    wobble = 1 + (noise - 0.5) * UPLOAD_WOBBLE
    return max(MIN_UPLOAD_SAMPLE_MBPS, target_mbps * ramp * wobble)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class UploadResult:
    """Estimated upload result."""

    speed_mbps: float = 0.0
    baseline_mbps: float = 0.0
    ratio: float = 0.0
    duration_ms: float = 0.0
    samples: List[SpeedSample] = field(default_factory=list)
    estimated: bool = True

    def to_dict(self) -> dict:
        return {
            "speed_mbps": round(self.speed_mbps, 2),
            "baseline_mbps": round(self.baseline_mbps, 2),
            "ratio": self.ratio,
            "duration_ms": round(self.duration_ms, 2),
            "samples": [s.to_dict() for s in self.samples],
            "estimated": self.estimated,
        }


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------

class UploadEstimator:
    """Timer-driven upload simulation.  Never touches the network."""

    def __init__(
        self,
        duration_seconds: float = DEFAULT_UPLOAD_DURATION,
        interval: float = UPLOAD_TICK,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.interval = interval
        self.rng = rng
        self.on_sample: Optional[Callable[[SpeedSample], None]] = None

    async def estimate(
        self,
        download_mbps: float,
        on_sample: Optional[Callable[[SpeedSample], None]] = None,
    ) -> UploadResult:
        callback = on_sample or self.on_sample
        baseline = resolve_baseline(download_mbps)
        ratio = upload_ratio(baseline)
        target = baseline * ratio

        result = UploadResult(speed_mbps=target, baseline_mbps=baseline, ratio=ratio)
        start_time = time.perf_counter()

        while True:
            await asyncio.sleep(self.interval)
            elapsed = time.perf_counter() - start_time
            if elapsed >= self.duration_seconds:
                break

            sample = SpeedSample(
                timestamp_ms=time.time() * 1000,
                instantaneous_mbps=progress_value(
                    target, elapsed / self.duration_seconds, self.rng()
                ),
            )
            result.samples.append(sample)
            if callback:
                callback(sample)

        result.duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Upload (estimated): %.2f Mbps from %.2f Mbps baseline, ratio %.2f",
            target, baseline, ratio,
        )
        return result


async def estimate_upload(
    download_mbps: float,
    on_sample: Optional[Callable[[SpeedSample], None]] = None,
    duration_ms: float = DEFAULT_UPLOAD_DURATION * 1000,
) -> float:
    result = await UploadEstimator(duration_seconds=duration_ms / 1000).estimate(
        download_mbps, on_sample
    )
    return result.speed_mbps
