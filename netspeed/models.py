"""
Value objects shared by the measurement phases and the session.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SpeedSample:
    """A point-in-time rate estimate handed to progress callbacks."""

    timestamp_ms: float
    instantaneous_mbps: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_ms": round(self.timestamp_ms, 1),
            "mbps": round(self.instantaneous_mbps, 2),
        }


@dataclass(frozen=True)
class MeasurementResult:
    """Terminal outcome of one successful session."""

    ping_ms: float
    download_mbps: float
    upload_mbps: float
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("ping_ms", "download_mbps", "upload_mbps"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.completed_at is None:
            object.__setattr__(self, "completed_at", datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ping_ms": round(self.ping_ms, 1),
            "download_mbps": round(self.download_mbps, 2),
            "upload_mbps": round(self.upload_mbps, 2),
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass(frozen=True)
class AnalysisSummary:
    """Plain-language assessment of a result."""

    summary: str
    streaming: str
    gaming: str
    video_calls: str

    @classmethod
    def from_dict(cls, data: dict) -> AnalysisSummary:
        return cls(
            summary=str(data["summary"]),
            streaming=str(data["streaming"]),
            gaming=str(data["gaming"]),
            video_calls=str(data["videoCalls"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "streaming": self.streaming,
            "gaming": self.gaming,
            "videoCalls": self.video_calls,
        }
