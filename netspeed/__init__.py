"""NeuroSpeed measurement engine -- latency, download sampling, upload estimation."""

from .analysis import NetworkAnalyst, analyze_network
from .download import ByteCounter, DownloadResult, DownloadTester, SampleReporter, measure_download
from .errors import (
    AnalysisUnavailable,
    MeasurementError,
    NoDataReceived,
    Offline,
    ProbeTimeout,
    ProbeUnreachable,
)
from .latency import LatencyProber, measure_latency
from .models import AnalysisSummary, MeasurementResult, SpeedSample
from .netinfo import NetworkInfo, NetworkInfoClient, fetch_network_info
from .session import InvalidTransition, MeasurementSession, SessionState
from .stats import ConnectionStats, format_latency, format_speed, to_mbps
from .targets import DEFAULT_REGISTRY, Target, TargetKind, TargetRegistry
from .upload import UploadEstimator, UploadResult, estimate_upload

__all__ = [
    "AnalysisSummary",
    "AnalysisUnavailable",
    "ByteCounter",
    "ConnectionStats",
    "DEFAULT_REGISTRY",
    "DownloadResult",
    "DownloadTester",
    "InvalidTransition",
    "LatencyProber",
    "MeasurementError",
    "MeasurementResult",
    "MeasurementSession",
    "NetworkAnalyst",
    "NetworkInfo",
    "NetworkInfoClient",
    "NoDataReceived",
    "Offline",
    "ProbeTimeout",
    "ProbeUnreachable",
    "SampleReporter",
    "SessionState",
    "SpeedSample",
    "Target",
    "TargetKind",
    "TargetRegistry",
    "UploadEstimator",
    "UploadResult",
    "analyze_network",
    "estimate_upload",
    "fetch_network_info",
    "format_latency",
    "format_speed",
    "measure_download",
    "measure_latency",
    "to_mbps",
]
