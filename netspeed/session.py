"""
Measurement session: ping, then download, then (estimated) upload.

The session owns the state machine and the live-progress contract.  A
failing phase stops the run where it is; the optional AI analysis only
runs after all three phases succeed and can never fail the session.

::

    IDLE -> MEASURING_LATENCY -> MEASURING_DOWNLOAD -> MEASURING_UPLOAD
         -> ANALYZING -> COMPLETE

    FAILED is reachable from each MEASURING_* state.  COMPLETE and FAILED
    are terminal; run() again restarts from a clean slate.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Callable, Dict, FrozenSet, List, Optional

from .constants import DEFAULT_CONNECTIONS
from .download import DownloadResult, DownloadTester
from .errors import AnalysisUnavailable, MeasurementError
from .latency import LatencyProber
from .models import AnalysisSummary, MeasurementResult, SpeedSample
from .upload import UploadEstimator, UploadResult

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    IDLE = "idle"
    MEASURING_LATENCY = "measuring_latency"
    MEASURING_DOWNLOAD = "measuring_download"
    MEASURING_UPLOAD = "measuring_upload"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


_MEASURING: FrozenSet[SessionState] = frozenset({
    SessionState.MEASURING_LATENCY,
    SessionState.MEASURING_DOWNLOAD,
    SessionState.MEASURING_UPLOAD,
})

_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.MEASURING_LATENCY}),
    SessionState.MEASURING_LATENCY: frozenset({SessionState.MEASURING_DOWNLOAD, SessionState.FAILED}),
    SessionState.MEASURING_DOWNLOAD: frozenset({SessionState.MEASURING_UPLOAD, SessionState.FAILED}),
    SessionState.MEASURING_UPLOAD: frozenset({SessionState.ANALYZING, SessionState.FAILED}),
    SessionState.ANALYZING: frozenset({SessionState.COMPLETE}),
    SessionState.COMPLETE: frozenset({SessionState.MEASURING_LATENCY}),
    SessionState.FAILED: frozenset({SessionState.MEASURING_LATENCY}),
}


class InvalidTransition(RuntimeError):
    pass


class MeasurementSession:
    """
    Runs one measurement at a time and keeps its figures for display.

    Collaborators are injectable; anything with the same ``measure`` /
    ``test`` / ``estimate`` / ``analyze`` coroutine methods will do.  Pass
    ``analyst=None`` to skip analysis (it is then reported unavailable).
    """

    def __init__(
        self,
        prober: Optional[LatencyProber] = None,
        downloader: Optional[DownloadTester] = None,
        estimator: Optional[UploadEstimator] = None,
        analyst=None,  # noqa: ANN001 (NetworkAnalyst or compatible)
        connections: int = DEFAULT_CONNECTIONS,
        on_sample: Optional[Callable[[SpeedSample], None]] = None,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
    ) -> None:
        self.prober = prober or LatencyProber()
        self.downloader = downloader or DownloadTester()
        self.estimator = estimator or UploadEstimator()
        self.analyst = analyst
        self.connections = connections
        self.on_sample = on_sample
        self.on_state_change = on_state_change

        self._state = SessionState.IDLE
        self._reset()

    # -- State --------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in _MEASURING or self._state is SessionState.ANALYZING

    def _transition(self, new: SessionState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise InvalidTransition(f"{self._state.name} -> {new.name}")
        logger.debug("Session %s -> %s", self._state.name, new.name)
        self._state = new
        if self.on_state_change:
            self.on_state_change(new)

    def _reset(self) -> None:
        self.ping_ms: Optional[int] = None
        self.download: Optional[DownloadResult] = None
        self.upload: Optional[UploadResult] = None
        self.download_samples: List[SpeedSample] = []
        self.upload_samples: List[SpeedSample] = []
        self.live_mbps = 0.0
        self.result: Optional[MeasurementResult] = None
        self.analysis: Optional[AnalysisSummary] = None
        self.analysis_error: Optional[str] = None
        self.failure_reason: Optional[str] = None

    # -- Public API ---------------------------------------------------------

    async def run(self, raise_on_failure: bool = False) -> Optional[MeasurementResult]:
        """
        Run all phases and return the result, or None if a phase failed
        (see ``failure_reason``).  With *raise_on_failure* the phase's
        ``MeasurementError`` propagates after the session moves to FAILED.
        """
        if self.is_running:
            raise InvalidTransition("A measurement is already in progress")

        self._reset()
        self._transition(SessionState.MEASURING_LATENCY)

        try:
            try:
                self.ping_ms = await self.prober.measure()
            except MeasurementError as exc:
                return self._fail(f"Latency Test Failed: {exc}", exc, raise_on_failure)

            self._transition(SessionState.MEASURING_DOWNLOAD)
            try:
                self.download = await self.downloader.test(
                    self._recorder(self.download_samples), connections=self.connections
                )
            except MeasurementError as exc:
                return self._fail(f"Download Test Failed: {exc}", exc, raise_on_failure)
            self.live_mbps = 0.0

            self._transition(SessionState.MEASURING_UPLOAD)
            self.upload = await self.estimator.estimate(
                self.download.speed_mbps, self._recorder(self.upload_samples)
            )
            self.live_mbps = 0.0

        except asyncio.CancelledError:
            self._fail("Test cancelled", None, False)
            raise

        self.result = MeasurementResult(
            ping_ms=self.ping_ms,
            download_mbps=self.download.speed_mbps,
            upload_mbps=self.upload.speed_mbps,
        )

        self._transition(SessionState.ANALYZING)
        try:
            await self._analyze(self.result)
        except asyncio.CancelledError:
            self.analysis_error = "Analysis cancelled"
            self._transition(SessionState.COMPLETE)
            raise
        self._transition(SessionState.COMPLETE)
        return self.result

    def cancel(self) -> None:
        """Cut the download window short; the session still completes."""
        if self._state is SessionState.MEASURING_DOWNLOAD:
            self.downloader.cancel()

    # -- Internals ----------------------------------------------------------

    def _recorder(self, bucket: List[SpeedSample]) -> Callable[[SpeedSample], None]:
        def _record(sample: SpeedSample) -> None:
            bucket.append(sample)
            self.live_mbps = sample.instantaneous_mbps
            if self.on_sample:
                self.on_sample(sample)
        return _record

    def _fail(
        self,
        reason: str,
        exc: Optional[MeasurementError],
        raise_on_failure: bool,
    ) -> None:
        self.failure_reason = reason
        self.live_mbps = 0.0
        logger.error("%s", reason)
        self._transition(SessionState.FAILED)
        if raise_on_failure and exc is not None:
            raise exc

    async def _analyze(self, result: MeasurementResult) -> None:
        if self.analyst is None:
            self.analysis_error = "Analysis disabled."
            return
        try:
            self.analysis = await self.analyst.analyze(result)
        except AnalysisUnavailable as exc:
            self.analysis_error = str(exc)
            logger.warning("Analysis unavailable: %s", exc)
        except Exception as exc:
            self.analysis_error = f"Analysis unavailable: {str(exc) or type(exc).__name__}"
            logger.warning("Analysis failed", exc_info=True)
