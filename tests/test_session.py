"""Tests for netspeed.session -- phase ordering, state machine, and restart."""

import asyncio
import unittest

from netspeed.download import DownloadResult
from netspeed.errors import AnalysisUnavailable, NoDataReceived, ProbeTimeout
from netspeed.models import AnalysisSummary, MeasurementResult, SpeedSample
from netspeed.session import InvalidTransition, MeasurementSession, SessionState
from netspeed.upload import UploadResult, target_upload

S = SessionState


class FakeProber:
    def __init__(self, latency=12, exc=None, delay=0.0):
        self.latency = latency
        self.exc = exc
        self.delay = delay
        self.calls = 0

    async def measure(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return self.latency


class FakeDownloader:
    duration_seconds = 0.1

    def __init__(self, mbps=80.0, exc=None, samples=3, delay=0.0):
        self.mbps = mbps
        self.exc = exc
        self.samples = samples
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    async def test(self, on_sample=None, connections=2):
        self.calls += 1
        self.connections = connections
        for i in range(self.samples):
            on_sample(SpeedSample(float(i), self.mbps))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return DownloadResult(speed_mbps=self.mbps, bytes_total=1000, duration_ms=100)


class FakeEstimator:
    duration_seconds = 0.1

    def __init__(self):
        self.calls = 0
        self.baselines = []

    async def estimate(self, download_mbps, on_sample=None):
        self.calls += 1
        self.baselines.append(download_mbps)
        on_sample(SpeedSample(0.0, 1.0))
        return UploadResult(speed_mbps=target_upload(download_mbps), baseline_mbps=download_mbps)


class FakeAnalyst:
    def __init__(self, exc=None, delay=0.0):
        self.exc = exc
        self.delay = delay
        self.seen = []

    async def analyze(self, result):
        self.seen.append(result)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return AnalysisSummary("Fast.", "4K fine.", "Good.", "Stable.")


class TestMeasurementSession(unittest.IsolatedAsyncioTestCase):
    def _session(self, **overrides):
        parts = dict(
            prober=FakeProber(),
            downloader=FakeDownloader(),
            estimator=FakeEstimator(),
            analyst=FakeAnalyst(),
        )
        parts.update(overrides)
        states = []
        session = MeasurementSession(**parts, on_state_change=states.append)
        return session, states, parts

    async def test_happy_path(self):
        session, states, parts = self._session()
        seen = []
        session.on_sample = seen.append

        result = await session.run()

        self.assertEqual(states, [S.MEASURING_LATENCY, S.MEASURING_DOWNLOAD, S.MEASURING_UPLOAD, S.ANALYZING, S.COMPLETE])
        self.assertEqual(session.state, S.COMPLETE)
        self.assertEqual(result.ping_ms, 12)
        self.assertEqual(result.download_mbps, 80.0)
        self.assertAlmostEqual(result.upload_mbps, 12.0)
        self.assertIsNotNone(result.completed_at)
        self.assertEqual(parts["estimator"].baselines, [80.0])
        self.assertEqual(len(session.download_samples), 3)
        self.assertEqual(len(session.upload_samples), 1)
        self.assertEqual(len(seen), 4)
        self.assertEqual(session.analysis.summary, "Fast.")
        self.assertEqual(parts["analyst"].seen, [result])

    async def test_connections_passed_to_downloader(self):
        session, _, parts = self._session()
        session.connections = 5
        await session.run()
        self.assertEqual(parts["downloader"].connections, 5)

    async def test_latency_failure_stops_session(self):
        session, states, parts = self._session(prober=FakeProber(exc=ProbeTimeout()))
        result = await session.run()

        self.assertIsNone(result)
        self.assertEqual(states, [S.MEASURING_LATENCY, S.FAILED])
        self.assertEqual(parts["downloader"].calls, 0)
        self.assertEqual(parts["estimator"].calls, 0)
        self.assertTrue(session.failure_reason.startswith("Latency Test Failed: Connection timed out"))

    async def test_download_failure_never_starts_upload(self):
        session, states, parts = self._session(downloader=FakeDownloader(exc=NoDataReceived()))
        result = await session.run()

        self.assertIsNone(result)
        self.assertIsNone(session.result)
        self.assertEqual(parts["estimator"].calls, 0)
        self.assertEqual(parts["analyst"].seen, [])
        self.assertEqual(states, [S.MEASURING_LATENCY, S.MEASURING_DOWNLOAD, S.FAILED])
        self.assertTrue(session.failure_reason.startswith("Download Test Failed: No data received"))

    async def test_raise_on_failure(self):
        session, _, _ = self._session(downloader=FakeDownloader(exc=NoDataReceived()))
        with self.assertRaises(NoDataReceived):
            await session.run(raise_on_failure=True)
        self.assertEqual(session.state, S.FAILED)

    async def test_analysis_failure_is_not_fatal(self):
        session, states, _ = self._session(analyst=FakeAnalyst(exc=AnalysisUnavailable("quota")))
        result = await session.run()

        self.assertIsNotNone(result)
        self.assertEqual(states[-1], S.COMPLETE)
        self.assertIsNone(session.analysis)
        self.assertEqual(session.analysis_error, "quota")

    async def test_unexpected_analyst_error_still_completes(self):
        session, states, _ = self._session(analyst=FakeAnalyst(exc=RuntimeError("boom")))
        result = await session.run()

        self.assertIsNotNone(result)
        self.assertEqual(states[-2:], [S.ANALYZING, S.COMPLETE])
        self.assertFalse(session.is_running)
        self.assertIsNone(session.analysis)
        self.assertIn("boom", session.analysis_error)

        session.analyst = FakeAnalyst()
        self.assertIsNotNone(await session.run())
        self.assertEqual(session.analysis.summary, "Fast.")

    async def test_analysis_disabled(self):
        session, states, _ = self._session(analyst=None)
        await session.run()
        self.assertEqual(states[-2:], [S.ANALYZING, S.COMPLETE])
        self.assertIsNone(session.analysis)
        self.assertEqual(session.analysis_error, "Analysis disabled.")

    async def test_restart_after_complete_clears_everything_first(self):
        snapshots = []
        session, _, parts = self._session()
        await session.run()
        self.assertTrue(session.download_samples)

        def _snapshot(state):
            if state is S.MEASURING_LATENCY:
                snapshots.append((
                    list(session.download_samples),
                    list(session.upload_samples),
                    session.result,
                    session.ping_ms,
                    session.analysis,
                ))

        session.on_state_change = _snapshot
        session.prober = FakeProber(exc=ProbeTimeout())
        await session.run()

        self.assertEqual(snapshots, [([], [], None, None, None)])
        self.assertEqual(session.state, S.FAILED)
        self.assertIsNone(session.result)
        self.assertIsNone(session.download)

    async def test_restart_after_failure(self):
        session, _, _ = self._session(downloader=FakeDownloader(exc=NoDataReceived()))
        await session.run()
        self.assertEqual(session.state, S.FAILED)

        session.downloader = FakeDownloader()
        result = await session.run()
        self.assertIsNotNone(result)
        self.assertIsNone(session.failure_reason)
        self.assertEqual(session.state, S.COMPLETE)

    async def test_run_while_running_is_rejected(self):
        session, _, _ = self._session(prober=FakeProber(delay=0.2))
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.05)
        self.assertTrue(session.is_running)
        with self.assertRaises(InvalidTransition):
            await session.run()
        await task
        self.assertEqual(session.state, S.COMPLETE)

    async def test_task_cancellation_fails_session(self):
        session, states, parts = self._session(downloader=FakeDownloader(delay=5.0))
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(session.state, S.FAILED)
        self.assertEqual(session.failure_reason, "Test cancelled")
        self.assertEqual(parts["estimator"].calls, 0)

    async def test_cancellation_during_analysis_completes_session(self):
        session, _, _ = self._session(analyst=FakeAnalyst(delay=5.0))
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.1)
        self.assertEqual(session.state, S.ANALYZING)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(session.state, S.COMPLETE)
        self.assertFalse(session.is_running)
        self.assertIsNotNone(session.result)
        self.assertEqual(session.analysis_error, "Analysis cancelled")

        session.analyst = FakeAnalyst()
        self.assertIsNotNone(await session.run())

    async def test_cancel_delegates_to_downloader(self):
        session, _, parts = self._session(downloader=FakeDownloader(delay=0.2))
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.05)
        self.assertEqual(session.state, S.MEASURING_DOWNLOAD)
        session.cancel()
        await task
        self.assertTrue(parts["downloader"].cancelled)

    def test_initial_state(self):
        session, _, _ = self._session()
        self.assertEqual(session.state, S.IDLE)
        self.assertFalse(session.is_running)
        self.assertIsNone(session.result)


class TestTransitions(unittest.TestCase):
    def test_illegal_transition_raises(self):
        session = MeasurementSession(FakeProber(), FakeDownloader(), FakeEstimator())
        with self.assertRaises(InvalidTransition):
            session._transition(S.COMPLETE)
        with self.assertRaises(InvalidTransition):
            session._transition(S.FAILED)


class TestMeasurementResult(unittest.TestCase):
    def test_negative_values_rejected(self):
        for field in ("ping_ms", "download_mbps", "upload_mbps"):
            values = {"ping_ms": 1, "download_mbps": 1, "upload_mbps": 1, field: -1}
            with self.subTest(field=field), self.assertRaises(ValueError):
                MeasurementResult(**values)

    def test_to_dict(self):
        r = MeasurementResult(ping_ms=12, download_mbps=80.123, upload_mbps=12.0)
        d = r.to_dict()
        self.assertEqual(d["download_mbps"], 80.12)
        self.assertIn("completed_at", d)


if __name__ == "__main__":
    unittest.main()
