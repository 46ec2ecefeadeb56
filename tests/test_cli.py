"""Tests for CLI validation, session wiring, and the report runner."""

import io
import json
import unittest
from contextlib import redirect_stdout
from unittest import mock

from netspeed.analysis import NetworkAnalyst
from netspeed.constants import (
    DEFAULT_CONNECTIONS,
    DEFAULT_DOWNLOAD_DURATION,
    DEFAULT_UPLOAD_DURATION,
    MAX_CONNECTIONS,
    MAX_DURATION,
    MIN_CONNECTIONS,
    MIN_DURATION,
    PING_TIMEOUT,
)
from netspeed.errors import ProbeTimeout
from netspeed.netinfo import NetworkInfo
from netspeed.session import MeasurementSession, SessionState
from test_session import FakeAnalyst, FakeDownloader, FakeEstimator, FakeProber


class TestValidation(unittest.TestCase):
    """Test the _validate function from neurospeed.py."""

    def _validate(self, **kwargs):
        # Import here to avoid triggering side effects at module level
        from neurospeed import _validate
        defaults = {
            "download_duration": DEFAULT_DOWNLOAD_DURATION,
            "upload_duration": DEFAULT_UPLOAD_DURATION,
            "connections": DEFAULT_CONNECTIONS,
            "ping_timeout": PING_TIMEOUT,
        }
        defaults.update(kwargs)
        return _validate(**defaults)

    def test_defaults_valid(self):
        # Should not raise
        self._validate()

    def test_download_duration_too_low(self):
        with self.assertRaises(ValueError):
            self._validate(download_duration=MIN_DURATION - 0.1)

    def test_download_duration_too_high(self):
        with self.assertRaises(ValueError):
            self._validate(download_duration=MAX_DURATION + 1)

    def test_upload_duration_too_low(self):
        with self.assertRaises(ValueError):
            self._validate(upload_duration=0)

    def test_connections_too_low(self):
        with self.assertRaises(ValueError):
            self._validate(connections=MIN_CONNECTIONS - 1)

    def test_connections_too_high(self):
        with self.assertRaises(ValueError):
            self._validate(connections=MAX_CONNECTIONS + 1)

    def test_connections_boundaries(self):
        self._validate(connections=MIN_CONNECTIONS)
        self._validate(connections=MAX_CONNECTIONS)

    def test_ping_timeout_positive(self):
        with self.assertRaises(ValueError):
            self._validate(ping_timeout=0)


class TestBuildSession(unittest.TestCase):
    def test_wires_parameters(self):
        from neurospeed import build_session
        session = build_session(
            download_duration=3.0, upload_duration=2.0, connections=4,
            ping_timeout=1.5, analysis=True, gemini_model="gemini-x",
        )
        self.assertEqual(session.downloader.duration_seconds, 3.0)
        self.assertEqual(session.estimator.duration_seconds, 2.0)
        self.assertEqual(session.prober.timeout, 1.5)
        self.assertEqual(session.connections, 4)
        self.assertIsInstance(session.analyst, NetworkAnalyst)
        self.assertEqual(session.analyst.model, "gemini-x")

    def test_analysis_disabled(self):
        from neurospeed import build_session
        session = build_session(8.0, 5.0, 2, 2.0, analysis=False, gemini_model="m")
        self.assertIsNone(session.analyst)


class TestRunMeasurement(unittest.IsolatedAsyncioTestCase):
    INFO = NetworkInfo("1.2.3.4", "ISP", "Here", "IPv4")

    async def test_json_output(self):
        from neurospeed import run_measurement
        session = MeasurementSession(FakeProber(), FakeDownloader(), FakeEstimator(), FakeAnalyst())
        buf = io.StringIO()
        with redirect_stdout(buf):
            result = await run_measurement(session, json_output=True, network_info=self.INFO)
        printed = json.loads(buf.getvalue())
        self.assertEqual(printed["state"], "complete")
        self.assertEqual(result["result"]["ping_ms"], 12)

    async def test_simple_output(self):
        from neurospeed import run_measurement
        session = MeasurementSession(FakeProber(), FakeDownloader(), FakeEstimator())
        buf = io.StringIO()
        with redirect_stdout(buf):
            await run_measurement(session, simple=True, network_info=self.INFO)
        self.assertIn("Download: 80.00 Mbps", buf.getvalue())

    async def test_failed_session_reported(self):
        from neurospeed import run_measurement
        session = MeasurementSession(FakeProber(exc=ProbeTimeout()), FakeDownloader(), FakeEstimator())
        buf = io.StringIO()
        with redirect_stdout(buf):
            result = await run_measurement(session, json_output=True, network_info=self.INFO)
        self.assertEqual(session.state, SessionState.FAILED)
        self.assertIn("Latency Test Failed", result["error"])


class TestMain(unittest.TestCase):
    def _run_main(self, argv, run_side_effect):
        import neurospeed
        from netspeed.config import DEFAULTS

        buf = io.StringIO()
        with mock.patch("sys.argv", ["neurospeed"] + argv), \
                mock.patch.object(neurospeed, "load_config", return_value=dict(DEFAULTS)), \
                mock.patch.object(neurospeed, "configure_logging"), \
                mock.patch.object(neurospeed, "run_measurement", side_effect=run_side_effect), \
                redirect_stdout(buf):
            with self.assertRaises(SystemExit) as ctx:
                neurospeed.main()
        return ctx.exception.code, buf.getvalue()

    def test_unexpected_error_exits_cleanly(self):
        code, out = self._run_main(["--simple"], RuntimeError("boom"))
        self.assertEqual(code, 1)
        self.assertIn("Error: boom", out)

    def test_keyboard_interrupt_exits_1(self):
        code, out = self._run_main(["--simple"], KeyboardInterrupt())
        self.assertEqual(code, 1)
        self.assertIn("cancelled", out)

    def test_invalid_connections_exits_1(self):
        code, out = self._run_main(["--connections", "99"], RuntimeError("unreached"))
        self.assertEqual(code, 1)
        self.assertIn("Connections must be between", out)


if __name__ == "__main__":
    unittest.main()
