"""Measurement error taxonomy."""
from __future__ import annotations


class MeasurementError(Exception):
    """Base class; ``str(exc)`` is a message suitable for display."""

    default_message = "An unexpected network error occurred."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)


class ProbeTimeout(MeasurementError):
    default_message = "Connection timed out. The server took too long to respond."


class ProbeUnreachable(MeasurementError):
    default_message = (
        "Unable to reach the test server. Please check your internet "
        "connection or firewall settings."
    )


class NoDataReceived(MeasurementError):
    default_message = (
        "No data received. This could be due to a firewall, ad blocker, or "
        "network restriction blocking the test files."
    )


class Offline(MeasurementError):
    default_message = "You are offline. Download test cannot proceed."


class AnalysisUnavailable(MeasurementError):
    """Non-fatal: the session completes without an analysis."""

    default_message = "Analysis unavailable."
