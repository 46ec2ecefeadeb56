#!/usr/bin/env python3
"""
NeuroSpeed CLI -- check your real internet speed from the terminal.

Usage::

    python neurospeed.py                       # rich dashboard
    python neurospeed.py --simple              # plain text
    python neurospeed.py --json                # JSON to stdout
    python neurospeed.py -o result.json        # save to file
    python neurospeed.py --no-analysis         # skip the AI assessment
    python neurospeed.py --repeat 5 --interval 60
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from typing import Any, Dict, Optional

from netspeed.analysis import NetworkAnalyst
from netspeed.config import load_config
from netspeed.constants import (
    MAX_CONNECTIONS,
    MAX_DURATION,
    MIN_CONNECTIONS,
    MIN_DURATION,
)
from netspeed.download import DownloadTester
from netspeed.latency import LatencyProber
from netspeed.netinfo import NetworkInfo, fetch_network_info
from netspeed.session import MeasurementSession, SessionState
from netspeed.upload import UploadEstimator
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_analysis,
    print_error,
    print_final_results,
    print_header,
    print_latency,
    print_network_info,
    print_speed_result,
)
from ui.logging_setup import configure_logging
from ui.output import create_result_json, format_text_result, save_json


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(
    download_duration: float,
    upload_duration: float,
    connections: int,
    ping_timeout: float,
) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_DURATION <= download_duration <= MAX_DURATION:
        raise ValueError(f"Download duration must be between {MIN_DURATION} and {MAX_DURATION} s")
    if not MIN_DURATION <= upload_duration <= MAX_DURATION:
        raise ValueError(f"Upload duration must be between {MIN_DURATION} and {MAX_DURATION} s")
    if not MIN_CONNECTIONS <= connections <= MAX_CONNECTIONS:
        raise ValueError(f"Connections must be between {MIN_CONNECTIONS} and {MAX_CONNECTIONS}")
    if ping_timeout <= 0:
        raise ValueError("Ping timeout must be positive")


def build_session(
    download_duration: float,
    upload_duration: float,
    connections: int,
    ping_timeout: float,
    analysis: bool,
    gemini_model: str,
) -> MeasurementSession:
    return MeasurementSession(
        prober=LatencyProber(timeout=ping_timeout),
        downloader=DownloadTester(duration_seconds=download_duration),
        estimator=UploadEstimator(duration_seconds=upload_duration),
        analyst=NetworkAnalyst(model=gemini_model) if analysis else None,
        connections=connections,
    )


# ---------------------------------------------------------------------------
# Live dashboard wiring
# ---------------------------------------------------------------------------

def _attach_dashboard(session: MeasurementSession) -> None:
    progress = ProgressDisplay()

    def _on_state(state: SessionState) -> None:
        if state is SessionState.MEASURING_LATENCY:
            console.print("\n[bold]Measuring latency...[/bold]")
        elif state is SessionState.MEASURING_DOWNLOAD:
            print_latency(session.ping_ms)
            console.print("\n[bold]Testing download speed...[/bold]")
            progress.start("Downloading", session.downloader.duration_seconds)
        elif state is SessionState.MEASURING_UPLOAD:
            progress.stop()
            print_speed_result(session.download.speed_mbps, session.download_samples, "Download", "green")
            console.print("\n[bold]Estimating upload speed...[/bold]")
            progress.start("Uploading", session.estimator.duration_seconds)
        elif state is SessionState.ANALYZING:
            progress.stop()
            print_speed_result(
                session.upload.speed_mbps, session.upload_samples, "Upload", "blue", estimated=True
            )
            if session.analyst is not None:
                console.print("\n[dim]Analyzing results...[/dim]")
        elif state is SessionState.FAILED:
            progress.stop()

    session.on_state_change = _on_state
    session.on_sample = progress.update


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_measurement(
    session: MeasurementSession,
    *,
    json_output: bool = False,
    output_file: Optional[str] = None,
    simple: bool = False,
    network_info: Optional[NetworkInfo] = None,
) -> Dict[str, Any]:
    """Run one session and report it.  Returns a JSON-serialisable dict."""

    show_ui = not json_output and not simple

    if show_ui:
        print_header()
        _attach_dashboard(session)

    # -- Network info ---------------------------------------------------
    if network_info is None:
        if show_ui:
            console.print("[dim]Fetching network info...[/dim]")
        network_info = await fetch_network_info()
    if show_ui:
        print_network_info(network_info)

    # -- Measurement ----------------------------------------------------
    result = await session.run()

    # -- Report ---------------------------------------------------------
    if result is None:
        if show_ui:
            print_error(session.failure_reason)
        elif simple:
            print(f"Error: {session.failure_reason}", file=sys.stderr)
    elif show_ui:
        print_final_results(result)
        print_analysis(session.analysis, session.analysis_error)
    elif simple:
        print(format_text_result(result.ping_ms, result.download_mbps, result.upload_mbps, network_info))
        if session.analysis:
            print(session.analysis.summary)

    result_json = create_result_json(session, network_info)

    if json_output:
        print(json.dumps(result_json, indent=2))

    if output_file:
        save_json(result_json, output_file)
        if not json_output:
            console.print(f"\n[green]Results saved to:[/green] {output_file}")

    return result_json


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    config = load_config()

    parser = argparse.ArgumentParser(
        description="NeuroSpeed -- network speed testing with live readings",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # Test parameters
    parser.add_argument("--download-duration", type=float, default=config["download_duration"], metavar="SECS", help="Download window in seconds (default: %(default)s)")
    parser.add_argument("--upload-duration", type=float, default=config["upload_duration"], metavar="SECS", help="Upload estimate duration in seconds (default: %(default)s)")
    parser.add_argument("--connections", type=int, default=config["connections"], metavar="N", help="Concurrent download loops (default: %(default)s)")
    parser.add_argument("--ping-timeout", type=float, default=config["ping_timeout"], metavar="SECS", help="Latency probe deadline (default: %(default)s)")
    parser.add_argument("--no-analysis", action="store_true", default=not config["analysis"], help="Skip the AI assessment")

    # Repeat mode
    parser.add_argument("--repeat", type=int, default=1, metavar="N", help="Run the test N times (default: 1)")
    parser.add_argument("--interval", type=float, default=60.0, metavar="SECS", help="Seconds between repeated tests (default: 60)")

    args = parser.parse_args()
    configure_logging(args.verbose)

    # Validate
    try:
        _validate(
            download_duration=args.download_duration,
            upload_duration=args.upload_duration,
            connections=args.connections,
            ping_timeout=args.ping_timeout,
        )
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    if args.repeat < 1:
        console.print("[red]Error: --repeat must be >= 1[/red]")
        sys.exit(1)

    session = build_session(
        download_duration=args.download_duration,
        upload_duration=args.upload_duration,
        connections=args.connections,
        ping_timeout=args.ping_timeout,
        analysis=not args.no_analysis,
        gemini_model=config["gemini_model"],
    )

    failed = False
    try:
        for run_idx in range(args.repeat):
            if args.repeat > 1 and not args.json:
                console.print(f"\n[bold cyan]--- Run {run_idx + 1}/{args.repeat} ---[/bold cyan]")

            asyncio.run(
                run_measurement(
                    session,
                    json_output=args.json,
                    output_file=args.output,
                    simple=args.simple,
                )
            )
            failed = failed or session.state is SessionState.FAILED

            # Wait between runs (but not after the last one)
            if run_idx < args.repeat - 1:
                if not args.json:
                    console.print(f"[dim]Next run in {args.interval:.0f}s...[/dim]")
                time.sleep(args.interval)

    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as exc:
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
