"""
Rich-based terminal dashboard for measurement sessions.

All formatting helpers live in ``netspeed.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

import time
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from netspeed.models import AnalysisSummary, MeasurementResult, SpeedSample
from netspeed.netinfo import NetworkInfo
from netspeed.stats import format_latency, format_speed

console = Console()

CHART_POINTS = 50  # samples kept for the speed-over-time line


# ---------------------------------------------------------------------------
# Sparkline helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def sparkline(values: List[float]) -> str:
    """Single-line Unicode chart of *values*."""
    if not values:
        return "No data"
    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        _BARS[min(int((v - lo) / span * (len(_BARS) - 1)), len(_BARS) - 1)]
        for v in values
    )


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Neuro[/bold cyan][bold white]Speed[/bold white]\n"
            "[dim]Check your real internet speed[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_network_info(info: NetworkInfo) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("IP Address:", f"{info.ip} [dim]({info.address_family})[/dim]")
    table.add_row("Provider:", info.isp)
    table.add_row("Location:", info.location)
    console.print(Panel(table, title="[bold]Network[/bold]", border_style="blue"))


def print_latency(ping_ms: float) -> None:
    console.print(f"  Ping: [bold yellow]{format_latency(ping_ms)}[/bold yellow]")


def print_speed_result(
    speed_mbps: float,
    samples: List[SpeedSample],
    title: str,
    color: str = "green",
    estimated: bool = False,
) -> None:
    """Print a download or upload figure with its speed-over-time line."""
    tag = " [dim](estimated)[/dim]" if estimated else ""
    console.print(f"  {title}: [bold {color}]{format_speed(speed_mbps)}[/bold {color}]{tag}")

    values = [s.instantaneous_mbps for s in samples[-CHART_POINTS:]]
    if values:
        console.print(
            Panel(
                f"[{color}]{sparkline(values)}[/{color}]\n"
                f"[dim]Min: {min(values):.1f} Mbps  Max: {max(values):.1f} Mbps[/dim]",
                title="Speed Over Time",
            )
        )


def print_final_results(result: MeasurementResult) -> None:
    console.print()
    console.print(
        Panel.fit(
            f"[bold white]   Ping:[/bold white]  [bold yellow]{format_latency(result.ping_ms)}[/bold yellow]\n"
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(result.download_mbps)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(result.upload_mbps)}[/bold blue]"
            f"  [dim](estimated)[/dim]",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )


def print_analysis(analysis: Optional[AnalysisSummary], error: Optional[str] = None) -> None:
    if analysis is None:
        console.print(f"[dim]AI analysis unavailable{': ' + error if error else ''}[/dim]")
        return

    table = Table(show_header=False, box=box.SIMPLE, padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Streaming", analysis.streaming)
    table.add_row("Gaming", analysis.gaming)
    table.add_row("Video calls", analysis.video_calls)
    console.print(
        Panel(
            table,
            title="[bold]AI Analysis[/bold]",
            subtitle=analysis.summary,
            border_style="magenta",
        )
    )


def print_error(reason: str) -> None:
    console.print(Panel(f"[red]{reason}[/red]", title="[bold red]Test Failed[/bold red]", border_style="red"))


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar during the download / upload phases."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None
        self._started = 0.0
        self._duration = 1.0

    def start(self, description: str, duration_seconds: float) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100, speed="...")
        self._started = time.perf_counter()
        self._duration = max(duration_seconds, 0.001)

    def update(self, sample: SpeedSample) -> None:
        if self._task_id is None:
            return
        elapsed = time.perf_counter() - self._started
        completed = min(elapsed / self._duration, 1.0) * 100
        self.progress.update(
            self._task_id,
            completed=completed,
            speed=format_speed(sample.instantaneous_mbps),
        )

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=100)
        self.progress.stop()
        self._task_id = None
