"""UI layer -- Rich dashboard, logging, and output formatters."""

from .dashboard import (
    ProgressDisplay,
    console,
    print_analysis,
    print_error,
    print_final_results,
    print_header,
    print_latency,
    print_network_info,
    print_speed_result,
    sparkline,
)
from .logging_setup import configure_logging
from .output import create_result_json, format_text_result, save_json

__all__ = [
    "ProgressDisplay",
    "configure_logging",
    "console",
    "create_result_json",
    "format_text_result",
    "print_analysis",
    "print_error",
    "print_final_results",
    "print_header",
    "print_latency",
    "print_network_info",
    "print_speed_result",
    "save_json",
    "sparkline",
]
