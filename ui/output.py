"""
Output formatting -- JSON export and plain text.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from netspeed.netinfo import NetworkInfo
from netspeed.session import MeasurementSession


def create_result_json(
    session: MeasurementSession,
    network_info: Optional[NetworkInfo] = None,
) -> Dict[str, Any]:
    """Build a JSON-serialisable dict describing *session*'s last run."""
    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "state": session.state.value,
        "ping_ms": session.ping_ms,
        "download": session.download.to_dict() if session.download else None,
        "upload": session.upload.to_dict() if session.upload else None,
    }

    if network_info is not None:
        result["network"] = network_info.to_dict()

    if session.result is not None:
        result["result"] = session.result.to_dict()
        result["analysis"] = session.analysis.to_dict() if session.analysis else None
        if session.analysis is None:
            result["analysis_error"] = session.analysis_error

    if session.failure_reason:
        result["error"] = session.failure_reason

    return result


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, filepath)
    except (IOError, OSError) as exc:
        # Clean up partial temp file
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise IOError(f"Failed to save JSON to {filepath}: {exc}") from exc


def format_text_result(
    ping_ms: float,
    download_mbps: float,
    upload_mbps: float,
    network_info: Optional[NetworkInfo] = None,
) -> str:
    sep = "=" * 50
    lines = [sep, "NeuroSpeed Results", sep]
    if network_info is not None:
        lines += [
            f"IP: {network_info.ip}",
            f"ISP: {network_info.isp}",
            f"Location: {network_info.location}",
            "-" * 50,
        ]
    lines += [
        f"Ping: {ping_ms:.0f} ms",
        f"Download: {download_mbps:.2f} Mbps",
        f"Upload: {upload_mbps:.2f} Mbps (estimated)",
        sep,
    ]
    return "\n".join(lines)
