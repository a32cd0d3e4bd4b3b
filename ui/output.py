"""
Output formatting -- JSON export, plain text, and CSV.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List

from probe.constants import BYTES_PER_MB
from probe.stats import format_rate, format_with_thousands


def create_result_json(url: str, download_results: Dict[str, Any]) -> Dict[str, Any]:
    """Build a JSON-serialisable record for one probed URL."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "url": url,
        "download": {
            "bytes": download_results.get("downloaded_bytes", 0),
            "mb": download_results.get("downloaded_mb", 0),
            "elapsed_ms": download_results.get("elapsed_ms", 0),
            "max_rate_mbs": download_results.get("max_rate_mbs", 0),
            "max_rate_mbit": download_results.get("max_rate_mbit", 0),
            "stop_reason": download_results.get("stop_reason", ""),
            "samples": download_results.get("samples", []),
        },
    }


def save_json(result: Any, filepath: str) -> None:
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


# ---------------------------------------------------------------------------
# Plain-text / CSV helpers
# ---------------------------------------------------------------------------

def format_text_result(url: str, downloaded_bytes: int, elapsed_ms: int, max_rate_mbs: float) -> str:
    sep = "=" * 50
    mid = "-" * 50
    return (
        f"{sep}\n"
        f"Speed Probe Results\n"
        f"{sep}\n"
        f"URL: {url}\n"
        f"{mid}\n"
        f"Downloaded: {downloaded_bytes / BYTES_PER_MB:.2f} MB "
        f"({format_with_thousands(downloaded_bytes)} bytes)\n"
        f"Time: {format_with_thousands(elapsed_ms)} ms\n"
        f"Speed: {format_rate(max_rate_mbs)}\n"
        f"{sep}"
    )


def _csv_escape(value: str) -> str:
    """Quote a CSV field if it contains a comma, quote, or newline."""
    if any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_csv_header() -> str:
    return "timestamp,url,downloaded_bytes,elapsed_ms,max_rate_mbs,stop_reason"


def format_csv_row(
    url: str,
    downloaded_bytes: int,
    elapsed_ms: int,
    max_rate_mbs: float,
    stop_reason: str,
) -> str:
    ts = datetime.now(timezone.utc).isoformat()
    fields: List[str] = [
        ts,
        _csv_escape(url),
        str(downloaded_bytes),
        str(elapsed_ms),
        f"{max_rate_mbs:.2f}",
        _csv_escape(stop_reason),
    ]
    return ",".join(fields)
