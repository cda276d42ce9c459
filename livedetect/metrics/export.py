"""
Metrics report export (JSON file, CSV row).
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from livedetect.config import settings


logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Timestamp",
    "Duration (s)",
    "Mode",
    "Total Frames",
    "Processed Frames",
    "FPS",
    "E2E Latency Median (ms)",
    "E2E Latency P95 (ms)",
    "Server Latency Median (ms)",
    "Network Latency Median (ms)",
    "Uplink (kbps)",
    "Downlink (kbps)",
    "Total Detections",
    "Avg Detections per Frame",
]


def report_to_csv(report: dict[str, Any]) -> str:
    """Header line plus one data row for a metrics report dict."""
    latency = report["latency"]
    row = [
        report["timestamp"],
        f"{report['duration']:.2f}",
        report.get("mode", ""),
        report["frames"]["total"],
        report["frames"]["processed"],
        f"{report['fps']['processed']:.2f}",
        f"{latency['e2e']['median']:.0f}",
        f"{latency['e2e']['p95']:.0f}",
        f"{latency['server']['median']:.0f}",
        f"{latency['network']['median']:.0f}",
        report.get("bandwidth", {}).get("uplink_kbps", 0),
        report.get("bandwidth", {}).get("downlink_kbps", 0),
        report["detections"]["total"],
        f"{report['detections']['average']:.2f}",
    ]
    return ",".join(CSV_HEADERS) + "\n" + ",".join(str(v) for v in row)


def save_report(
    report: dict[str, Any],
    filename: str = "metrics.json",
    results_dir: Optional[Path] = None,
) -> Path:
    """
    Write a report as pretty JSON.

    Only the file name part of filename is used, so callers cannot write
    outside results_dir.
    """
    directory = Path(results_dir) if results_dir else settings.results_dir
    directory.mkdir(parents=True, exist_ok=True)

    output_path = directory / Path(filename).name
    output_path.write_text(json.dumps(report, indent=2, default=str))
    logger.info("Metrics saved to %s", output_path)
    return output_path
