"""
Metrics

Latency and throughput accounting fed by the pipeline's result records.

Components:
- models: MetricsSample, LatencyStats, MetricsSnapshot
- recorder: MetricsRecorder (rolling window, snapshot, reset)
- reporter: MetricsReporter (periodic log line)
- export: report_to_csv, save_report
"""

from livedetect.metrics.models import LatencyStats, MetricsSample, MetricsSnapshot
from livedetect.metrics.recorder import MetricsRecorder
from livedetect.metrics.reporter import MetricsReporter
from livedetect.metrics.export import report_to_csv, save_report

__all__ = [
    "LatencyStats",
    "MetricsSample",
    "MetricsSnapshot",
    "MetricsRecorder",
    "MetricsReporter",
    "report_to_csv",
    "save_report",
]
