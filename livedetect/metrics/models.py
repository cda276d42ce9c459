"""
Metrics Data Models

Key Types:
- MetricsSample: timing of one processed frame (all timestamps in ms)
- LatencyStats: median/p95/min/max/avg of one latency series
- MetricsSnapshot: windowed report returned by MetricsRecorder.snapshot()
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from livedetect.ingestion.models import FrameId


@dataclass(frozen=True)
class MetricsSample:
    frame_id: FrameId
    capture_ts: int
    recv_ts: int
    inference_ts: int
    display_ts: int
    detection_count: int = 0

    @property
    def e2e_latency(self) -> int:
        return self.display_ts - self.capture_ts

    @property
    def server_latency(self) -> int:
        return self.inference_ts - self.recv_ts

    @property
    def network_latency(self) -> int:
        return self.recv_ts - self.capture_ts


@dataclass(frozen=True)
class LatencyStats:
    median: float = 0.0
    p95: float = 0.0
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0

    @classmethod
    def from_values(cls, values: list[float]) -> "LatencyStats":
        """
        Sort once and index: median = sorted[n // 2], p95 = sorted[floor(0.95 n)].

        Returns all zeros for an empty series.
        """
        if not values:
            return cls()

        ordered = sorted(values)
        n = len(ordered)
        return cls(
            median=float(ordered[n // 2]),
            p95=float(ordered[min(int(n * 0.95), n - 1)]),
            min=float(ordered[0]),
            max=float(ordered[-1]),
            avg=float(sum(ordered) / n),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Windowed metrics report.

    Attributes:
        duration: Seconds actually covered by the window
        frames: {"total", "processed", "dropped"} within the window
        fps: {"processed", "target"}
        latency: {"e2e", "server", "network"} -> LatencyStats
        detections: {"total", "average"} per processed frame
    """

    timestamp: str
    duration: float
    frames: dict[str, int]
    fps: dict[str, float]
    latency: dict[str, LatencyStats]
    detections: dict[str, float]
    samples: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra")
        data.update(extra)
        return data
