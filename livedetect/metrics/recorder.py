"""
Metrics Recorder

Accumulates per-frame timing samples and computes latency/throughput
statistics on demand.

Storage is a rolling window of window_seconds * target_fps samples; the
oldest samples are evicted on overflow. Drop timestamps older than
window_seconds are evicted as new drops arrive. All methods share one lock, so
reset() is atomic with respect to concurrent record() calls.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Optional

from livedetect.config import MetricsConfig, settings
from livedetect.metrics.models import LatencyStats, MetricsSample, MetricsSnapshot
from livedetect.utils.timing import now_ms


logger = logging.getLogger(__name__)


class MetricsRecorder:

    def __init__(
        self,
        config: Optional[MetricsConfig] = None,
        target_fps: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config or settings.metrics
        self.target_fps = target_fps or settings.inference.target_fps
        self.max_samples = max(1, int(self.config.window_seconds * self.target_fps))

        self._clock = clock
        self._lock = threading.Lock()

        self._samples: deque[MetricsSample] = deque(maxlen=self.max_samples)
        # Drops can outpace target_fps, so they are bounded by age, not count
        self._drop_times: deque[int] = deque()
        self._window_ms = int(self.config.window_seconds * 1000)

        self.is_collecting = True
        self.start_ts = clock()

        # Lifetime counters (since start or last reset)
        self.total_frames = 0
        self.processed_frames = 0
        self.dropped_frames = 0

    # =========================================================================
    # RECORDING
    # =========================================================================

    def record(self, sample: MetricsSample) -> None:
        """Store one processed-frame sample."""
        with self._lock:
            if not self.is_collecting:
                return
            self._samples.append(sample)
            self.processed_frames += 1

    def record_received(self) -> None:
        """Count a frame arriving from the transport."""
        with self._lock:
            if self.is_collecting:
                self.total_frames += 1

    def record_dropped(self, *_args) -> None:
        """Count a frame dropped by the queue or by a detector failure."""
        with self._lock:
            if not self.is_collecting:
                return
            self.dropped_frames += 1
            ts = self._clock()
            self._drop_times.append(ts)
            while self._drop_times and ts - self._drop_times[0] > self._window_ms:
                self._drop_times.popleft()

    def start_collection(self) -> None:
        with self._lock:
            if self.is_collecting:
                return
            self.is_collecting = True
            self.start_ts = self._clock()
        logger.info("Metrics collection started")

    def stop_collection(self) -> None:
        with self._lock:
            self.is_collecting = False
        logger.info("Metrics collection stopped")

    def reset(self) -> None:
        """Clear all samples and counters and restart the collection clock."""
        with self._lock:
            self._samples.clear()
            self._drop_times.clear()
            self.total_frames = 0
            self.processed_frames = 0
            self.dropped_frames = 0
            self.start_ts = self._clock()
        logger.info("Metrics reset")

    # =========================================================================
    # REPORTING
    # =========================================================================

    def snapshot(self, duration_seconds: float = 30.0, now: Optional[int] = None) -> MetricsSnapshot:
        """
        Statistics over samples whose display_ts falls in the trailing window.

        Args:
            duration_seconds: Window length
            now: Window end in ms (defaults to the recorder clock)

        Returns:
            MetricsSnapshot; latency stats are zero when the window is empty
        """
        with self._lock:
            end = now if now is not None else self._clock()
            start = end - int(duration_seconds * 1000)

            samples = [s for s in self._samples if start <= s.display_ts <= end]
            dropped = sum(1 for ts in self._drop_times if start <= ts <= end)
            collecting_since = self.start_ts

        # FPS over the part of the window the recorder has actually been running
        elapsed_s = min(float(duration_seconds), max(0.0, (end - collecting_since) / 1000.0))
        processed = len(samples)
        fps = processed / elapsed_s if elapsed_s > 0 else 0.0

        detections_total = sum(s.detection_count for s in samples)

        return MetricsSnapshot(
            timestamp=datetime.now(timezone.utc).isoformat(),
            duration=elapsed_s,
            frames={
                "total": processed + dropped,
                "processed": processed,
                "dropped": dropped,
            },
            fps={"processed": fps, "target": float(self.target_fps)},
            latency={
                "e2e": LatencyStats.from_values([s.e2e_latency for s in samples]),
                "server": LatencyStats.from_values([s.server_latency for s in samples]),
                "network": LatencyStats.from_values([s.network_latency for s in samples]),
            },
            detections={
                "total": detections_total,
                "average": detections_total / processed if processed else 0.0,
            },
            samples=processed,
        )

    def summary(self) -> dict:
        """Lifetime counters plus current-window FPS and e2e latency."""
        snap = self.snapshot(self.config.window_seconds)
        with self._lock:
            duration_s = max(0.0, (self._clock() - self.start_ts) / 1000.0)
            return {
                "is_collecting": self.is_collecting,
                "duration": duration_s,
                "fps": snap.fps["processed"],
                "total_frames": self.total_frames,
                "processed_frames": self.processed_frames,
                "dropped_frames": self.dropped_frames,
                "window_size": len(self._samples),
                "latency": {
                    "median": snap.latency["e2e"].median,
                    "p95": snap.latency["e2e"].p95,
                },
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
