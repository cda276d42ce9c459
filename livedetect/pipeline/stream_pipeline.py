"""
Stream Pipeline

One instance per active stream. Wires the stages together:

    on_frame -> FrameIngestQueue -> InferenceScheduler -> Detector
             -> ObjectTracker -> DetectionResult -> listeners + MetricsRecorder

The tracker is updated only on the scheduler's completion path, which is
serial. A pipeline lock keeps API readers (tracks, stats, restart) off a
cycle in progress.
"""

import logging
import threading
from collections import deque
from typing import Callable, Optional

from livedetect.config import InferenceConfig, TrackerConfig, settings
from livedetect.detection.base import Detector
from livedetect.detection.models import RawDetection, validate_detection
from livedetect.errors import MalformedDetectionError, TrackerInvariantError
from livedetect.inference.scheduler import InferenceScheduler, TickOutcome
from livedetect.ingestion.frame_queue import FrameIngestQueue
from livedetect.ingestion.models import Frame, FrameId
from livedetect.metrics.models import MetricsSample
from livedetect.metrics.recorder import MetricsRecorder
from livedetect.metrics.reporter import MetricsReporter
from livedetect.pipeline.results import DetectionResult
from livedetect.tracking.models import TrackSnapshot
from livedetect.tracking.tracker import ObjectTracker
from livedetect.utils.timing import now_ms


logger = logging.getLogger(__name__)

ResultListener = Callable[[DetectionResult], None]

# Payload sizes kept for the bandwidth estimate
PAYLOAD_WINDOW = 100


class StreamPipeline:
    """
    Real-time detection pipeline for a single stream.

    Args:
        detector: Detector backing the scheduler
        tracking_enabled: Attach an ObjectTracker (defaults to TRACKING_ENABLED)
        recorder: MetricsRecorder to feed (a new one is created if omitted)
        include_trajectory: Default for whether broadcast result records carry
            track history (viewers may override it)
        report_metrics: Run a MetricsReporter while started
        tracker_config: Overrides settings.tracking
        inference_config: Overrides settings.inference (fps, detector timeout)
    """

    def __init__(
        self,
        detector: Detector,
        tracking_enabled: Optional[bool] = None,
        recorder: Optional[MetricsRecorder] = None,
        include_trajectory: bool = False,
        report_metrics: bool = False,
        tracker_config: Optional[TrackerConfig] = None,
        inference_config: Optional[InferenceConfig] = None,
    ):
        self.detector = detector
        self.include_trajectory = include_trajectory

        if tracking_enabled is None:
            tracking_enabled = settings.tracking.enabled
        self.tracker: Optional[ObjectTracker] = ObjectTracker(tracker_config) if tracking_enabled else None
        # Serializes the completion path against API readers
        self._tracker_lock = threading.Lock()

        inference_config = inference_config or settings.inference
        self.recorder = recorder or MetricsRecorder(target_fps=inference_config.target_fps)
        self.queue = FrameIngestQueue(on_drop=self.recorder.record_dropped)
        self.scheduler = InferenceScheduler(
            self.queue,
            detector,
            on_result=self._handle_result,
            config=inference_config,
            on_drop=self.recorder.record_dropped,
        )
        self.reporter = MetricsReporter(self.recorder) if report_metrics else None

        self._listeners: list[ResultListener] = []
        self._listeners_lock = threading.Lock()

        self._latest: Optional[DetectionResult] = None
        self._payload_sizes: deque[int] = deque(maxlen=PAYLOAD_WINDOW)

        self.frames_received = 0
        self.results_published = 0
        self.detections_rejected = 0

    # =========================================================================
    # INGEST
    # =========================================================================

    def on_frame(self, frame_id: FrameId, image_bytes: bytes, capture_ts: int) -> Frame:
        """Transport callback, the only way frames enter the queue."""
        frame = Frame(frame_id=frame_id, payload=image_bytes, capture_ts=int(capture_ts))

        self.frames_received += 1
        self._payload_sizes.append(frame.size_bytes)
        self.recorder.record_received()

        self.queue.enqueue(frame)
        return frame

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        self.scheduler.start()
        if self.reporter is not None:
            self.reporter.start()
        logger.info(
            "Pipeline started (detector=%s, tracking=%s)",
            self.detector.name,
            "on" if self.tracker else "off",
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduling. Tracks and the metrics window stay available for inspection."""
        self.scheduler.stop(timeout=timeout)
        if self.reporter is not None:
            self.reporter.stop(timeout=timeout)
        logger.info(
            "Pipeline stopped: received=%d published=%d dropped=%d",
            self.frames_received,
            self.results_published,
            self.queue.dropped,
        )

    def tick(self) -> TickOutcome:
        return self.scheduler.tick()

    def restart_tracking(self) -> None:
        if self.tracker is None:
            return
        with self._tracker_lock:
            self.tracker.reset()

    def confirmed_tracks(self) -> list[TrackSnapshot]:
        """
        Current confirmed tracks, safe to call from any thread.

        Raises:
            TrackerInvariantError: While the tracker is faulted
        """
        if self.tracker is None:
            return []
        with self._tracker_lock:
            if self.tracker.faulted:
                raise TrackerInvariantError(
                    "Tracker faulted, restart tracking to resume"
                )
            return self.tracker.confirmed_tracks()

    # =========================================================================
    # RESULTS
    # =========================================================================

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """
        Register a result listener.

        Returns:
            Function that removes the listener again
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def latest_result(self) -> Optional[DetectionResult]:
        return self._latest

    def _handle_result(
        self, frame: Frame, detections: list[RawDetection], inference_ts: int
    ) -> None:
        if self.tracker is not None:
            entries = self._track(detections)
        else:
            entries = self._validate(detections)

        result = DetectionResult(
            frame_id=frame.frame_id,
            capture_ts=frame.capture_ts,
            recv_ts=frame.enqueue_ts,
            inference_ts=inference_ts,
            detections=tuple(entries),
        )
        self._publish(result)

        self.recorder.record(
            MetricsSample(
                frame_id=frame.frame_id,
                capture_ts=frame.capture_ts,
                recv_ts=frame.enqueue_ts,
                inference_ts=inference_ts,
                display_ts=now_ms(),
                detection_count=len(entries),
            )
        )

    def _track(self, detections: list[RawDetection]) -> list[TrackSnapshot]:
        with self._tracker_lock:
            self.tracker.update(detections)
            try:
                return self.tracker.confirmed_tracks()
            except TrackerInvariantError as e:
                logger.error("Tracking disabled until restart: %s", e)
                return []

    def _validate(self, detections: list[RawDetection]) -> list[RawDetection]:
        valid = []
        for det in detections:
            try:
                valid.append(validate_detection(det))
            except MalformedDetectionError as e:
                self.detections_rejected += 1
                logger.warning("Rejected malformed detection: %s", e)
        return valid

    def _publish(self, result: DetectionResult) -> None:
        self._latest = result
        self.results_published += 1

        with self._listeners_lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(result)
            except Exception as e:
                logger.error("Result listener failed: %s", e, exc_info=True)

    # =========================================================================
    # STATS
    # =========================================================================

    @property
    def average_payload_bytes(self) -> float:
        sizes = list(self._payload_sizes)
        return sum(sizes) / len(sizes) if sizes else 0.0

    @property
    def tracking_enabled(self) -> bool:
        return self.tracker is not None

    def stats(self) -> dict:
        return {
            "frames_received": self.frames_received,
            "results_published": self.results_published,
            "detections_rejected": self.detections_rejected,
            "queue": dict(self.queue.stats, pending=len(self.queue)),
            "scheduler": dict(self.scheduler.stats, running=self.scheduler.is_running()),
            "detector": self.detector.get_stats(),
            "tracker": self._tracker_stats(),
            "average_payload_bytes": self.average_payload_bytes,
        }

    def _tracker_stats(self) -> Optional[dict]:
        if self.tracker is None:
            return None
        with self._tracker_lock:
            return self.tracker.stats()
