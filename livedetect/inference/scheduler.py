"""
Inference Scheduler

Pulls the freshest frame from the FrameIngestQueue at a fixed cadence
(period = 1 / target_fps) and runs it through the Detector.

Admission control:
- At most one Detector call is in flight. A tick that finds a call in
  flight is skipped (BUSY), it never queues behind it.
- The in-flight flag is a plain boolean guarded by a lock.

Failure handling:
- Each Detector call runs in a worker thread and is waited on for at most
  detector_timeout_s. On expiry the call is abandoned (its result is
  discarded whenever it arrives) and the scheduler is free again.
- Timeouts and Detector exceptions drop the frame (on_drop) and skip the
  completion callback. Nothing raised by the Detector or the callback
  escapes tick().
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from livedetect.config import InferenceConfig, settings
from livedetect.detection.base import Detector
from livedetect.detection.models import RawDetection
from livedetect.errors import DetectorTimeoutError
from livedetect.ingestion.frame_queue import FrameIngestQueue
from livedetect.ingestion.models import Frame
from livedetect.utils.timing import now_ms


logger = logging.getLogger(__name__)

ResultCallback = Callable[[Frame, list[RawDetection], int], None]


class TickOutcome(str, Enum):
    BUSY = "busy"  # Detector call already in flight
    IDLE = "idle"  # Nothing pending
    PROCESSED = "processed"
    TIMEOUT = "timeout"
    FAILED = "failed"


class _DetectorCall:
    """One Detector invocation running in its own daemon thread."""

    def __init__(self, detector: Detector, frame: Frame):
        self.frame = frame
        self.detections: Optional[list[RawDetection]] = None
        self.error: Optional[BaseException] = None
        self._done = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(detector,),
            name=f"DetectorCall-{frame.frame_id}",
            daemon=True,
        )

    def _run(self, detector: Detector) -> None:
        try:
            self.detections = list(detector.detect(self.frame.payload))
        except Exception as e:
            self.error = e
        finally:
            self._done.set()

    def run(self, timeout: float) -> list[RawDetection]:
        """Start the call and wait for it. Raises DetectorTimeoutError or the Detector's error."""
        self._thread.start()
        if not self._done.wait(timeout):
            raise DetectorTimeoutError(
                f"Detector did not answer within {timeout:.2f}s for frame {self.frame.frame_id!r}"
            )
        if self.error is not None:
            raise self.error
        return self.detections


class InferenceScheduler:
    """
    Fixed-rate consumer of the frame queue.

    tick() performs one scheduling step and can be driven directly (tests,
    single-threaded hosts). start() runs ticks on a background thread.

    Threading:
        - start() spawns a daemon thread that ticks every period
        - stop() signals it and joins, bounded by detector_timeout_s + timeout
    """

    def __init__(
        self,
        queue: FrameIngestQueue,
        detector: Detector,
        on_result: ResultCallback,
        config: Optional[InferenceConfig] = None,
        on_drop: Optional[Callable[[Frame], None]] = None,
    ):
        self.queue = queue
        self.detector = detector
        self.on_result = on_result
        self.on_drop = on_drop
        self.config = config or settings.inference

        self.period_s = self.config.period_s
        self.timeout_s = self.config.detector_timeout_s

        self._lock = threading.Lock()
        self._in_flight = False

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False

        # Statistics
        self.stats = {
            "ticks": 0,
            "busy": 0,
            "idle": 0,
            "processed": 0,
            "timeouts": 0,
            "failures": 0,
        }

    # =========================================================================
    # SCHEDULING STEP
    # =========================================================================

    def tick(self) -> TickOutcome:
        with self._lock:
            self.stats["ticks"] += 1
            if self._in_flight:
                self.stats["busy"] += 1
                return TickOutcome.BUSY
            self._in_flight = True

        # Dequeue outside the lock so queue callbacks never nest under it
        frame = self.queue.try_dequeue_latest()
        if frame is None:
            with self._lock:
                self._in_flight = False
                self.stats["idle"] += 1
            return TickOutcome.IDLE

        try:
            return self._process(frame)
        finally:
            with self._lock:
                self._in_flight = False

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def _process(self, frame: Frame) -> TickOutcome:
        try:
            detections = _DetectorCall(self.detector, frame).run(self.timeout_s)
        except DetectorTimeoutError as e:
            self.stats["timeouts"] += 1
            logger.warning("%s - dropping frame", e)
            self._drop(frame)
            return TickOutcome.TIMEOUT
        except Exception as e:
            self.stats["failures"] += 1
            logger.error("Detector failed on frame %r: %s", frame.frame_id, e)
            self._drop(frame)
            return TickOutcome.FAILED

        inference_ts = now_ms()

        try:
            self.on_result(frame, detections, inference_ts)
        except Exception as e:
            self.stats["failures"] += 1
            logger.error(
                "Result handler failed for frame %r: %s", frame.frame_id, e, exc_info=True
            )
            return TickOutcome.FAILED

        self.stats["processed"] += 1
        logger.debug(
            "Frame %r: %d detections (%dms after arrival)",
            frame.frame_id,
            len(detections),
            inference_ts - frame.enqueue_ts,
        )
        return TickOutcome.PROCESSED

    def _drop(self, frame: Frame) -> None:
        if self.on_drop is None:
            return
        try:
            self.on_drop(frame)
        except Exception as e:
            logger.error("on_drop callback failed: %s", e)

    # =========================================================================
    # BACKGROUND LOOP
    # =========================================================================

    def start(self) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._running = True

        self._thread = threading.Thread(
            target=self._run, name="InferenceScheduler", daemon=True
        )
        self._thread.start()

        logger.info(
            "Started inference scheduler (%.1f fps, period=%.1fms, timeout=%.2fs, detector=%s)",
            self.config.target_fps,
            self.period_s * 1000,
            self.timeout_s,
            self.detector.name,
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop ticking. Queue, tracks and metrics are left untouched."""
        if not self._running:
            return

        logger.info("Stopping inference scheduler")

        self._stop_event.set()
        self._running = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=self.timeout_s + timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread did not exit in time")

        logger.info(
            "Inference scheduler stopped: ticks=%d processed=%d busy=%d idle=%d timeouts=%d failures=%d",
            self.stats["ticks"],
            self.stats["processed"],
            self.stats["busy"],
            self.stats["idle"],
            self.stats["timeouts"],
            self.stats["failures"],
        )

    def is_running(self) -> bool:
        return self._running

    def _run(self) -> None:
        logger.info("Scheduler thread started")

        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self.tick()

            next_tick += self.period_s
            now = time.monotonic()
            if now > next_tick:
                # A slow Detector call swallowed whole periods: those ticks were skipped
                missed = int((now - next_tick) / self.period_s) + 1
                with self._lock:
                    self.stats["ticks"] += missed
                    self.stats["busy"] += missed
                next_tick += missed * self.period_s

            self._stop_event.wait(max(0.0, next_tick - time.monotonic()))

        logger.info("Scheduler thread exiting")
