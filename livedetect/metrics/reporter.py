import logging
import threading
from typing import Optional

from livedetect.metrics.recorder import MetricsRecorder


logger = logging.getLogger(__name__)


class MetricsReporter:
    """
    Logs a one-line metrics summary at a fixed interval.

    Threading:
        - start() spawns a daemon thread
        - stop() signals it to exit and joins
    """

    def __init__(self, recorder: MetricsRecorder, interval_s: Optional[float] = None):
        self.recorder = recorder
        self.interval_s = interval_s or recorder.config.report_interval_s

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False

        self.reports = 0

    def start(self) -> None:
        if self._running:
            logger.warning("Metrics reporter already running")
            return

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._run, name="MetricsReporter", daemon=True
        )
        self._thread.start()
        logger.info("Started metrics reporter (interval=%.1fs)", self.interval_s)

    def stop(self, timeout: float = 5.0) -> None:
        if not self._running:
            return

        self._stop_event.set()
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Metrics reporter stopped after %d reports", self.reports)

    def is_running(self) -> bool:
        return self._running

    def report_once(self) -> dict:
        summary = self.recorder.summary()
        logger.info(
            "Metrics: fps=%.2f processed=%d dropped=%d e2e=%.0fms (median) p95=%.0fms duration=%.0fs",
            summary["fps"],
            summary["processed_frames"],
            summary["dropped_frames"],
            summary["latency"]["median"],
            summary["latency"]["p95"],
            summary["duration"],
        )
        self.reports += 1
        return summary

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_s):
            try:
                self.report_once()
            except Exception as e:
                logger.error("Metrics report failed: %s", e, exc_info=True)
