"""
Frame Ingest Queue

Bounded keep-latest buffer between the frame transport (producer) and the
inference scheduler (consumer).

Only the freshest frame is useful for a real-time overlay, so the queue never
blocks and never grows: when full, the oldest pending frames are evicted and
counted as dropped. Staleness is worse than loss here; this must not become a
lossless FIFO.
"""

import logging
import threading
from collections import deque
from typing import Callable, Optional

from livedetect.config import settings
from livedetect.ingestion.models import Frame


logger = logging.getLogger(__name__)


class FrameIngestQueue:
    """
    Thread-safe keep-latest frame buffer.

    Safe for one producer (enqueue) and one consumer (try_dequeue_latest)
    running concurrently. Both operations are non-blocking.

    Every eviction increments the dropped counter and calls on_drop(frame),
    which the pipeline wires to MetricsRecorder.record_dropped.
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        on_drop: Optional[Callable[[Frame], None]] = None,
    ):
        self.capacity = capacity if capacity is not None else settings.ingestion.queue_capacity
        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")

        self.on_drop = on_drop

        self._frames: deque[Frame] = deque()
        self._lock = threading.Lock()

        # Statistics
        self.stats = {
            "enqueued": 0,
            "dequeued": 0,
            "dropped": 0,
        }

    def enqueue(self, frame: Frame) -> None:
        """
        Store a frame, evicting the oldest pending frames when at capacity.

        Args:
            frame: Newly arrived frame
        """
        with self._lock:
            evicted = []
            while len(self._frames) >= self.capacity:
                evicted.append(self._frames.popleft())

            self._frames.append(frame)
            self.stats["enqueued"] += 1
            self.stats["dropped"] += len(evicted)

        for old in evicted:
            logger.debug(
                "Dropped frame %r (superseded by %r)", old.frame_id, frame.frame_id
            )
            self._notify_drop(old)

    def try_dequeue_latest(self) -> Optional[Frame]:
        """
        Remove and return the newest pending frame.

        Older frames still pending (capacity > 1) are discarded and counted as
        dropped.

        Returns:
            The newest Frame, or None when the queue is empty
        """
        with self._lock:
            if not self._frames:
                return None

            latest = self._frames.pop()
            stale = list(self._frames)
            self._frames.clear()

            self.stats["dequeued"] += 1
            self.stats["dropped"] += len(stale)

        for old in stale:
            self._notify_drop(old)

        return latest

    def clear(self) -> int:
        """Discard all pending frames without counting them as drops. Returns how many were removed."""
        with self._lock:
            count = len(self._frames)
            self._frames.clear()
        return count

    @property
    def dropped(self) -> int:
        return self.stats["dropped"]

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def _notify_drop(self, frame: Frame) -> None:
        # Runs outside the queue lock
        if self.on_drop is None:
            return
        try:
            self.on_drop(frame)
        except Exception as e:
            logger.error("on_drop callback failed for frame %r: %s", frame.frame_id, e)
