"""
Result broadcaster

Bridges result records from the scheduler thread into the asyncio event
loop and fans them out to connected viewer WebSockets.

Each viewer has a small bounded queue. A slow viewer loses its oldest
pending records, it never slows the pipeline or the other viewers.
"""

import asyncio
import logging
from typing import Callable, Optional

from livedetect.pipeline.results import DetectionResult
from livedetect.pipeline.stream_pipeline import StreamPipeline


logger = logging.getLogger(__name__)

CLIENT_QUEUE_SIZE = 8


class ResultBroadcaster:
    """
    Args:
        pipeline: Pipeline whose results are broadcast
        include_trajectory: Default for viewers that do not ask either way
            (defaults to pipeline.include_trajectory)
    """

    def __init__(self, pipeline: StreamPipeline, include_trajectory: Optional[bool] = None):
        self.pipeline = pipeline
        if include_trajectory is None:
            include_trajectory = pipeline.include_trajectory
        self.include_trajectory = include_trajectory

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        # Viewer queue -> wants trajectory
        self._clients: dict[asyncio.Queue, bool] = {}

        self.records_sent = 0
        self.records_dropped = 0

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start forwarding pipeline results onto loop."""
        self._loop = loop
        self._unsubscribe = self.pipeline.subscribe(self._on_result)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._loop = None

    def register(self, include_trajectory: Optional[bool] = None) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=CLIENT_QUEUE_SIZE)
        if include_trajectory is None:
            include_trajectory = self.include_trajectory
        self._clients[queue] = include_trajectory
        logger.info(
            "Viewer connected (%d total, trajectory=%s)", len(self._clients), include_trajectory
        )
        return queue

    def unregister(self, queue: asyncio.Queue) -> None:
        self._clients.pop(queue, None)
        logger.info("Viewer disconnected (%d total)", len(self._clients))

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def _on_result(self, result: DetectionResult) -> None:
        # Scheduler thread
        loop = self._loop
        if loop is None or loop.is_closed():
            return

        # One payload per shape, serialized off the event loop
        payloads = {
            False: result.to_dict(include_trajectory=False),
            True: result.to_dict(include_trajectory=True),
        }
        try:
            loop.call_soon_threadsafe(self._fan_out, payloads)
        except RuntimeError:
            # Loop closed between the check and the call (shutdown)
            logger.debug("Event loop closed, result %r not broadcast", result.frame_id)

    def _fan_out(self, payloads: dict[bool, dict]) -> None:
        # Event loop thread
        for queue, include_trajectory in list(self._clients.items()):
            if queue.full():
                queue.get_nowait()
                self.records_dropped += 1
            queue.put_nowait(payloads[include_trajectory])
            self.records_sent += 1
