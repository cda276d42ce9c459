"""
Ingestion Stage Data Models

Key Types:
- Frame: one arrival unit from the remote client (opaque image bytes + timestamps)
"""

from dataclasses import dataclass, field
from typing import Union

from livedetect.utils.timing import now_ms

FrameId = Union[str, int]


@dataclass(frozen=True)
class Frame:
    """
    A single frame received from the client.

    Immutable after creation. The queue owns it until it is handed to the
    Detector or dropped.

    Attributes:
        frame_id: Caller-supplied opaque token (str or int)
        payload: Encoded image bytes (JPEG/PNG), never decoded by the queue
        capture_ts: Capture time in ms, assigned by the sender
        enqueue_ts: Arrival time in ms, assigned on arrival
    """

    frame_id: FrameId
    payload: bytes
    capture_ts: int
    enqueue_ts: int = field(default_factory=now_ms)

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def __repr__(self) -> str:
        return (
            f"Frame(id={self.frame_id!r}, size={self.size_bytes}B, "
            f"capture_ts={self.capture_ts}, enqueue_ts={self.enqueue_ts})"
        )
