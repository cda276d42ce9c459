"""
Ingestion Stage

Receives frames from the transport and buffers only the freshest one.

Components:
- models: Frame data structure
- frame_queue: keep-latest FrameIngestQueue (drop-oldest backpressure)
"""

from livedetect.ingestion.models import Frame, FrameId
from livedetect.ingestion.frame_queue import FrameIngestQueue

__all__ = [
    "Frame",
    "FrameId",
    "FrameIngestQueue",
]
