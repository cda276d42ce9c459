"""
Per-frame detection result record (the payload viewers receive).
"""

from dataclasses import dataclass, field
from typing import Any, Union

from livedetect.detection.models import RawDetection
from livedetect.ingestion.models import FrameId
from livedetect.tracking.models import TrackSnapshot

ResultEntry = Union[RawDetection, TrackSnapshot]


@dataclass(frozen=True)
class DetectionResult:
    """
    Result of one processed frame.

    detections holds RawDetections when tracking is off and confirmed
    TrackSnapshots when it is on.
    """

    frame_id: FrameId
    capture_ts: int
    recv_ts: int
    inference_ts: int
    detections: tuple[ResultEntry, ...] = field(default_factory=tuple)

    def to_dict(self, include_trajectory: bool = False) -> dict[str, Any]:
        entries = []
        for entry in self.detections:
            if isinstance(entry, TrackSnapshot):
                entries.append(entry.to_dict(include_trajectory=include_trajectory))
            else:
                entries.append(entry.to_dict())

        return {
            "frame_id": self.frame_id,
            "capture_ts": self.capture_ts,
            "recv_ts": self.recv_ts,
            "inference_ts": self.inference_ts,
            "detections": entries,
        }
