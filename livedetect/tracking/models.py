"""
Tracking Stage Data Models

Key Types:
- TrackState: Tentative -> Confirmed -> Deleted lifecycle
- Track: mutable per-object state, owned by ObjectTracker only
- TrackSnapshot: immutable copy handed to callers
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from livedetect.detection.models import BoundingBox


class TrackState(str, Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


@dataclass
class Track:
    """
    Persistent identity of one object across frames.

    Attributes:
        track_id: Unique for the process lifetime, never reused
        label: Class label of the first detection
        score: Score of the latest associated detection
        current_box: Box of the latest associated detection
        predicted_box: current_box shifted by velocity, set before association
        velocity: (dx, dy) of the top-left corner per cycle
        hits: Number of associated detections (creation counts as one)
        age: Cycles since creation
        frames_since_update: Cycles since the last association
        state: Lifecycle state
        history: Past boxes, most recent last, bounded by history_cap
    """

    track_id: int
    label: str
    score: float
    current_box: BoundingBox
    predicted_box: BoundingBox
    history: deque
    velocity: tuple[float, float] = (0.0, 0.0)
    hits: int = 1
    age: int = 0
    frames_since_update: int = 0
    state: TrackState = TrackState.TENTATIVE

    @property
    def is_confirmed(self) -> bool:
        return self.state is TrackState.CONFIRMED

    def snapshot(self) -> "TrackSnapshot":
        return TrackSnapshot(
            track_id=self.track_id,
            label=self.label,
            score=self.score,
            box=self.current_box,
            velocity=self.velocity,
            history=tuple(self.history),
            hits=self.hits,
            age=self.age,
            frames_since_update=self.frames_since_update,
            state=self.state,
        )


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only copy of a Track, safe to share outside the tracker."""

    track_id: int
    label: str
    score: float
    box: BoundingBox
    velocity: tuple[float, float]
    history: tuple[BoundingBox, ...] = field(default_factory=tuple)
    hits: int = 0
    age: int = 0
    frames_since_update: int = 0
    state: TrackState = TrackState.CONFIRMED

    def to_dict(self, include_trajectory: bool = False) -> dict[str, Any]:
        """Result-record entry: detection fields plus trackId (and trajectory on request)."""
        data = {
            "label": self.label,
            "score": float(self.score),
            **self.box.to_dict(),
            "trackId": self.track_id,
        }
        if include_trajectory:
            data["trajectory"] = [box.to_dict() for box in self.history]
        return data
