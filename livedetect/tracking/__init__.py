"""
Tracking Stage

Assigns stable identities to detections across frames.

Components:
- models: Track, TrackSnapshot, TrackState
- geometry: iou, iou_matrix
- association: greedy / hungarian assignment on 1 - IoU costs
- tracker: ObjectTracker
"""

from livedetect.tracking.models import Track, TrackSnapshot, TrackState
from livedetect.tracking.geometry import iou, iou_matrix
from livedetect.tracking.association import (
    AssociationResult,
    associate,
    greedy_assignment,
    hungarian_assignment,
)
from livedetect.tracking.tracker import ObjectTracker

__all__ = [
    # Models
    "Track",
    "TrackSnapshot",
    "TrackState",
    # Geometry
    "iou",
    "iou_matrix",
    # Association
    "AssociationResult",
    "associate",
    "greedy_assignment",
    "hungarian_assignment",
    # Tracker
    "ObjectTracker",
]
