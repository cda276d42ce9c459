"""
Object Tracker

Maintains object identities across frames with IoU association and one-step
linear motion prediction.

Per update() cycle:
1. Predict: predicted_box = current_box shifted by velocity
2. Associate: cost = 1 - IoU(predicted_box, detection.box), matched below 1 - iou_threshold
3. Update matched tracks (velocity from top-left corner difference, history, hits)
4. Create Tentative tracks for unmatched detections
5. Age unmatched tracks (frames_since_update += 1)
6. Prune stale tracks, then age += 1 for every survivor

Threading:
    Not safe to call concurrently with itself. The pipeline calls update()
    only from the scheduler's completion path, which is serial.
"""

import logging
from collections import Counter, deque
from typing import Iterable, Optional

from livedetect.config import TrackerConfig, settings
from livedetect.detection.models import RawDetection, validate_detection
from livedetect.errors import MalformedDetectionError, TrackerInvariantError
from livedetect.tracking.association import associate
from livedetect.tracking.geometry import iou_matrix
from livedetect.tracking.models import Track, TrackSnapshot, TrackState


logger = logging.getLogger(__name__)


class ObjectTracker:
    """
    IoU-based multi-object tracker with Tentative/Confirmed/Deleted lifecycle.

    Only Confirmed tracks are exposed, always as TrackSnapshot copies.

    A detected invariant violation (duplicate track id) puts the tracker in a
    faulted state: the live set is discarded, updates are ignored, and the
    next confirmed_tracks() call raises TrackerInvariantError. Later calls
    return an empty list until reset().
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = config or settings.tracking

        # Live tracks keyed by id, in creation order
        self._tracks: dict[int, Track] = {}
        self._next_track_id = 1

        self._fault: Optional[TrackerInvariantError] = None
        self._fault_reported = False

        # Statistics
        self.cycles = 0
        self.tracks_created = 0
        self.tracks_confirmed = 0
        self.tracks_deleted = 0
        self.detections_rejected = 0

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def update(self, detections: Iterable[RawDetection]) -> None:
        """
        Run one tracking cycle on a batch of detections from one frame.

        Malformed detections are logged and excluded; they never abort the cycle.
        """
        if self._fault is not None:
            logger.debug("Tracker faulted, ignoring update")
            return

        valid = self._filter_valid(detections)

        try:
            self._run_cycle(valid)
        except TrackerInvariantError as e:
            self._enter_fault(e)
            return

        self.cycles += 1

    def confirmed_tracks(self) -> list[TrackSnapshot]:
        """
        Snapshots of all Confirmed tracks, in creation order.

        Raises:
            TrackerInvariantError: Once, on the first call after a fault
        """
        if self._fault is not None:
            if not self._fault_reported:
                self._fault_reported = True
                raise TrackerInvariantError(str(self._fault)) from self._fault
            return []

        return [t.snapshot() for t in self._tracks.values() if t.is_confirmed]

    def live_tracks(self) -> list[TrackSnapshot]:
        """Snapshots of every live track (Tentative and Confirmed), for diagnostics."""
        return [t.snapshot() for t in self._tracks.values()]

    @property
    def faulted(self) -> bool:
        return self._fault is not None

    def reset(self) -> None:
        """Drop all tracks and clear a fault. Track ids keep counting up."""
        for track in self._tracks.values():
            track.state = TrackState.DELETED
        self._tracks.clear()
        self._fault = None
        self._fault_reported = False
        logger.info("Tracker reset (next track id %d)", self._next_track_id)

    def stats(self) -> dict:
        confirmed = [t for t in self._tracks.values() if t.is_confirmed]
        label_counts = Counter(t.label for t in confirmed)
        avg_age = sum(t.age for t in confirmed) / len(confirmed) if confirmed else 0.0

        return {
            "active_tracks": len(confirmed),
            "total_tracks": len(self._tracks),
            "label_counts": dict(label_counts),
            "avg_age": avg_age,
            "cycles": self.cycles,
            "tracks_created": self.tracks_created,
            "tracks_confirmed": self.tracks_confirmed,
            "tracks_deleted": self.tracks_deleted,
            "detections_rejected": self.detections_rejected,
            "faulted": self.faulted,
        }

    # =========================================================================
    # CYCLE
    # =========================================================================

    def _run_cycle(self, detections: list[RawDetection]) -> None:
        tracks = list(self._tracks.values())

        # 1. Predict
        for track in tracks:
            track.predicted_box = track.current_box.shifted(*track.velocity)

        # 2. Associate
        cost_matrix = 1.0 - iou_matrix(
            [t.predicted_box for t in tracks], [d.box for d in detections]
        )
        assoc = associate(
            cost_matrix,
            max_cost=1.0 - self.config.iou_threshold,
            method=self.config.association,
        )

        # 3. Update matched
        for row, col in assoc.matches:
            self._update_track(tracks[row], detections[col])

        # 4. Create
        for col in assoc.unmatched_cols:
            self._create_track(detections[col])

        # 5. Age unmatched
        for row in assoc.unmatched_rows:
            tracks[row].frames_since_update += 1

        # 6. Prune, then age survivors
        self._prune()
        for track in self._tracks.values():
            track.age += 1

    def _filter_valid(self, detections: Iterable[RawDetection]) -> list[RawDetection]:
        valid = []
        for det in detections:
            try:
                valid.append(validate_detection(det))
            except MalformedDetectionError as e:
                self.detections_rejected += 1
                logger.warning("Rejected malformed detection: %s", e)
        return valid

    def _update_track(self, track: Track, detection: RawDetection) -> None:
        new_box = detection.box
        track.velocity = (
            new_box.xmin - track.current_box.xmin,
            new_box.ymin - track.current_box.ymin,
        )
        track.current_box = new_box
        track.score = detection.score
        track.history.append(new_box)  # deque maxlen drops the oldest
        track.hits += 1
        track.frames_since_update = 0

        self._maybe_confirm(track)

    def _create_track(self, detection: RawDetection) -> Track:
        track_id = self._next_track_id
        if track_id in self._tracks:
            raise TrackerInvariantError(f"Duplicate track id {track_id}")
        self._next_track_id += 1

        track = Track(
            track_id=track_id,
            label=detection.label,
            score=detection.score,
            current_box=detection.box,
            predicted_box=detection.box,
            history=deque([detection.box], maxlen=self.config.history_cap),
        )
        self._tracks[track_id] = track
        self.tracks_created += 1
        self._maybe_confirm(track)

        logger.debug("Created new track %d for %s", track_id, detection.label)
        return track

    def _maybe_confirm(self, track: Track) -> None:
        if track.state is TrackState.TENTATIVE and track.hits >= self.config.min_hits:
            track.state = TrackState.CONFIRMED
            self.tracks_confirmed += 1
            logger.debug("Track %d confirmed after %d hits", track.track_id, track.hits)

    def _prune(self) -> None:
        cfg = self.config
        to_remove = [
            track_id
            for track_id, track in self._tracks.items()
            if track.frames_since_update > cfg.max_age
            or (
                track.state is TrackState.TENTATIVE
                and track.age > cfg.age_limit
                and track.hits < cfg.min_hits
            )
        ]

        for track_id in to_remove:
            track = self._tracks.pop(track_id)
            track.state = TrackState.DELETED
            self.tracks_deleted += 1
            logger.debug(
                "Removed track %d (%s, hits=%d, age=%d, since_update=%d)",
                track_id,
                track.label,
                track.hits,
                track.age,
                track.frames_since_update,
            )

    def _enter_fault(self, error: TrackerInvariantError) -> None:
        logger.error("Tracker invariant violated, tracking disabled until reset: %s", error)
        for track in self._tracks.values():
            track.state = TrackState.DELETED
        self._tracks.clear()
        self._fault = error
        self._fault_reported = False
