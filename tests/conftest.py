import threading

import pytest

from livedetect.config import InferenceConfig, TrackerConfig
from livedetect.detection.base import Detector
from livedetect.detection.models import BoundingBox, RawDetection
from livedetect.errors import DetectionError
from livedetect.ingestion.models import Frame


def make_box(xmin, ymin, xmax, ymax) -> BoundingBox:
    return BoundingBox(xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax)


def make_detection(coords, label="person", score=0.9) -> RawDetection:
    return RawDetection(label=label, score=score, box=make_box(*coords))


def make_frame(frame_id, capture_ts=0, payload=b"jpeg") -> Frame:
    return Frame(frame_id=frame_id, payload=payload, capture_ts=capture_ts)


class FixedDetector(Detector):
    """Returns the same detections for every frame."""

    name = "fixed"

    def __init__(self, detections=None):
        self.detections = list(detections or [])
        self.calls = 0

    def detect(self, image_bytes):
        self.calls += 1
        return list(self.detections)


class BlockingDetector(Detector):
    """First call blocks until release(); later calls return immediately."""

    name = "blocking"

    def __init__(self, detections=None):
        self.detections = list(detections or [])
        self.entered = threading.Event()
        self._release = threading.Event()
        self.calls = 0

    def detect(self, image_bytes):
        self.calls += 1
        if self.calls == 1:
            self.entered.set()
            self._release.wait(5.0)
        return list(self.detections)

    def release(self):
        self._release.set()


class FailingDetector(Detector):
    name = "failing"

    def __init__(self, failures=1, detections=None):
        self.failures = failures
        self.detections = list(detections or [])
        self.calls = 0

    def detect(self, image_bytes):
        self.calls += 1
        if self.calls <= self.failures:
            raise DetectionError("model exploded")
        return list(self.detections)


PERSON_BOX = (0.1, 0.1, 0.4, 0.4)


@pytest.fixture
def tracker_config():
    return TrackerConfig(
        enabled=True,
        max_age=30,
        min_hits=3,
        iou_threshold=0.3,
        history_cap=50,
        age_limit=10,
        association="greedy",
    )


@pytest.fixture
def inference_config():
    return InferenceConfig(target_fps=30.0, detector_timeout_s=1.0)
