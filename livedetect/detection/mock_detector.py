import logging
from typing import Optional

import numpy as np

from livedetect.detection.base import Detector
from livedetect.detection.models import BoundingBox, RawDetection


logger = logging.getLogger(__name__)

COMMON_OBJECTS = ["person", "car", "bicycle", "dog", "cat", "chair", "bottle"]


class MockDetector(Detector):
    """
    Detector that ignores the image and returns 1-3 random objects.

    Used when no model is available (demo mode, benchmarks, tests). Scores are
    in [0.6, 0.9) and boxes are normalized and clipped to the image.
    """

    name = "mock"

    def __init__(self, seed: Optional[int] = None, labels: Optional[list[str]] = None):
        self.labels = labels or COMMON_OBJECTS
        self._rng = np.random.default_rng(seed)
        self.calls = 0

    def detect(self, image_bytes: bytes) -> list[RawDetection]:
        self.calls += 1
        num_detections = int(self._rng.integers(1, 4))

        detections = []
        for _ in range(num_detections):
            label = self.labels[int(self._rng.integers(len(self.labels)))]
            score = 0.6 + float(self._rng.random()) * 0.3

            xmin = float(self._rng.random()) * 0.6
            ymin = float(self._rng.random()) * 0.6
            width = 0.15 + float(self._rng.random()) * 0.25
            height = 0.15 + float(self._rng.random()) * 0.25

            detections.append(
                RawDetection(
                    label=label,
                    score=score,
                    box=BoundingBox(
                        xmin=xmin,
                        ymin=ymin,
                        xmax=min(xmin + width, 1.0),
                        ymax=min(ymin + height, 1.0),
                    ),
                )
            )

        logger.debug("Mock detector produced %d detections", len(detections))
        return detections

    def get_stats(self) -> dict:
        return {"name": self.name, "calls": self.calls, "labels": len(self.labels)}
