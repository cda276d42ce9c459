import logging
from typing import Optional

from livedetect.config import settings
from livedetect.detection.base import Detector
from livedetect.detection.mock_detector import MockDetector
from livedetect.detection.remote_detector import RemoteDetector
from livedetect.errors import ConfigError


logger = logging.getLogger(__name__)


def create_detector(mode: Optional[str] = None) -> Detector:
    """
    Build the Detector selected by MODE.

    - mock: random detections, no model needed
    - yolo: in-process ultralytics model (needs the "yolo" extra)
    - remote: HTTP inference service at REMOTE_DETECTOR_URL
    """
    mode = (mode or settings.server.mode).lower()

    if mode == "mock":
        detector = MockDetector()
    elif mode == "yolo":
        # Imported here so ultralytics is only required in yolo mode
        from livedetect.detection.yolo_detector import YOLODetector

        detector = YOLODetector(settings.detection)
    elif mode == "remote":
        detector = RemoteDetector(settings.detection)
    else:
        raise ConfigError(f"Unknown detector mode: {mode}")

    logger.info("Created %s detector", detector.name)
    return detector
