"""
Detection Stage

Detector implementations behind a single interface: image bytes in,
normalized RawDetections out.

Components:
- models: BoundingBox, RawDetection, validate_detection
- base: Detector interface
- mock_detector: random detections for demo mode and tests
- remote_detector: HTTP inference service client
- yolo_detector: in-process ultralytics model (import directly; needs the "yolo" extra)
- factory: create_detector() by MODE

Usage:
    from livedetect.detection import create_detector

    detector = create_detector("mock")
    detections = detector.detect(jpeg_bytes)
"""

from livedetect.detection.models import (
    BoundingBox,
    RawDetection,
    validate_detection,
)
from livedetect.detection.base import Detector
from livedetect.detection.image_data import decode_image_data, encode_image_data
from livedetect.detection.mock_detector import MockDetector
from livedetect.detection.remote_detector import RemoteDetector
from livedetect.detection.factory import create_detector


__all__ = [
    # Models
    "BoundingBox",
    "RawDetection",
    "validate_detection",
    # Detectors
    "Detector",
    "MockDetector",
    "RemoteDetector",
    "create_detector",
    # Payload helpers
    "decode_image_data",
    "encode_image_data",
]
