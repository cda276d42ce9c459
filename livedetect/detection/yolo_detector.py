import logging
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from ultralytics import YOLO

from livedetect.config import DetectionConfig, settings
from livedetect.detection.base import Detector
from livedetect.detection.models import BoundingBox, RawDetection
from livedetect.errors import DetectionError


logger = logging.getLogger(__name__)


class YOLODetector(Detector):

    name = "yolo"

    def __init__(self, config: Optional[DetectionConfig] = None, weights_path=None):
        self.config = config or settings.detection

        # Load from config
        self.weights_path = Path(weights_path) if weights_path else settings.weights_dir / self.config.weights_file
        self.conf_threshold = self.config.conf_threshold
        self.iou_threshold = self.config.iou_threshold
        self.device = self.config.device
        self.imgsz = self.config.imgsz

        if not self.weights_path.exists():
            raise FileNotFoundError(f"Weights not found: {self.weights_path}")

        logger.info("Loading YOLO model from %s", self.weights_path)
        self.model = YOLO(str(self.weights_path))
        self.model.to(self.device)

        # Statistics
        self.frames_processed = 0
        self.total_inference_time = 0.0

        logger.info(
            "YOLO detector ready (device=%s, conf=%.2f, iou=%.2f, imgsz=%d)",
            self.device,
            self.conf_threshold,
            self.iou_threshold,
            self.imgsz,
        )

    def detect(self, image_bytes: bytes) -> list[RawDetection]:
        frame = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise DetectionError(f"Could not decode image ({len(image_bytes)} bytes)")

        start_time = time.time()
        try:
            results = self.model.predict(
                frame,
                conf=self.conf_threshold,
                iou=self.iou_threshold,
                # ultralytics logging is silenced, we log our own summary
                verbose=False,
                imgsz=self.imgsz,
                device=self.device,
            )
        except Exception as e:
            raise DetectionError(f"YOLO inference failed: {e}") from e

        inference_time = time.time() - start_time
        self.frames_processed += 1
        self.total_inference_time += inference_time

        detections = self._parse_results(results[0])

        logger.debug(
            "Detected %d objects in %dx%d frame (%.3fs)",
            len(detections),
            frame.shape[1],
            frame.shape[0],
            inference_time,
        )
        return detections

    def _parse_results(self, results) -> list[RawDetection]:
        """
        Takes raw YOLO results (ultralytics format)
        Converts each box into a RawDetection with normalized coordinates
        """
        detections = []

        if results.boxes is None or len(results.boxes) == 0:
            return detections

        boxes_xyxyn = results.boxes.xyxyn.cpu().numpy()  # (N, 4) normalized
        confidences = results.boxes.conf.cpu().numpy()  # (N,)
        class_ids = results.boxes.cls.cpu().numpy()  # (N,)
        names = results.names

        for box, conf, cls in zip(boxes_xyxyn, confidences, class_ids):
            clipped = np.clip(box, 0.0, 1.0)
            detections.append(
                RawDetection(
                    label=str(names[int(cls)]),
                    score=float(conf),
                    box=BoundingBox.from_xyxy(clipped),
                )
            )

        return detections

    def get_stats(self) -> dict:
        avg = (
            self.total_inference_time / self.frames_processed
            if self.frames_processed
            else 0.0
        )
        return {
            "name": self.name,
            "device": self.device,
            "frames_processed": self.frames_processed,
            "avg_inference_time": avg,
        }
