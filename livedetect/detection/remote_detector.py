"""
Remote Detector

Sends frames to an HTTP inference service and parses its detections.

Request:  POST <url> {"imageData": "data:image/jpeg;base64,..."}
Response: {"detections": [{"label", "score", "bbox": [..]} | {"label", "score", "xmin", ...}]}
"""

import logging
from typing import Optional

import httpx

from livedetect.config import DetectionConfig, settings
from livedetect.detection.base import Detector
from livedetect.detection.image_data import encode_image_data
from livedetect.detection.models import RawDetection
from livedetect.errors import DetectionError, DetectorTimeoutError, MalformedDetectionError


logger = logging.getLogger(__name__)


class RemoteDetector(Detector):

    name = "remote"

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.config = config or settings.detection
        if not self.config.remote_url:
            raise DetectionError("RemoteDetector needs detection.remote_url")

        self.url = self.config.remote_url
        self.timeout = self.config.remote_timeout_s
        self._client = client or httpx.Client(timeout=self.timeout)

        self.requests = 0
        self.errors = 0

        logger.info("Remote detector targeting %s (timeout=%.2fs)", self.url, self.timeout)

    def detect(self, image_bytes: bytes) -> list[RawDetection]:
        self.requests += 1
        try:
            response = self._client.post(
                self.url,
                json={"imageData": encode_image_data(image_bytes)},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            self.errors += 1
            raise DetectorTimeoutError(f"Remote detector timed out: {e}") from e
        except httpx.RequestError as e:
            self.errors += 1
            raise DetectionError(f"Remote detector unreachable: {e}") from e

        if response.status_code != 200:
            self.errors += 1
            raise DetectionError(
                f"Remote detector returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
            items = payload["detections"] if isinstance(payload, dict) else payload
            detections = [RawDetection.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, MalformedDetectionError) as e:
            self.errors += 1
            raise DetectionError(f"Bad response from remote detector: {e}") from e

        logger.debug("Remote detector returned %d detections", len(detections))
        return detections

    def close(self) -> None:
        self._client.close()

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "url": self.url,
            "requests": self.requests,
            "errors": self.errors,
        }
