from abc import ABC, abstractmethod

from livedetect.detection.models import RawDetection


class Detector(ABC):
    """
    Object detection capability used by the inference scheduler.

    Implementations may be in-process (YOLO) or remote (HTTP). They are
    treated as non-reentrant: the scheduler never issues a second call
    before the first one resolves or times out.
    """

    name = "detector"

    @abstractmethod
    def detect(self, image_bytes: bytes) -> list[RawDetection]:
        """
        Run detection on one encoded image.

        Args:
            image_bytes: Encoded image (JPEG/PNG)

        Returns:
            Detections with boxes normalized to [0, 1]

        Raises:
            DetectionError: If inference fails
        """

    def close(self) -> None:
        """Release model or connection resources."""

    def get_stats(self) -> dict:
        return {"name": self.name}
