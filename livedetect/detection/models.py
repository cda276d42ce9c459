"""
Detection Stage Data Models

Key Types:
- BoundingBox: axis-aligned box in normalized image coordinates [0, 1]
- RawDetection: single Detector output (label, score, box)

Detections are not validated on construction: a Detector may hand back
anything, and malformed ones are rejected at the tracker boundary by
validate_detection().
"""

from dataclasses import dataclass
from numbers import Real
from typing import Any

import numpy as np

from livedetect.errors import MalformedDetectionError


@dataclass(frozen=True)
class BoundingBox:
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> tuple[float, float]:
        return ((self.xmin + self.xmax) / 2.0, (self.ymin + self.ymax) / 2.0)

    @property
    def top_left(self) -> tuple[float, float]:
        return (self.xmin, self.ymin)

    def shifted(self, dx: float, dy: float) -> "BoundingBox":
        """Translate the box by (dx, dy) without changing its size."""
        return BoundingBox(
            xmin=self.xmin + dx,
            ymin=self.ymin + dy,
            xmax=self.xmax + dx,
            ymax=self.ymax + dy,
        )

    def is_normalized(self) -> bool:
        """True if all coordinates are in [0, 1] and the box has positive extent."""
        coords = (self.xmin, self.ymin, self.xmax, self.ymax)
        if not all(_in_unit_range(c) for c in coords):
            return False
        return self.xmin < self.xmax and self.ymin < self.ymax

    def to_array(self) -> np.ndarray:
        return np.array([self.xmin, self.ymin, self.xmax, self.ymax], dtype=np.float64)

    def to_dict(self) -> dict[str, float]:
        return {
            "xmin": float(self.xmin),
            "ymin": float(self.ymin),
            "xmax": float(self.xmax),
            "ymax": float(self.ymax),
        }

    @classmethod
    def from_xyxy(cls, coords) -> "BoundingBox":
        return cls(
            xmin=float(coords[0]),
            ymin=float(coords[1]),
            xmax=float(coords[2]),
            ymax=float(coords[3]),
        )


@dataclass(frozen=True)
class RawDetection:
    """
    Single detected object, as returned by a Detector.

    Attributes:
        label: Class name (e.g. "person")
        score: Confidence in [0, 1]
        box: Normalized bounding box
    """

    label: str
    score: float
    box: BoundingBox

    def to_dict(self) -> dict[str, Any]:
        """Wire format used inside result records."""
        return {"label": self.label, "score": float(self.score), **self.box.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawDetection":
        """
        Parse a detection dict.

        Accepts both shapes seen from inference backends:
        {"label", "score", "bbox": [xmin, ymin, xmax, ymax]} and
        {"label", "score", "xmin", "ymin", "xmax", "ymax"}.

        Raises:
            MalformedDetectionError: If box coordinates or score are missing
                or not numbers. Range checks are left to validate_detection().
        """
        try:
            if "bbox" in data:
                box = BoundingBox.from_xyxy(data["bbox"])
            else:
                box = BoundingBox.from_xyxy(
                    (data["xmin"], data["ymin"], data["xmax"], data["ymax"])
                )
            score = float(data["score"])
            label = data.get("label")
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise MalformedDetectionError(f"Unparseable detection {data!r}: {e}") from e

        return cls(label=label if isinstance(label, str) else "", score=score, box=box)


def validate_detection(detection: RawDetection) -> RawDetection:
    """
    Check a detection against the RawDetection contract.

    Returns:
        The same detection, for use in comprehensions

    Raises:
        MalformedDetectionError: Not a RawDetection, missing label, score
            outside [0, 1], or box missing or not normalized
    """
    if not isinstance(detection, RawDetection):
        raise MalformedDetectionError(f"Not a detection: {detection!r}")
    if not isinstance(detection.box, BoundingBox):
        raise MalformedDetectionError(f"Detection has no box: {detection!r}")
    if not isinstance(detection.label, str) or not detection.label:
        raise MalformedDetectionError(f"Detection has no label: {detection!r}")
    if not _in_unit_range(detection.score):
        raise MalformedDetectionError(f"Score out of range: {detection!r}")
    if not detection.box.is_normalized():
        raise MalformedDetectionError(f"Box out of range: {detection!r}")
    return detection


def _in_unit_range(value) -> bool:
    return isinstance(value, Real) and bool(np.isfinite(value)) and 0.0 <= value <= 1.0
