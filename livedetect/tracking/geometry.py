"""
Box geometry for association.

IoU = intersection area / union area of two axis-aligned boxes, 0 when they
do not overlap.
"""

import numpy as np

from livedetect.detection.models import BoundingBox


def iou(box_a: BoundingBox, box_b: BoundingBox) -> float:
    """Compute Intersection over Union of two boxes in xyxy format."""
    x1 = max(box_a.xmin, box_b.xmin)
    y1 = max(box_a.ymin, box_b.ymin)
    x2 = min(box_a.xmax, box_b.xmax)
    y2 = min(box_a.ymax, box_b.ymax)

    if x2 <= x1 or y2 <= y1:
        return 0.0

    intersection = (x2 - x1) * (y2 - y1)
    union = box_a.area + box_b.area - intersection
    if union <= 0.0:
        return 0.0

    return float(intersection / union)


def iou_matrix(boxes_a: list[BoundingBox], boxes_b: list[BoundingBox]) -> np.ndarray:
    """
    Pairwise IoU between two box lists.

    Args:
        boxes_a: N boxes (rows)
        boxes_b: M boxes (columns)

    Returns:
        (N, M) float64 array, entry [i, j] = IoU(boxes_a[i], boxes_b[j])
    """
    if not boxes_a or not boxes_b:
        return np.zeros((len(boxes_a), len(boxes_b)), dtype=np.float64)

    a = np.array([box.to_array() for box in boxes_a])  # (N, 4)
    b = np.array([box.to_array() for box in boxes_b])  # (M, 4)

    # Broadcast (N, 1) against (1, M)
    x1 = np.maximum(a[:, None, 0], b[None, :, 0])
    y1 = np.maximum(a[:, None, 1], b[None, :, 1])
    x2 = np.minimum(a[:, None, 2], b[None, :, 2])
    y2 = np.minimum(a[:, None, 3], b[None, :, 3])

    inter = np.clip(x2 - x1, 0.0, None) * np.clip(y2 - y1, 0.0, None)

    area_a = np.clip(a[:, 2] - a[:, 0], 0.0, None) * np.clip(a[:, 3] - a[:, 1], 0.0, None)
    area_b = np.clip(b[:, 2] - b[:, 0], 0.0, None) * np.clip(b[:, 3] - b[:, 1], 0.0, None)
    union = area_a[:, None] + area_b[None, :] - inter

    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where((inter > 0.0) & (union > 0.0), inter / union, 0.0)

    return result
