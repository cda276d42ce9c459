"""
Pipeline

Single-stream wiring of queue, scheduler, detector, tracker and metrics.
"""

from livedetect.pipeline.results import DetectionResult
from livedetect.pipeline.stream_pipeline import StreamPipeline

__all__ = ["DetectionResult", "StreamPipeline"]
