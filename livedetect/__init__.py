"""
livedetect

Real-time frame ingestion, object detection and multi-object tracking.

Stages:
- ingestion: keep-latest frame queue (drop-oldest backpressure)
- inference: scheduler with a single in-flight Detector call
- detection: Detector implementations (mock, YOLO, remote)
- tracking: IoU multi-object tracker with stable track ids
- metrics: latency/throughput recorder
- pipeline: per-stream wiring and result records
- api: FastAPI surface
"""

__version__ = "1.0.0"
