"""
Error Types

All errors raised by livedetect derive from LiveDetectError so the API layer
can map them to JSON responses in one place.

Recoverable errors (queue overflow, detector failures, malformed detections)
never escape the pipeline; they are logged and counted. Only
TrackerInvariantError is surfaced to callers, from ObjectTracker.confirmed_tracks().
"""


class LiveDetectError(RuntimeError):
    """Base class for livedetect errors."""

    status_code = 500


class ConfigError(LiveDetectError):
    status_code = 500


class DetectionError(LiveDetectError):
    """Detector call failed (model error, remote service error, bad response)."""

    status_code = 502


class DetectorTimeoutError(DetectionError):
    """Detector call did not finish within the configured timeout."""

    status_code = 504


class FrameDecodeError(LiveDetectError):
    """Incoming image data could not be decoded."""

    status_code = 400


class MalformedDetectionError(LiveDetectError):
    """Detection with out-of-range box coordinates, bad score or missing label."""

    status_code = 422


class TrackerInvariantError(LiveDetectError):
    """Tracker state is inconsistent (e.g. duplicate track id). Tracking stops until reset."""

    status_code = 503
