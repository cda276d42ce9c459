"""
Request/response models for the HTTP and WebSocket surface.

Field names follow the browser client's camelCase messages.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from livedetect.utils.timing import now_ms


class FrameMessage(BaseModel):
    """One frame pushed by the camera client (phone-stream message)."""

    frameId: Union[int, str]
    imageData: str  # base64 data URL or plain base64
    captureTs: int = Field(default_factory=now_ms)


class FrameAccepted(BaseModel):
    accepted: bool = True
    frameId: Union[int, str]
    pending: int
    dropped: int


class InferenceRequest(BaseModel):
    imageData: str


class InferenceResponse(BaseModel):
    success: bool = True
    detections: list[dict[str, Any]]
    processingTime: int  # ms
    timestamp: str


class SaveMetricsRequest(BaseModel):
    duration: float = 30.0
    filename: Optional[str] = "metrics.json"
