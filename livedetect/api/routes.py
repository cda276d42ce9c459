import asyncio
import logging
import platform
import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from livedetect import __version__
from livedetect.api.deps import get_pipeline
from livedetect.api.schemas import (
    FrameAccepted,
    FrameMessage,
    InferenceRequest,
    InferenceResponse,
)
from livedetect.config import settings
from livedetect.detection.image_data import decode_image_data
from livedetect.errors import DetectorTimeoutError, LiveDetectError
from livedetect.pipeline.stream_pipeline import StreamPipeline


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# SYSTEM
# =============================================================================


@router.get("/health")
async def health(request: Request, pipeline: StreamPipeline = Depends(get_pipeline)):
    return {
        "status": "healthy",
        "service": "livedetect",
        "version": __version__,
        "mode": settings.server.mode,
        "uptime": time.time() - request.app.state.started_at,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "scheduler": "ok" if pipeline.scheduler.is_running() else "stopped",
            "tracker": "faulted" if pipeline.tracker and pipeline.tracker.faulted else "ok",
        },
    }


@router.get("/api/status")
async def system_status(request: Request, pipeline: StreamPipeline = Depends(get_pipeline)):
    return {
        "server": {
            "status": "running",
            "uptime": time.time() - request.app.state.started_at,
            "mode": settings.server.mode,
            "pythonVersion": platform.python_version(),
            "platform": platform.platform(),
        },
        "pipeline": pipeline.stats(),
        "viewers": request.app.state.broadcaster.client_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/config")
async def public_config():
    """Effective runtime configuration (no secrets are held in config)."""
    return {
        "mode": settings.server.mode,
        "ingestion": asdict(settings.ingestion),
        "inference": asdict(settings.inference),
        "detection": {
            "scoreThreshold": settings.detection.conf_threshold,
            "nmsThreshold": settings.detection.iou_threshold,
            "inputSize": settings.detection.imgsz,
        },
        "tracking": asdict(settings.tracking),
        "metrics": {
            "enabled": settings.metrics.enabled,
            "windowSeconds": settings.metrics.window_seconds,
            "reportInterval": settings.metrics.report_interval_s,
        },
    }


# =============================================================================
# FRAMES & INFERENCE
# =============================================================================


@router.post("/api/frames", response_model=FrameAccepted, status_code=status.HTTP_202_ACCEPTED)
async def push_frame(message: FrameMessage, pipeline: StreamPipeline = Depends(get_pipeline)):
    """Enqueue one frame. The result arrives on /ws/results."""
    image_bytes = decode_image_data(message.imageData)
    pipeline.on_frame(message.frameId, image_bytes, message.captureTs)
    return FrameAccepted(
        frameId=message.frameId,
        pending=len(pipeline.queue),
        dropped=pipeline.queue.dropped,
    )


@router.post("/api/test-inference", response_model=InferenceResponse)
async def test_inference(body: InferenceRequest, pipeline: StreamPipeline = Depends(get_pipeline)):
    """
    Run one detection synchronously, outside the scheduler.

    Diagnostic only: the call is bounded by the detector timeout but does not
    go through the single in-flight admission of the pipeline.
    """
    image_bytes = decode_image_data(body.imageData)
    timeout = settings.inference.detector_timeout_s

    start = time.time()
    try:
        detections = await asyncio.wait_for(
            run_in_threadpool(pipeline.detector.detect, image_bytes), timeout=timeout
        )
    except asyncio.TimeoutError:
        raise DetectorTimeoutError(f"Detector did not answer within {timeout:.2f}s") from None
    elapsed_ms = int((time.time() - start) * 1000)

    return InferenceResponse(
        detections=[d.to_dict() for d in detections],
        processingTime=elapsed_ms,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# =============================================================================
# TRACKS & RESULTS
# =============================================================================


@router.get("/api/tracks")
async def get_tracks(trajectory: bool = False, pipeline: StreamPipeline = Depends(get_pipeline)):
    tracks = pipeline.confirmed_tracks()  # TrackerInvariantError -> 503
    return {
        "enabled": pipeline.tracking_enabled,
        "count": len(tracks),
        "tracks": [t.to_dict(include_trajectory=trajectory) for t in tracks],
    }


@router.post("/api/tracks/reset")
async def reset_tracks(pipeline: StreamPipeline = Depends(get_pipeline)):
    pipeline.restart_tracking()
    return {
        "success": True,
        "message": "Tracking restarted",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/results/latest")
async def latest_result(trajectory: bool = False, pipeline: StreamPipeline = Depends(get_pipeline)):
    result = pipeline.latest_result
    return {"result": result.to_dict(include_trajectory=trajectory) if result else None}


# =============================================================================
# WEBSOCKETS
# =============================================================================


@router.websocket("/ws/stream")
async def stream_frames(websocket: WebSocket):
    """Camera client pushes frame messages; nothing is sent back."""
    pipeline: StreamPipeline = websocket.app.state.pipeline
    await websocket.accept()
    logger.info("Stream client connected")

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = FrameMessage.model_validate_json(text)
                pipeline.on_frame(
                    message.frameId, decode_image_data(message.imageData), message.captureTs
                )
            except (ValidationError, LiveDetectError) as e:
                logger.warning("Ignoring bad frame message: %s", e)
    except WebSocketDisconnect:
        logger.info("Stream client disconnected")


@router.websocket("/ws/results")
async def stream_results(websocket: WebSocket, trajectory: Optional[bool] = None):
    """
    Viewers receive every detection result record as JSON.

    ?trajectory=true|false overrides the pipeline default for track history.
    """
    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    queue = broadcaster.register(include_trajectory=trajectory)

    # Viewers send nothing; a receive only completes on disconnect
    disconnected = asyncio.create_task(websocket.receive())
    try:
        while True:
            next_record = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_record, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_record.cancel()
                break
            await websocket.send_json(next_record.result())
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.cancel()
        broadcaster.unregister(queue)
