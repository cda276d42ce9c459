import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from livedetect.api.deps import get_pipeline
from livedetect.api.schemas import SaveMetricsRequest
from livedetect.config import settings
from livedetect.metrics.export import report_to_csv, save_report
from livedetect.pipeline.stream_pipeline import StreamPipeline


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["Metrics"])

# Result records are far smaller than frames
DOWNLINK_RATIO = 0.1


def build_report(pipeline: StreamPipeline, duration: float) -> dict[str, Any]:
    """
    Windowed metrics report plus detector mode and a bandwidth estimate.

    Uplink is estimated as mean frame payload x processed fps.
    """
    snapshot = pipeline.recorder.snapshot(duration)
    fps = snapshot.fps["processed"]
    uplink_kbps = pipeline.average_payload_bytes * 8 * fps / 1024

    snapshot = replace(
        snapshot,
        extra={
            "mode": settings.server.mode,
            "bandwidth": {
                "uplink_kbps": round(uplink_kbps),
                "downlink_kbps": round(uplink_kbps * DOWNLINK_RATIO),
            },
        },
    )
    return snapshot.to_dict()


def _ack(message: str, **extra) -> dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


@router.get("")
async def current_metrics(pipeline: StreamPipeline = Depends(get_pipeline)):
    """Lifetime counters plus the default-window report."""
    return {
        "summary": pipeline.recorder.summary(),
        "report": build_report(pipeline, settings.metrics.window_seconds),
        "queue": dict(pipeline.queue.stats),
        "scheduler": dict(pipeline.scheduler.stats),
    }


@router.get("/summary")
async def metrics_summary(pipeline: StreamPipeline = Depends(get_pipeline)):
    return pipeline.recorder.summary()


@router.get("/report")
async def metrics_report(
    duration: float = Query(30.0, gt=0),
    pipeline: StreamPipeline = Depends(get_pipeline),
):
    return build_report(pipeline, duration)


@router.post("/save")
async def save_metrics(
    body: Optional[SaveMetricsRequest] = None,
    pipeline: StreamPipeline = Depends(get_pipeline),
):
    body = body or SaveMetricsRequest()
    report = build_report(pipeline, body.duration)
    try:
        path = await run_in_threadpool(save_report, report, body.filename or "metrics.json")
    except OSError as e:
        logger.error("Failed to save metrics: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save metrics: {e}",
        )
    return _ack("Metrics saved successfully", filepath=str(path), report=report)


@router.post("/reset")
async def reset_metrics(pipeline: StreamPipeline = Depends(get_pipeline)):
    pipeline.recorder.reset()
    return _ack("Metrics reset successfully")


@router.post("/start")
async def start_collection(pipeline: StreamPipeline = Depends(get_pipeline)):
    pipeline.recorder.start_collection()
    return _ack("Metrics collection started")


@router.post("/stop")
async def stop_collection(pipeline: StreamPipeline = Depends(get_pipeline)):
    pipeline.recorder.stop_collection()
    return _ack("Metrics collection stopped")


@router.get("/export/{fmt}")
async def export_metrics(
    fmt: str,
    duration: float = Query(30.0, gt=0),
    pipeline: StreamPipeline = Depends(get_pipeline),
):
    fmt = fmt.lower()
    if fmt not in ("json", "csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported format: {fmt}. Use json or csv",
        )

    report = build_report(pipeline, duration)
    if fmt == "json":
        return Response(
            content=json.dumps(report, indent=2),
            media_type="application/json",
            headers={"Content-Disposition": "attachment; filename=metrics.json"},
        )
    return Response(
        content=report_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=metrics.csv"},
    )
