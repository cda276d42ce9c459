"""
FastAPI application

Owns one StreamPipeline for the lifetime of the app. Library errors are
mapped to {"error": {"message", "status", "timestamp"}} JSON responses.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from livedetect import __version__
from livedetect.api import metrics_routes, routes
from livedetect.api.broadcaster import ResultBroadcaster
from livedetect.config import settings
from livedetect.detection.factory import create_detector
from livedetect.errors import LiveDetectError
from livedetect.pipeline.stream_pipeline import StreamPipeline


logger = logging.getLogger(__name__)


def create_app(
    pipeline: Optional[StreamPipeline] = None, start_pipeline: bool = True
) -> FastAPI:
    """
    Build the application.

    Args:
        pipeline: Pipeline to serve (built from settings at startup if omitted)
        start_pipeline: Start the scheduler thread on startup. Tests pass
            False and drive pipeline.tick() themselves.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # STARTUP
        logger.info("=" * 60)
        logger.info("STARTING LIVEDETECT (mode=%s)", settings.server.mode)
        logger.info("=" * 60)

        settings.validate()

        app.state.pipeline = pipeline or StreamPipeline(
            create_detector(settings.server.mode),
            report_metrics=settings.metrics.enabled,
        )
        app.state.broadcaster = ResultBroadcaster(
            app.state.pipeline, include_trajectory=app.state.pipeline.include_trajectory
        )
        app.state.broadcaster.attach(asyncio.get_running_loop())
        app.state.started_at = time.time()

        if start_pipeline:
            app.state.pipeline.start()

        logger.info("SERVICE READY - Listening on port %d", settings.server.port)

        yield

        # SHUTDOWN
        logger.info("Shutting down livedetect...")
        app.state.broadcaster.detach()
        app.state.pipeline.stop()
        app.state.pipeline.detector.close()
        logger.info("Pipeline stopped")

    app = FastAPI(
        title="livedetect",
        description="Real-time frame ingestion, detection and tracking service",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LiveDetectError)
    async def livedetect_error_handler(request: Request, exc: LiveDetectError):
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": str(exc),
                    "status": exc.status_code,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            },
        )

    app.include_router(routes.router)
    app.include_router(metrics_routes.router)

    @app.get("/")
    async def root():
        return {
            "service": "livedetect",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "status": "/api/status",
                "frames": "/api/frames",
                "tracks": "/api/tracks",
                "metrics": "/metrics",
                "stream": "/ws/stream",
                "results": "/ws/results",
                "docs": "/docs",
            },
        }

    return app


app = create_app()
