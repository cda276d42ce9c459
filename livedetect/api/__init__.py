"""
HTTP / WebSocket surface

- app: create_app() and the module-level app served by uvicorn
- routes: health, status, config, frames, test inference, tracks, WebSockets
- metrics_routes: /metrics report, save, reset and export
"""

from livedetect.api.app import app, create_app

__all__ = ["app", "create_app"]
