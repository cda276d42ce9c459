"""
Environment Settings
Loads environment variables (and .env) that override the pipeline defaults
"""
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings


load_dotenv()


class EnvSettings(BaseSettings):
    """Settings loaded from environment variables. Unset values keep the dataclass defaults."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    MODE: str = "mock"  # "mock", "yolo" or "remote"
    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: str = "*"

    # Ingestion / inference
    TARGET_FPS: float = 15.0
    QUEUE_CAPACITY: int = 1
    DETECTOR_TIMEOUT_S: float = 2.0

    # Detection
    YOLO_WEIGHTS: str = "yolov8n.pt"
    YOLO_DEVICE: str = "cpu"
    SCORE_THRESHOLD: float = 0.5
    NMS_THRESHOLD: float = 0.4
    REMOTE_DETECTOR_URL: Optional[str] = None

    # Tracking
    TRACKING_ENABLED: bool = True
    TRACKER_MAX_AGE: int = 30
    TRACKER_MIN_HITS: int = 3
    TRACKER_IOU_THRESHOLD: float = 0.3
    TRACKER_HISTORY_CAP: int = 50
    TRACKER_AGE_LIMIT: int = 10
    TRACKER_ASSOCIATION: str = "greedy"

    # Metrics
    METRICS_ENABLED: bool = True
    METRICS_WINDOW_S: int = 30
    METRICS_REPORT_INTERVAL_S: float = 10.0
    RESULTS_DIR: str = "bench/results"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
