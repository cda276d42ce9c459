from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from livedetect.config.env import EnvSettings
from livedetect.errors import ConfigError

VALID_MODES = ("mock", "yolo", "remote")
VALID_ASSOCIATIONS = ("greedy", "hungarian")


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    mode: str = "mock"  # Which detector backs the pipeline
    log_level: str = "INFO"
    frontend_url: str = "*"  # CORS origin


@dataclass
class IngestionConfig:
    """Frame ingest queue configuration."""

    queue_capacity: int = 1  # Keep-latest by default


@dataclass
class InferenceConfig:
    """Inference scheduler configuration."""

    target_fps: float = 15.0  # Scheduler tick rate
    detector_timeout_s: float = 2.0  # Bound on a single Detector call

    @property
    def period_s(self) -> float:
        return 1.0 / self.target_fps


@dataclass
class DetectionConfig:
    """Detector backend configuration."""

    weights_file: str = "yolov8n.pt"  # YOLO weights filename (in weights/)
    device: str = "cpu"  # "cuda" or "cpu"
    conf_threshold: float = 0.5  # Minimum detection confidence
    iou_threshold: float = 0.4  # NMS IoU threshold
    imgsz: int = 640  # YOLO input size
    remote_url: Optional[str] = None  # Remote inference endpoint
    remote_timeout_s: float = 2.0


@dataclass
class TrackerConfig:
    """Object tracker configuration."""

    enabled: bool = True
    max_age: int = 30  # Cycles without a match before removal
    min_hits: int = 3  # Hits needed for Tentative -> Confirmed
    iou_threshold: float = 0.3  # Minimum IoU for association
    history_cap: int = 50  # Boxes kept per track trajectory
    age_limit: int = 10  # Max age of a track that never confirmed
    association: str = "greedy"  # "greedy" or "hungarian"


@dataclass
class MetricsConfig:
    """Metrics window and reporting configuration."""

    enabled: bool = True
    window_seconds: int = 30  # Rolling window = window_seconds * target_fps samples
    report_interval_s: float = 10.0
    results_dir: str = "bench/results"


class Settings:
    """
    Root settings container with Singleton Pattern.

    Sub-configurations:
    - server: HTTP server and detector mode
    - ingestion: frame queue settings
    - inference: scheduler cadence and detector timeout
    - detection: detector backend settings
    - tracking: tracker thresholds
    - metrics: rolling window and reporting
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if Settings._initialized:
            return

        self.load(EnvSettings())
        Settings._initialized = True

    def load(self, env: EnvSettings) -> None:
        """(Re)build all sub-configurations from environment settings."""
        self.server = ServerConfig(
            host=env.HOST,
            port=env.PORT,
            mode=env.MODE.lower(),
            log_level=env.LOG_LEVEL.upper(),
            frontend_url=env.FRONTEND_URL,
        )
        self.ingestion = IngestionConfig(queue_capacity=env.QUEUE_CAPACITY)
        self.inference = InferenceConfig(
            target_fps=env.TARGET_FPS,
            detector_timeout_s=env.DETECTOR_TIMEOUT_S,
        )
        self.detection = DetectionConfig(
            weights_file=env.YOLO_WEIGHTS,
            device=env.YOLO_DEVICE,
            conf_threshold=env.SCORE_THRESHOLD,
            iou_threshold=env.NMS_THRESHOLD,
            remote_url=env.REMOTE_DETECTOR_URL,
            remote_timeout_s=env.DETECTOR_TIMEOUT_S,
        )
        self.tracking = TrackerConfig(
            enabled=env.TRACKING_ENABLED,
            max_age=env.TRACKER_MAX_AGE,
            min_hits=env.TRACKER_MIN_HITS,
            iou_threshold=env.TRACKER_IOU_THRESHOLD,
            history_cap=env.TRACKER_HISTORY_CAP,
            age_limit=env.TRACKER_AGE_LIMIT,
            association=env.TRACKER_ASSOCIATION.lower(),
        )
        self.metrics = MetricsConfig(
            enabled=env.METRICS_ENABLED,
            window_seconds=env.METRICS_WINDOW_S,
            report_interval_s=env.METRICS_REPORT_INTERVAL_S,
            results_dir=env.RESULTS_DIR,
        )

    def validate(self) -> None:
        """Raise ConfigError on values the pipeline cannot run with."""
        if self.server.mode not in VALID_MODES:
            raise ConfigError(
                f"Invalid MODE: {self.server.mode}. Must be one of {VALID_MODES}"
            )
        if self.server.mode == "remote" and not self.detection.remote_url:
            raise ConfigError("MODE=remote requires REMOTE_DETECTOR_URL")
        if self.inference.target_fps <= 0:
            raise ConfigError("TARGET_FPS must be positive")
        if self.inference.detector_timeout_s <= 0:
            raise ConfigError("DETECTOR_TIMEOUT_S must be positive")
        if self.ingestion.queue_capacity < 1:
            raise ConfigError("QUEUE_CAPACITY must be >= 1")
        if not 0.0 <= self.tracking.iou_threshold <= 1.0:
            raise ConfigError("TRACKER_IOU_THRESHOLD must be in [0, 1]")
        if self.tracking.min_hits < 1 or self.tracking.history_cap < 1:
            raise ConfigError("TRACKER_MIN_HITS and TRACKER_HISTORY_CAP must be >= 1")
        if self.tracking.association not in VALID_ASSOCIATIONS:
            raise ConfigError(
                f"Invalid TRACKER_ASSOCIATION: {self.tracking.association}. "
                f"Must be one of {VALID_ASSOCIATIONS}"
            )
        if self.metrics.window_seconds <= 0:
            raise ConfigError("METRICS_WINDOW_S must be positive")

    @property
    def base_dir(self) -> Path:
        """Root directory of the repository."""
        return Path(__file__).parent.parent.parent

    @property
    def weights_dir(self) -> Path:
        return self.base_dir / "weights"

    @property
    def weights_path(self) -> Path:
        """Get full path to YOLO weights file."""
        return self.weights_dir / self.detection.weights_file

    @property
    def results_dir(self) -> Path:
        path = Path(self.metrics.results_dir)
        return path if path.is_absolute() else self.base_dir / path


# Singleton instance - all modules import this same object
settings = Settings()


if __name__ == "__main__":
    """Print the effective configuration: python -m livedetect.config.settings"""
    import logging

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s | %(levelname)-7s | %(message)s"
    )
    logger = logging.getLogger(__name__)

    settings.validate()

    logger.info("=" * 60)
    logger.info("livedetect Configuration")
    logger.info("=" * 60)
    logger.info("Server: %s:%d (mode=%s)", settings.server.host, settings.server.port, settings.server.mode)
    logger.info("Queue capacity: %d", settings.ingestion.queue_capacity)
    logger.info(
        "Inference: %.1f fps (period=%.1fms), timeout=%.2fs",
        settings.inference.target_fps,
        settings.inference.period_s * 1000,
        settings.inference.detector_timeout_s,
    )
    logger.info(
        "Tracking: enabled=%s max_age=%d min_hits=%d iou=%.2f history=%d age_limit=%d (%s)",
        settings.tracking.enabled,
        settings.tracking.max_age,
        settings.tracking.min_hits,
        settings.tracking.iou_threshold,
        settings.tracking.history_cap,
        settings.tracking.age_limit,
        settings.tracking.association,
    )
    logger.info("Metrics: window=%ds report=%.1fs", settings.metrics.window_seconds, settings.metrics.report_interval_s)
    logger.info("Weights path: %s (exists=%s)", settings.weights_path, settings.weights_path.exists())
    logger.info("=" * 60)
