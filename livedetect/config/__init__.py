"""
Configuration Module

Centralizes all configurable parameters.
"""

from livedetect.config.settings import (
    settings,
    Settings,
    ServerConfig,
    IngestionConfig,
    InferenceConfig,
    DetectionConfig,
    TrackerConfig,
    MetricsConfig,
)

__all__ = [
    "settings",
    "Settings",
    "ServerConfig",
    "IngestionConfig",
    "InferenceConfig",
    "DetectionConfig",
    "TrackerConfig",
    "MetricsConfig",
]
