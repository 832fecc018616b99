"""Configuration module for posecap."""

from posecap.config.settings import (
    Settings,
    FilteringConfig,
    RecordingConfig,
    StreamConfig,
    ExportConfig,
)

__all__ = ["Settings", "FilteringConfig", "RecordingConfig", "StreamConfig", "ExportConfig"]
