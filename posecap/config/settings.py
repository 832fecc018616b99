"""
Configuration system for posecap.

Settings are plain dataclasses grouped by concern and persisted as YAML.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from posecap.core.stream import POSE_MODELS
from posecap.data.exporters.take_exporter import EXPORT_FORMATS, ExportOptions
from posecap.errors import OptionsInvalidError


@dataclass
class FilteringConfig:
    """Live smoothing configuration."""

    enabled: bool = True
    min_cutoff: float = 1.0
    beta: float = 0.007
    d_cutoff: float = 1.0


@dataclass
class RecordingConfig:
    """Recorder configuration."""

    chunk_frames: int = 30
    project_id: Optional[str] = None


@dataclass
class StreamConfig:
    """Pose stream configuration."""

    model: str = "lite"
    min_confidence: float = 0.5
    bone_threshold: float = 0.6
    target_fps: float = 30.0
    emit_every_nth_frame: int = 1
    debug: bool = False


@dataclass
class ExportConfig:
    """Export configuration."""

    format: str = "both"
    output_dir: Path = field(default_factory=lambda: Path("exports"))
    include_frames_in_json: bool = True
    fps: Optional[float] = None
    scale: float = 100.0
    pretty_print: bool = False

    def to_options(self, filename_prefix: Optional[str] = None) -> ExportOptions:
        return ExportOptions(
            format=self.format,
            filename_prefix=filename_prefix,
            include_frames_in_json=self.include_frames_in_json,
            fps=self.fps,
            scale=self.scale,
            pretty_print=self.pretty_print,
        )


@dataclass
class Settings:
    """Main posecap configuration."""

    filtering: FilteringConfig = field(default_factory=FilteringConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise OptionsInvalidError(f"{path}: expected a mapping of sections")

        config = cls()

        try:
            if "filtering" in data:
                config.filtering = FilteringConfig(**data["filtering"])
            if "recording" in data:
                config.recording = RecordingConfig(**data["recording"])
            if "stream" in data:
                config.stream = StreamConfig(**data["stream"])
            if "export" in data:
                export = dict(data["export"])
                if "output_dir" in export:
                    export["output_dir"] = Path(export["output_dir"])
                config.export = ExportConfig(**export)
        except (TypeError, ValueError) as e:
            raise OptionsInvalidError(f"{path}: {e}") from e

        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""

        def to_dict(obj):
            if hasattr(obj, "__dataclass_fields__"):
                return {k: to_dict(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        data = to_dict(self)

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the settings are usable."""
        errors = []

        f = self.filtering
        if f.min_cutoff <= 0:
            errors.append(f"filtering.min_cutoff must be positive, got {f.min_cutoff}")
        if f.beta < 0:
            errors.append(f"filtering.beta must be >= 0, got {f.beta}")
        if f.d_cutoff <= 0:
            errors.append(f"filtering.d_cutoff must be positive, got {f.d_cutoff}")

        if self.recording.chunk_frames < 1:
            errors.append(f"recording.chunk_frames must be >= 1, got {self.recording.chunk_frames}")

        s = self.stream
        if s.model not in POSE_MODELS:
            errors.append(f"stream.model must be one of {POSE_MODELS}, got {s.model!r}")
        for name in ("min_confidence", "bone_threshold"):
            value = getattr(s, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"stream.{name} must be in [0, 1], got {value}")
        if s.target_fps <= 0:
            errors.append(f"stream.target_fps must be positive, got {s.target_fps}")
        if s.emit_every_nth_frame < 1:
            errors.append(f"stream.emit_every_nth_frame must be >= 1, got {s.emit_every_nth_frame}")

        e = self.export
        if e.format not in EXPORT_FORMATS:
            errors.append(f"export.format must be one of {EXPORT_FORMATS}, got {e.format!r}")
        if e.fps is not None and e.fps <= 0:
            errors.append(f"export.fps must be positive, got {e.fps}")
        if e.scale <= 0:
            errors.append(f"export.scale must be positive, got {e.scale}")

        return errors

    def check(self) -> "Settings":
        """Raise OptionsInvalidError if ``validate`` finds problems."""
        errors = self.validate()
        if errors:
            raise OptionsInvalidError("; ".join(errors))
        return self
