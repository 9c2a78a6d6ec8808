"""
Service configuration

All knobs have defaults matching the documented configuration surface and
can be overridden through ``MCP_VIDEOTRIM_*`` environment variables.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .storage_types import FileCategory

ENV_PREFIX = "MCP_VIDEOTRIM_"

_CATEGORY_DIRS = {
    FileCategory.SOURCE: "uploads",
    FileCategory.INTERMEDIATE: "temp",
    FileCategory.RESULT: "output",
}


def _default_base_dir() -> Path:
    return Path(tempfile.gettempdir()) / "mcp_videotrim"


def _env_number(name: str, default: float) -> float:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class VideoTrimSettings:
    """Runtime settings for the trim service."""

    base_dir: Path = field(default_factory=_default_base_dir)
    retention_seconds: float = 30 * 60
    heartbeat_timeout_seconds: float = 5 * 60
    sweep_interval_seconds: float = 5 * 60
    max_upload_bytes: int = 500 * 1024 * 1024

    encoder_binary: str = "ffmpeg"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "fast"
    crf: int = 23
    encoder_timeout_seconds: float = 15 * 60  # 0 disables

    result_suffix: str = "-edited"
    result_extension: str = ".mp4"
    default_display_name: str = "edited-video.mp4"

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir)

    @classmethod
    def from_env(cls) -> VideoTrimSettings:
        defaults = cls()
        base_dir = os.environ.get(ENV_PREFIX + "BASE_DIR")
        return cls(
            base_dir=Path(base_dir) if base_dir else defaults.base_dir,
            retention_seconds=_env_number(
                "RETENTION_SECONDS", defaults.retention_seconds
            ),
            heartbeat_timeout_seconds=_env_number(
                "HEARTBEAT_TIMEOUT_SECONDS", defaults.heartbeat_timeout_seconds
            ),
            sweep_interval_seconds=_env_number(
                "SWEEP_INTERVAL_SECONDS", defaults.sweep_interval_seconds
            ),
            max_upload_bytes=int(
                _env_number("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)
            ),
            encoder_binary=os.environ.get(
                ENV_PREFIX + "ENCODER_BINARY", defaults.encoder_binary
            ),
            crf=int(_env_number("CRF", defaults.crf)),
            preset=os.environ.get(ENV_PREFIX + "PRESET", defaults.preset),
            encoder_timeout_seconds=_env_number(
                "ENCODER_TIMEOUT_SECONDS", defaults.encoder_timeout_seconds
            ),
        )

    def directory_for(self, category: FileCategory) -> Path:
        return self.base_dir / _CATEGORY_DIRS[category]

    def ensure_directories(self) -> None:
        for category in FileCategory:
            self.directory_for(category).mkdir(parents=True, exist_ok=True)
