"""Unit tests for VideoTrimSettings."""

import os
from pathlib import Path
from unittest.mock import patch

from mcp_server_videotrim.settings import VideoTrimSettings
from mcp_server_videotrim.storage_types import FileCategory


class TestVideoTrimSettings:
    def test_defaults(self):
        s = VideoTrimSettings()
        assert s.retention_seconds == 30 * 60
        assert s.heartbeat_timeout_seconds == 5 * 60
        assert s.sweep_interval_seconds == 5 * 60
        assert s.max_upload_bytes == 500 * 1024 * 1024
        assert s.encoder_binary == "ffmpeg"
        assert s.base_dir.name == "mcp_videotrim"

    def test_from_env_overrides(self, tmp_path):
        env = {
            "MCP_VIDEOTRIM_BASE_DIR": str(tmp_path),
            "MCP_VIDEOTRIM_RETENTION_SECONDS": "60",
            "MCP_VIDEOTRIM_HEARTBEAT_TIMEOUT_SECONDS": "10",
            "MCP_VIDEOTRIM_SWEEP_INTERVAL_SECONDS": "5",
            "MCP_VIDEOTRIM_MAX_UPLOAD_BYTES": "1024",
            "MCP_VIDEOTRIM_ENCODER_BINARY": "/opt/ffmpeg",
            "MCP_VIDEOTRIM_ENCODER_TIMEOUT_SECONDS": "0",
        }
        with patch.dict(os.environ, env):
            s = VideoTrimSettings.from_env()
        assert s.base_dir == Path(tmp_path)
        assert s.retention_seconds == 60
        assert s.heartbeat_timeout_seconds == 10
        assert s.sweep_interval_seconds == 5
        assert s.max_upload_bytes == 1024
        assert s.encoder_binary == "/opt/ffmpeg"
        assert s.encoder_timeout_seconds == 0

    def test_invalid_numbers_fall_back(self):
        with patch.dict(os.environ, {"MCP_VIDEOTRIM_RETENTION_SECONDS": "soon"}):
            assert VideoTrimSettings.from_env().retention_seconds == 30 * 60

    def test_directories(self, tmp_path):
        s = VideoTrimSettings(base_dir=str(tmp_path))
        s.ensure_directories()
        for category, name in [
            (FileCategory.SOURCE, "uploads"),
            (FileCategory.INTERMEDIATE, "temp"),
            (FileCategory.RESULT, "output"),
        ]:
            assert s.directory_for(category) == tmp_path / name
            assert (tmp_path / name).is_dir()
