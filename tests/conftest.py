"""Shared pytest fixtures for the video trim server tests."""

import pytest

from mcp_server_videotrim.in_memory_resource_store import InMemoryResourceStore
from mcp_server_videotrim.resource_tracker import ResourceTracker
from mcp_server_videotrim.service import VideoTrimService
from mcp_server_videotrim.settings import VideoTrimSettings
from mcp_server_videotrim.token_store import DownloadTokenStore
from tests.utils.fake_clock import FakeClock
from tests.utils.fake_encoder import FakeEncoder


@pytest.fixture
def clock():
    """Controllable clock starting at a fixed epoch."""
    return FakeClock(start=1_700_000_000.0)


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a per-test temporary directory."""
    s = VideoTrimSettings(base_dir=tmp_path / "videotrim")
    s.ensure_directories()
    return s


@pytest.fixture
def store():
    return InMemoryResourceStore()


@pytest.fixture
def tracker(store, settings, clock):
    return ResourceTracker(store, settings, clock=clock)


@pytest.fixture
def tokens(settings, clock):
    return DownloadTokenStore(settings.retention_seconds, clock=clock)


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def service(settings, store, encoder, clock):
    """A fully wired service using the fake encoder and fake clock."""
    return VideoTrimService(settings=settings, store=store, encoder=encoder, clock=clock)


@pytest.fixture
def sample_video_bytes():
    """Bytes standing in for an uploaded video."""
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64
