"""Unit tests for the session summary helper."""

from mcp_server_videotrim.segments import Segment
from mcp_server_videotrim.session_metadata import SessionMetadata
from mcp_server_videotrim.storage_types import FileCategory, TrackedFile
from mcp_server_videotrim.utils.inspect_utils import summarize_session


def make_session():
    session = SessionMetadata(
        session_id="client-1", created_at=100.0, last_activity=150.0
    )
    session.display_name = "holiday.mov"
    session.segments = [Segment(1.0, 2.5), Segment(4.0, 6.0)]
    return session


class TestSummarizeSession:
    def test_missing_session(self):
        assert "Session not found." in summarize_session(None, [])

    def test_summary(self):
        files = [
            TrackedFile("b.mp4", FileCategory.RESULT, 140.0, "client-1", in_use=True),
            TrackedFile("a.mov", FileCategory.SOURCE, 120.0, "client-1"),
        ]
        out = summarize_session(make_session(), files, pending_tokens=1, now=200.0)
        lines = out.splitlines()
        assert lines[0] == "=== INSPECT SESSION ==="
        assert "Session: client-1" in out
        assert "Idle for: 50s" in out
        assert "Upload: holiday.mov" in out
        assert "Segments: 2" in out
        assert "1.00s -> 2.50s" in out
        assert "Files: 2" in out
        assert out.index("[source] a.mov") < out.index("[result] b.mp4 (in use)")
        assert lines[-1] == "Pending downloads: 1"

    def test_no_side_effects(self):
        session = make_session()
        summarize_session(session, [], now=1000.0)
        assert session.last_activity == 150.0
