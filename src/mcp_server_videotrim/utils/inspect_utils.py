from __future__ import annotations

import time

from ..session_metadata import SessionMetadata
from ..storage_types import TrackedFile


def summarize_session(
    session: SessionMetadata | None,
    files: list[TrackedFile],
    pending_tokens: int = 0,
    now: float | None = None,
) -> str:
    """Produce a human-readable summary of one session.

    Pure utility (no side effects), suitable for testing.
    """
    if session is None:
        return "=== INSPECT SESSION ===\nSession not found."
    now = time.time() if now is None else now
    lines: list[str] = []
    lines.append("=== INSPECT SESSION ===")
    lines.append(f"Session: {session.session_id}")
    lines.append(f"Idle for: {max(0.0, now - session.last_activity):.0f}s")
    if session.display_name:
        lines.append(f"Upload: {session.display_name}")

    lines.append(f"Segments: {len(session.segments)}")
    for seg in session.segments:
        lines.append(f"  - {seg.start:.2f}s -> {seg.end:.2f}s")

    lines.append(f"Files: {len(files)}")
    for record in sorted(files, key=lambda f: f.created_at):
        flag = " (in use)" if record.in_use else ""
        lines.append(f"  - [{record.category.value}] {record.filename}{flag}")

    lines.append(f"Pending downloads: {pending_tokens}")
    return "\n".join(lines)
