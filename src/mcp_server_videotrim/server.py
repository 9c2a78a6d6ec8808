import logging
import shutil
import sys
from pathlib import Path
from typing import Any

# FastMCP 2.0 import
from fastmcp import FastMCP

from .exceptions import EncodeFailure, ValidationError
from .service import VideoTrimService
from .utils.session_utils import validate_session_id

logger = logging.getLogger(__name__)
# Ensure logs are visible in the FastMCP subprocess even if no handlers configured
if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setLevel(logging.INFO)
    _formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    _handler.setFormatter(_formatter)
    logger.addHandler(_handler)
logger.setLevel(logging.INFO)

# Create FastMCP instance
mcp = FastMCP("Video Trim Server ✂️")

# Global service instance
service = VideoTrimService()


# === TOOLS ===
@mcp.tool
def new_session() -> str:
    """Create a client session and return its identifier."""
    return service.new_session()


@mcp.tool
def upload_video(source_path: str, session_id: str | None = None) -> dict[str, Any]:
    """Upload a local video file into a session.

    Args:
        source_path: Path of the video to upload
        session_id: Existing session; a new one is created when omitted

    Returns:
        Stored filename, original name and the owning session id
    """
    path = Path(source_path).expanduser()
    if not path.is_file():
        raise ValidationError(f"No such file: {source_path}")
    if path.stat().st_size > service.settings.max_upload_bytes:
        raise ValidationError(
            f"Upload exceeds maximum size of {service.settings.max_upload_bytes} bytes"
        )
    receipt = service.record_upload(path.read_bytes(), path.name, session_id)
    return {
        "message": "Uploaded successfully",
        "filename": receipt.filename,
        "originalname": receipt.original_name,
        "session_id": receipt.session_id,
    }


@mcp.tool
def propose_segment(
    session_id: str, start: float, end: float, color: str | None = None
) -> dict[str, Any]:
    """Add a timeline selection, merging it with any segments it overlaps."""
    outcome = service.propose_segment(session_id, start, end, color)
    if not outcome.accepted:
        message = "Selection ignored: end must be after start"
    elif outcome.merged:
        message = "Segments merged to avoid overlap"
    else:
        message = "Segment added"
    return {
        "message": message,
        "segments": [seg.to_dict() for seg in outcome.segments],
    }


@mcp.tool
def remove_segment(session_id: str, index: int) -> list[dict[str, Any]]:
    """Remove the committed segment at ``index``."""
    return [seg.to_dict() for seg in service.remove_segment(session_id, index)]


@mcp.tool
def list_segments(session_id: str) -> list[dict[str, Any]]:
    """List the session's committed segments, sorted by start."""
    return [seg.to_dict() for seg in service.list_segments(session_id)]


@mcp.tool
async def process_video(
    filename: str,
    session_id: str,
    segments: list[dict[str, Any]] | None = None,
) -> dict[str, str]:
    """Cut the selected segments from an upload and join them into one video.

    Args:
        filename: Stored filename returned by upload_video
        session_id: Session owning the upload
        segments: ``[{start, end}]`` in seconds; defaults to the committed set

    Returns:
        A one-time download token
    """
    session_id = validate_session_id(session_id)
    if segments is None:
        segments = [seg.to_dict() for seg in service.list_segments(session_id)]
    try:
        token = await service.submit_segments(filename, segments, session_id)
    except EncodeFailure as e:
        logger.error(f"Processing error: {e.describe()}")
        raise
    return {"message": "Video processed", "download_token": token.token}


@mcp.tool
def download_video(token: str, destination_dir: str) -> dict[str, str]:
    """Redeem a one-time download token into ``destination_dir``.

    The token cannot be used again afterwards.
    """
    target_dir = Path(destination_dir).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    with service.open_download(token) as (path, display_name):
        target = target_dir / display_name
        shutil.copyfile(path, target)
    return {"message": "Download complete", "path": str(target)}


@mcp.tool
def cleanup_session(session_id: str) -> str:
    """Delete every file the session owns and forget the session."""
    deleted = service.cleanup(session_id)
    return f"Client files cleaned ({deleted} deleted)"


@mcp.tool
def heartbeat(session_id: str) -> bool:
    """Keep a session alive. Returns False if the session is unknown."""
    return service.heartbeat(session_id)


@mcp.tool
def inspect_session(session_id: str) -> str:
    """Read-only summary of a session's segments, files and pending downloads."""
    return service.inspect_session(session_id)


# === MAIN ENTRY POINT ===
def main():
    """Main entry point for the FastMCP 2.0 server."""
    logger.info(
        f"Starting video trim server (data dir {service.settings.base_dir}, "
        f"encoder {service.encoder.__class__.__name__})"
    )
    service.start_collector()
    try:
        mcp.run()
    finally:
        service.stop_collector()


if __name__ == "__main__":
    main()
