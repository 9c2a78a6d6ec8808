"""
Error taxonomy for the video trim service.

Validation and lookup errors are client-visible. Encoder failures are
surfaced as one opaque message while the diagnostic fields stay available
to operators. Busy errors never leave the resource tracker.
"""

from __future__ import annotations

PROCESSING_FAILED_MESSAGE = "Video processing failed"


class VideoTrimError(Exception):
    """Base class for all service errors."""


class ValidationError(VideoTrimError, ValueError):
    """Malformed request rejected before any file or process work."""


class NotFoundError(VideoTrimError, LookupError):
    """Referenced source file, token or result file does not exist."""


class ResourceBusyError(VideoTrimError):
    """Deletion attempted on a file that is marked in-use."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"File is in use: {filename}")
        self.filename = filename


class EncodeFailure(VideoTrimError):
    """An external encoder invocation failed at some pipeline stage."""

    def __init__(
        self,
        stage: str,
        index: int | None = None,
        returncode: int | None = None,
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        super().__init__(PROCESSING_FAILED_MESSAGE)
        self.stage = stage
        self.index = index
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out

    def describe(self) -> str:
        """Operator-facing diagnostic, never sent to clients."""
        where = self.stage if self.index is None else f"{self.stage}[{self.index}]"
        if self.timed_out:
            return f"{where}: timed out"
        return f"{where}: exit={self.returncode} stderr={self.stderr.strip()[-500:]}"
