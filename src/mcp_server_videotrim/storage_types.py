"""
Storage Types and Data Classes

This module contains the core records and enums shared by the resource
tracker, the store implementations and the garbage collector.
"""

from dataclasses import dataclass
from enum import Enum


class FileCategory(Enum):
    """Which logical directory a tracked file lives in."""

    SOURCE = "source"
    INTERMEDIATE = "intermediate"
    RESULT = "result"


@dataclass
class TrackedFile:
    """A file on disk owned by a client session."""

    filename: str
    category: FileCategory
    created_at: float
    session_id: str
    in_use: bool = False


@dataclass
class SweepStats:
    """Outcome of one garbage collector run."""

    files_deleted: int = 0
    files_skipped_in_use: int = 0
    files_failed: int = 0
    sessions_expired: int = 0
    tokens_dropped: int = 0

    def summary(self) -> str:
        return (
            f"files_deleted={self.files_deleted} "
            f"skipped_in_use={self.files_skipped_in_use} "
            f"failed={self.files_failed} "
            f"sessions_expired={self.sessions_expired} "
            f"tokens_dropped={self.tokens_dropped}"
        )
