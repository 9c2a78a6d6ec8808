"""
Session Metadata

This module contains the SessionMetadata class used by the resource store
to track one client session, the files it owns and its committed segments.
"""

from dataclasses import dataclass, field

from .segments import Segment
from .storage_types import FileCategory


@dataclass
class SessionMetadata:
    """Server-side record of one browser client."""

    session_id: str
    created_at: float
    last_activity: float
    files: dict[str, FileCategory] = field(default_factory=dict)  # filename -> category
    display_name: str | None = None
    segments: list[Segment] = field(default_factory=list)
