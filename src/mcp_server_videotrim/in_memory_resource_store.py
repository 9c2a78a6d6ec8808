"""
In-Memory Resource Store Implementation

Keeps sessions and tracked files in plain dictionaries guarded by a
re-entrant lock. Nothing survives a process restart.
"""

from __future__ import annotations

import threading

from .base_resource_store import ResourceStore
from .session_metadata import SessionMetadata
from .storage_types import TrackedFile


class InMemoryResourceStore(ResourceStore):
    """In-memory ResourceStore backed by two dictionaries."""

    def __init__(self) -> None:
        # {session_id: SessionMetadata}
        self._sessions: dict[str, SessionMetadata] = {}
        # {filename: TrackedFile}
        self._files: dict[str, TrackedFile] = {}
        self._lock = threading.RLock()

    def get_session(self, session_id: str) -> SessionMetadata | None:
        with self._lock:
            return self._sessions.get(session_id)

    def put_session(self, session: SessionMetadata) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def list_sessions(self) -> list[SessionMetadata]:
        with self._lock:
            return list(self._sessions.values())

    def get_file(self, filename: str) -> TrackedFile | None:
        with self._lock:
            return self._files.get(filename)

    def put_file(self, record: TrackedFile) -> None:
        with self._lock:
            self._files[record.filename] = record

    def delete_file(self, filename: str) -> None:
        with self._lock:
            self._files.pop(filename, None)

    def list_files(self) -> list[TrackedFile]:
        with self._lock:
            return list(self._files.values())
