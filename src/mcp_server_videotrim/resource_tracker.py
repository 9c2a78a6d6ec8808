"""
Resource Tracker

Maps every file on disk and every client session to its metadata and owns
deletion: no other component unlinks a file. Files marked in-use are never
deleted, neither by a sweep nor by a manual session cleanup.

Every registration and every deletion refreshes the owning session's
last-activity timestamp, which is what the garbage collector's inactivity
test reads.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from .base_resource_store import ResourceStore
from .exceptions import ResourceBusyError
from .ids import new_client_id
from .segments import Segment
from .session_metadata import SessionMetadata
from .settings import VideoTrimSettings
from .storage_types import FileCategory, TrackedFile

logger = logging.getLogger(__name__)


class ResourceTracker:
    """Session and file bookkeeping on top of a ResourceStore."""

    def __init__(
        self,
        store: ResourceStore,
        settings: VideoTrimSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock
        # Compound read-modify-write steps must look atomic to a concurrent sweep
        self._lock = threading.RLock()
        # filename -> number of active holders
        self._holds: dict[str, int] = {}

    @property
    def settings(self) -> VideoTrimSettings:
        return self._settings

    def path_for(self, filename: str, category: FileCategory) -> Path:
        return self._settings.directory_for(category) / filename

    # Sessions
    def create_session(self) -> SessionMetadata:
        return self.ensure_session(new_client_id())

    def ensure_session(self, session_id: str | None) -> SessionMetadata:
        """Return the session record, creating it (with a fresh id if None)."""
        with self._lock:
            if session_id is None:
                session_id = new_client_id()
            session = self._store.get_session(session_id)
            if session is None:
                now = self._clock()
                session = SessionMetadata(
                    session_id=session_id, created_at=now, last_activity=now
                )
                self._store.put_session(session)
                logger.info(f"Registered session {session_id}")
            return session

    def get_session(self, session_id: str) -> SessionMetadata | None:
        return self._store.get_session(session_id)

    def has_session(self, session_id: str) -> bool:
        return self._store.get_session(session_id) is not None

    def list_sessions(self) -> list[SessionMetadata]:
        return self._store.list_sessions()

    def heartbeat(self, session_id: str) -> bool:
        """Refresh a session's last activity. Returns False for unknown sessions."""
        with self._lock:
            session = self._store.get_session(session_id)
            if session is None:
                return False
            session.last_activity = self._clock()
            return True

    def touch_session(self, session_id: str) -> SessionMetadata:
        """Refresh a session's last activity, re-registering it if it expired."""
        with self._lock:
            session = self.ensure_session(session_id)
            session.last_activity = self._clock()
            return session

    def set_display_name(self, session_id: str, display_name: str) -> None:
        with self._lock:
            session = self.ensure_session(session_id)
            session.display_name = display_name
            session.last_activity = self._clock()

    def get_segments(self, session_id: str) -> list[Segment]:
        session = self._store.get_session(session_id)
        return list(session.segments) if session else []

    def replace_segments(self, session_id: str, segments: list[Segment]) -> None:
        with self._lock:
            session = self.ensure_session(session_id)
            session.segments = list(segments)
            session.last_activity = self._clock()

    # Files
    def get_file(self, filename: str) -> TrackedFile | None:
        return self._store.get_file(filename)

    def list_files(self) -> list[TrackedFile]:
        return self._store.list_files()

    def files_for_session(self, session_id: str) -> list[TrackedFile]:
        return [f for f in self._store.list_files() if f.session_id == session_id]

    def track(
        self, filename: str, category: FileCategory, session_id: str
    ) -> TrackedFile:
        """Register ``filename`` as owned by ``session_id``. Idempotent per filename."""
        with self._lock:
            now = self._clock()
            session = self.ensure_session(session_id)
            record = self._store.get_file(filename)
            if record is None:
                record = TrackedFile(
                    filename=filename,
                    category=category,
                    created_at=now,
                    session_id=session.session_id,
                )
                self._store.put_file(record)
                logger.debug(
                    f"Tracking {category.value} file {filename} for {session.session_id}"
                )
            session.files[filename] = record.category
            session.last_activity = now
            return record

    def mark_in_use(self, filename: str, in_use: bool) -> bool:
        """Set or clear the in-use flag. Returns False if the file is untracked."""
        with self._lock:
            record = self._store.get_file(filename)
            if record is None:
                return False
            record.in_use = in_use
            return True

    @contextmanager
    def holding(self, *filenames: str) -> Iterator[None]:
        """Keep ``filenames`` in-use for the duration of the block.

        Holds nest: a file shared by two holders stays in-use until the last
        one exits. Untracked names are ignored.
        """
        held: list[str] = []
        with self._lock:
            for name in dict.fromkeys(filenames):
                if self.mark_in_use(name, True):
                    self._holds[name] = self._holds.get(name, 0) + 1
                    held.append(name)
        try:
            yield
        finally:
            with self._lock:
                for name in held:
                    remaining = self._holds.get(name, 0) - 1
                    if remaining > 0:
                        self._holds[name] = remaining
                    else:
                        self._holds.pop(name, None)
                        self.mark_in_use(name, False)

    def _unlink(self, filename: str, category: FileCategory) -> None:
        record = self._store.get_file(filename)
        if record is not None and record.in_use:
            raise ResourceBusyError(filename)
        if record is not None:
            category = record.category
        try:
            self.path_for(filename, category).unlink()
        except FileNotFoundError:
            logger.debug(f"{category.value} file {filename} already gone from disk")
        self._store.delete_file(filename)
        if record is not None:
            session = self._store.get_session(record.session_id)
            if session is not None:
                session.files.pop(filename, None)
                session.last_activity = self._clock()

    def delete(self, filename: str, category: FileCategory | None = None) -> bool:
        """Unlink a file and drop its tracking state.

        Returns False, keeping the file, when it is in use or when the
        filesystem refuses the unlink. Never raises.
        """
        with self._lock:
            record = self._store.get_file(filename)
            if category is None:
                if record is None:
                    return False
                category = record.category
            try:
                self._unlink(filename, category)
            except ResourceBusyError:
                logger.info(f"Skipping deletion of in-use file {filename}")
                return False
            except OSError as e:
                logger.error(f"Error deleting {category.value} file {filename}: {e}")
                return False
            logger.info(f"Deleted {category.value} file: {filename}")
            return True

    def cleanup_session(self, session_id: str) -> int:
        """Delete every file the session owns and drop the session record.

        In-use files are skipped; they stay tracked until a later sweep.
        Returns the number of files deleted.
        """
        with self._lock:
            session = self._store.get_session(session_id)
            if session is None:
                return 0
            owned = {f.filename: f.category for f in self.files_for_session(session_id)}
            owned.update(session.files)
            deleted = 0
            for filename, category in owned.items():
                if self.delete(filename, category):
                    deleted += 1
            self._store.delete_session(session_id)
            logger.info(
                f"Cleaned up session {session_id}: {deleted}/{len(owned)} files deleted"
            )
            return deleted
