"""
Abstract Resource Store

This module contains the abstract base class that defines the interface
for the mappings behind the resource tracker: client sessions and tracked
files.
"""

from abc import ABC, abstractmethod

from .session_metadata import SessionMetadata
from .storage_types import TrackedFile


class ResourceStore(ABC):
    """
    Abstract base class for session and tracked-file storage.

    One instance is created per process and handed to every component that
    needs it. Implementations only hold records; they never touch the
    filesystem. Deleting files on disk is the ResourceTracker's job.
    """

    @abstractmethod
    def get_session(self, session_id: str) -> SessionMetadata | None:
        """
        Get the record for a session.

        Args:
            session_id: The session identifier

        Returns:
            The session record, or None if unknown
        """
        pass

    @abstractmethod
    def put_session(self, session: SessionMetadata) -> None:
        """
        Insert or replace a session record.

        Args:
            session: The session record, keyed by its session_id
        """
        pass

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """
        Remove a session record. Unknown ids are ignored.

        Args:
            session_id: The session identifier
        """
        pass

    @abstractmethod
    def list_sessions(self) -> list[SessionMetadata]:
        """
        Snapshot of all session records.

        Returns:
            List of session records (safe to iterate while mutating the store)
        """
        pass

    @abstractmethod
    def get_file(self, filename: str) -> TrackedFile | None:
        """
        Get the record for a tracked file.

        Args:
            filename: Bare filename, unique across categories

        Returns:
            The tracked file record, or None if untracked
        """
        pass

    @abstractmethod
    def put_file(self, record: TrackedFile) -> None:
        """
        Insert or replace a tracked file record.

        Args:
            record: The tracked file, keyed by its filename
        """
        pass

    @abstractmethod
    def delete_file(self, filename: str) -> None:
        """
        Remove a tracked file record. Unknown names are ignored.

        Args:
            filename: Bare filename
        """
        pass

    @abstractmethod
    def list_files(self) -> list[TrackedFile]:
        """
        Snapshot of all tracked file records.

        Returns:
            List of tracked file records
        """
        pass
