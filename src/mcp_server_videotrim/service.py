"""
Video Trim Service

The facade a transport talks to. It wires one resource store, tracker,
token store, encoder, pipeline and garbage collector together and exposes
the client-facing operations: sessions, uploads, segment selection,
processing, one-time downloads, cleanup and heartbeats.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from .base_resource_store import ResourceStore
from .collector import GarbageCollector, SweepScheduler
from .encoder import Encoder, FfmpegEncoder
from .exceptions import NotFoundError, ValidationError
from .ids import generate_stamp
from .in_memory_resource_store import InMemoryResourceStore
from .pipeline import EncodePipeline
from .resource_tracker import ResourceTracker
from .segments import (
    MergeOutcome,
    Segment,
    color_for_index,
    fold_segment,
    merge_segments,
    parse_segments,
    parse_time,
)
from .settings import VideoTrimSettings
from .storage_types import FileCategory, SweepStats
from .token_store import DownloadToken, DownloadTokenStore
from .utils.file_utils import upload_extension, validate_filename
from .utils.inspect_utils import summarize_session
from .utils.session_utils import validate_session_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadReceipt:
    filename: str
    original_name: str
    session_id: str


class VideoTrimService:
    def __init__(
        self,
        settings: VideoTrimSettings | None = None,
        store: ResourceStore | None = None,
        encoder: Encoder | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or VideoTrimSettings.from_env()
        self.settings.ensure_directories()
        self._clock = clock

        self.tracker = ResourceTracker(
            store or InMemoryResourceStore(), self.settings, clock=clock
        )
        self.tokens = DownloadTokenStore(self.settings.retention_seconds, clock=clock)
        self.encoder = encoder or FfmpegEncoder(self.settings)
        self.pipeline = EncodePipeline(self.tracker, self.tokens, self.encoder)
        self.collector = GarbageCollector(self.tracker, self.tokens, clock=clock)
        self.scheduler = SweepScheduler(
            self.collector, self.settings.sweep_interval_seconds
        )
        # One pipeline run at a time per session; a lock lives only while a run holds or awaits it
        self._pipeline_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # Sessions
    def new_session(self) -> str:
        return self.tracker.create_session().session_id

    def heartbeat(self, session_id: str) -> bool:
        return self.tracker.heartbeat(validate_session_id(session_id))

    def cleanup(self, session_id: str) -> int:
        """Delete a session's files (except in-use ones), tokens and record."""
        session_id = validate_session_id(session_id)
        deleted = self.tracker.cleanup_session(session_id)
        self.tokens.revoke_session(session_id)
        self._pipeline_locks.pop(session_id, None)
        return deleted

    def inspect_session(self, session_id: str) -> str:
        session_id = validate_session_id(session_id)
        return summarize_session(
            self.tracker.get_session(session_id),
            self.tracker.files_for_session(session_id),
            self.tokens.pending_for_session(session_id),
            now=self._clock(),
        )

    # Uploads
    def record_upload(
        self, data: bytes, original_name: str, session_id: str | None = None
    ) -> UploadReceipt:
        """Store an uploaded source video and register it with its session.

        Unknown or missing session ids get a session created on the spot.
        """
        if not isinstance(data, (bytes, bytearray)) or not data:
            raise ValidationError("No file uploaded")
        if len(data) > self.settings.max_upload_bytes:
            raise ValidationError(
                f"Upload exceeds maximum size of {self.settings.max_upload_bytes} bytes"
            )
        if session_id is not None:
            session_id = validate_session_id(session_id)
        session = self.tracker.ensure_session(session_id)

        filename = f"{generate_stamp()}{upload_extension(original_name)}"
        self.tracker.track(filename, FileCategory.SOURCE, session.session_id)
        path = self.tracker.path_for(filename, FileCategory.SOURCE)
        try:
            path.write_bytes(bytes(data))
        except OSError:
            self.tracker.delete(filename, FileCategory.SOURCE)
            raise
        self.tracker.set_display_name(session.session_id, original_name or filename)
        logger.info(
            f"Uploaded {original_name!r} as {filename} ({len(data)} bytes) "
            f"for {session.session_id}"
        )
        return UploadReceipt(filename, original_name, session.session_id)

    # Segment selection
    def propose_segment(
        self, session_id: str, start: Any, end: Any, color: str | None = None
    ) -> MergeOutcome:
        """Fold a timeline selection into the session's committed segment set."""
        session_id = validate_session_id(session_id)
        existing = self.tracker.get_segments(session_id)
        proposed = Segment(
            start=parse_time(start, "start"),
            end=parse_time(end, "end"),
            color=color or color_for_index(len(existing)),
        )
        outcome = fold_segment(existing, proposed)
        if outcome.accepted:
            self.tracker.replace_segments(session_id, outcome.segments)
        return outcome

    def remove_segment(self, session_id: str, index: int) -> list[Segment]:
        session_id = validate_session_id(session_id)
        segments = self.tracker.get_segments(session_id)
        if not 0 <= index < len(segments):
            raise ValidationError(f"No segment at index {index}")
        del segments[index]
        self.tracker.replace_segments(session_id, segments)
        return segments

    def list_segments(self, session_id: str) -> list[Segment]:
        return self.tracker.get_segments(validate_session_id(session_id))

    # Processing
    async def submit_segments(
        self, filename: str, segments: Any, session_id: str
    ) -> DownloadToken:
        """Cut, join and re-encode the selected segments of an upload.

        Raises:
            ValidationError: Bad filename, session id or segment list
            NotFoundError: The source upload is not on disk
            EncodeFailure: Any encoder invocation failed
        """
        filename = validate_filename(filename)
        session_id = validate_session_id(session_id)
        committed = merge_segments(parse_segments(segments))
        if not self.tracker.path_for(filename, FileCategory.SOURCE).is_file():
            raise NotFoundError("File not found")

        self.tracker.ensure_session(session_id)
        lock = self._pipeline_locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            return await self.pipeline.run(filename, committed, session_id)

    # Downloads
    @contextmanager
    def open_download(self, token: str) -> Iterator[tuple[Path, str]]:
        """Redeem a token and hold its result file in-use for the transfer.

        The token is consumed up front, so a second redemption fails even if
        this transfer does.
        """
        if not token or not isinstance(token, str):
            raise NotFoundError("Download link has expired or is invalid.")
        record = self.tokens.redeem(token.strip())
        path = self.tracker.path_for(record.filename, FileCategory.RESULT)
        # Held before the existence check so a concurrent sweep cannot unlink it in between
        with self.tracker.holding(record.filename):
            if not path.is_file():
                raise NotFoundError("File not found on server.")
            yield path, record.display_name

    def redeem_token(self, token: str) -> tuple[bytes, str]:
        with self.open_download(token) as (path, display_name):
            return path.read_bytes(), display_name

    # Garbage collection
    def sweep(self, now: float | None = None) -> SweepStats:
        return self.collector.sweep(now)

    def start_collector(self) -> None:
        self.scheduler.start()

    def stop_collector(self) -> None:
        self.scheduler.stop()
