"""
Encode Pipeline

Turns a source upload and an ordered list of segments into one result file
and a download token. Stages run strictly in order and each one needs the
previous to have succeeded:

1. cut   - one re-encoded intermediate per segment
2. list  - a concat manifest naming the intermediates in segment order
3. join  - one concat invocation producing the result
4. tidy  - best-effort deletion of intermediates and the manifest
5. token - a one-time download token for the result

Every file is registered with the resource tracker before the encoder
writes it, so a crash mid-run still leaves it discoverable by the garbage
collector. The source and every file an encoder is reading or writing are
held in-use while it runs, and the session is touched at each stage. A
failed stage only cleans up its own partial output.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .encoder import STAGE_CONCAT, STAGE_TRIM, Encoder
from .exceptions import EncodeFailure, NotFoundError, ValidationError
from .ids import generate_stamp
from .resource_tracker import ResourceTracker
from .segments import Segment
from .storage_types import FileCategory
from .token_store import DownloadToken, DownloadTokenStore
from .utils.file_utils import derive_display_name, manifest_line

logger = logging.getLogger(__name__)


class EncodePipeline:
    def __init__(
        self,
        tracker: ResourceTracker,
        tokens: DownloadTokenStore,
        encoder: Encoder,
    ) -> None:
        self._tracker = tracker
        self._tokens = tokens
        self._encoder = encoder
        self._settings = tracker.settings

    async def run(
        self, source_filename: str, segments: list[Segment], session_id: str
    ) -> DownloadToken:
        if not segments:
            raise ValidationError("segments must be a non-empty list")
        source = self._tracker.path_for(source_filename, FileCategory.SOURCE)
        if not source.is_file():
            raise NotFoundError("File not found")

        # Read up front; a long encode can outlive the session record
        display_name = self._display_name(session_id)

        # Concurrent runs share directories; names carry a timestamp plus randomness
        stamp = generate_stamp()
        ext = self._settings.result_extension
        intermediates = [f"temp-{stamp}-{i}{ext}" for i in range(len(segments))]
        result = f"processed-{stamp}{ext}"
        for name in intermediates:
            self._tracker.track(name, FileCategory.INTERMEDIATE, session_id)

        try:
            with self._tracker.holding(source_filename, *intermediates):
                await self._cut_segments(source, segments, intermediates, session_id)
                manifest = self._write_manifest(stamp, intermediates, session_id)
                await self._concatenate(manifest, result, session_id)
        except EncodeFailure as e:
            self._discard_partial(e, intermediates, result)
            raise

        self._discard(intermediates + [manifest])
        token = self._tokens.issue(result, display_name, session_id)
        logger.info("Processing complete.")
        return token

    async def _cut_segments(
        self,
        source: Path,
        segments: list[Segment],
        intermediates: list[str],
        session_id: str,
    ) -> None:
        total = len(segments)
        for i, (segment, name) in enumerate(zip(segments, intermediates)):
            logger.info(f"Processing segment {i + 1}/{total}...")
            self._tracker.touch_session(session_id)
            destination = self._tracker.path_for(name, FileCategory.INTERMEDIATE)
            try:
                await self._encoder.trim(source, destination, segment, i)
            except EncodeFailure as e:
                logger.error(f"Encoder failed on segment {i}: {e.describe()}")
                raise

    def _write_manifest(
        self, stamp: str, intermediates: list[str], session_id: str
    ) -> str:
        name = f"list-{stamp}.txt"
        self._tracker.track(name, FileCategory.INTERMEDIATE, session_id)
        lines = [
            manifest_line(
                str(self._tracker.path_for(f, FileCategory.INTERMEDIATE).resolve())
            )
            for f in intermediates
        ]
        path = self._tracker.path_for(name, FileCategory.INTERMEDIATE)
        try:
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write concat manifest {name}: {e}")
            raise EncodeFailure("manifest", stderr=str(e)) from e
        return name

    async def _concatenate(self, manifest: str, result: str, session_id: str) -> None:
        self._tracker.track(result, FileCategory.RESULT, session_id)
        logger.info("Concatenating segments...")
        with self._tracker.holding(manifest, result):
            try:
                await self._encoder.concat(
                    self._tracker.path_for(manifest, FileCategory.INTERMEDIATE),
                    self._tracker.path_for(result, FileCategory.RESULT),
                )
            except EncodeFailure as e:
                logger.error(f"Encoder failed on concat: {e.describe()}")
                raise
            self._tracker.touch_session(session_id)

    def _discard_partial(
        self, failure: EncodeFailure, intermediates: list[str], result: str
    ) -> None:
        """Delete the output of the stage that failed. Earlier outputs stay tracked."""
        if failure.stage == STAGE_TRIM and failure.index is not None:
            self._tracker.delete(intermediates[failure.index], FileCategory.INTERMEDIATE)
        elif failure.stage == STAGE_CONCAT:
            self._tracker.delete(result, FileCategory.RESULT)

    def _discard(self, filenames: list[str]) -> None:
        for name in filenames:
            if not self._tracker.delete(name, FileCategory.INTERMEDIATE):
                logger.warning(f"Leaving {name} for the garbage collector")

    def _display_name(self, session_id: str) -> str:
        session = self._tracker.get_session(session_id)
        s = self._settings
        return derive_display_name(
            session.display_name if session else None,
            s.result_suffix,
            s.result_extension,
            s.default_display_name,
        )
