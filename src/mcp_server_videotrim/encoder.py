"""
External encoder adapter

The encoder is a black box: given explicit offsets and codec flags it
writes a playable file, or exits non-zero with diagnostics on stderr.
Both modes re-encode video and audio. Stream-copy trimming leaves broken
frames at the cut points, so it is never used.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from .exceptions import EncodeFailure
from .segments import Segment
from .settings import VideoTrimSettings

logger = logging.getLogger(__name__)

STAGE_TRIM = "trim"
STAGE_CONCAT = "concat"

_STDERR_TAIL_CHARS = 4000
_TERMINATE_GRACE_SECONDS = 5.0


class Encoder(ABC):
    """Interface the encode pipeline drives."""

    @abstractmethod
    async def trim(
        self, source: Path, destination: Path, segment: Segment, index: int
    ) -> None:
        """
        Write ``segment`` of ``source`` to ``destination`` as a standalone file.

        Raises:
            EncodeFailure: The encoder exited non-zero or timed out
        """
        pass

    @abstractmethod
    async def concat(self, manifest: Path, destination: Path) -> None:
        """
        Concatenate the files listed in ``manifest`` into ``destination``.

        Raises:
            EncodeFailure: The encoder exited non-zero or timed out
        """
        pass


def _format_seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


class FfmpegEncoder(Encoder):
    """Encoder backed by an ffmpeg-compatible binary run as a child process."""

    def __init__(self, settings: VideoTrimSettings) -> None:
        self._settings = settings
        self._binary = shutil.which(settings.encoder_binary) or settings.encoder_binary

    @property
    def binary(self) -> str:
        return self._binary

    def _codec_args(self) -> list[str]:
        s = self._settings
        return [
            "-c:v",
            s.video_codec,
            "-c:a",
            s.audio_codec,
            "-preset",
            s.preset,
            "-crf",
            str(s.crf),
        ]

    def build_trim_command(
        self, source: Path, destination: Path, segment: Segment
    ) -> list[str]:
        return [
            self._binary,
            "-y",
            "-i",
            str(source),
            "-ss",
            _format_seconds(segment.start),
            "-to",
            _format_seconds(segment.end),
            *self._codec_args(),
            "-avoid_negative_ts",
            "make_zero",
            str(destination),
        ]

    def build_concat_command(self, manifest: Path, destination: Path) -> list[str]:
        return [
            self._binary,
            "-y",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(manifest),
            *self._codec_args(),
            str(destination),
        ]

    async def trim(
        self, source: Path, destination: Path, segment: Segment, index: int
    ) -> None:
        cmd = self.build_trim_command(source, destination, segment)
        await self._run(cmd, STAGE_TRIM, index)

    async def concat(self, manifest: Path, destination: Path) -> None:
        cmd = self.build_concat_command(manifest, destination)
        await self._run(cmd, STAGE_CONCAT, None)

    async def _run(self, cmd: list[str], stage: str, index: int | None) -> None:
        logger.debug(f"Encoder command ({stage}): {shlex.join(cmd)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncodeFailure(stage, index=index, stderr=str(e)) from e

        timeout = self._settings.encoder_timeout_seconds or None
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await self._stop(proc)
            logger.error(f"Encoder timed out after {timeout}s at stage {stage}")
            raise EncodeFailure(stage, index=index, timed_out=True)

        if proc.returncode != 0:
            tail = (stderr or b"").decode("utf-8", "replace")[-_STDERR_TAIL_CHARS:]
            raise EncodeFailure(
                stage, index=index, returncode=proc.returncode, stderr=tail
            )

    async def _stop(self, proc: asyncio.subprocess.Process) -> None:
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
